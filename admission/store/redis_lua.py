"""Redis Lua scripts for the atomic store.

The compare-and-set script makes a client-side read-compute-write safe
across instances: the write only lands if the key still holds exactly the
value the transaction was computed from.
"""

# KEYS[1]: state key
# ARGV[1]: '1' if the transaction saw a value, '0' if it saw the key absent
# ARGV[2]: the value the transaction saw (ignored when ARGV[1] == '0')
# ARGV[3]: new value
# ARGV[4]: TTL in milliseconds, or '' for no expiry
# Returns 1 when written, 0 on conflict
CAS_SCRIPT = """
    local current = redis.call('GET', KEYS[1])

    if ARGV[1] == '0' then
        if current then
            return 0
        end
    elseif current ~= ARGV[2] then
        return 0
    end

    if ARGV[4] == '' then
        redis.call('SET', KEYS[1], ARGV[3])
    else
        redis.call('SET', KEYS[1], ARGV[3], 'PX', tonumber(ARGV[4]))
    end
    return 1
"""
