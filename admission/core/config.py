from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALGORITHMS = ("fixed_window", "sliding_window", "token_bucket", "leaky_bucket")


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    Policy fields left unset are only required by the algorithms that use them.
    """

    # Default policy
    policy_algorithm: str = "token_bucket"
    policy_id: str = "default"
    policy_limit: int | None = None
    policy_window_seconds: float | None = None
    policy_rate: float | None = 1.0
    policy_capacity: float | None = 10.0

    # Atomic store settings
    store_backend: str = "memory"  # memory | redis
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "admission"
    store_operation_timeout: float = 0.5  # Seconds per round trip
    store_max_cas_attempts: int = 32
    store_max_entries: int | None = 10000  # In-memory key cap, None for no cap
    store_sweep_interval: float = 60.0  # Seconds between expired-key sweeps

    # If True, the HTTP middleware denies requests when the store is unavailable
    rate_limit_fail_closed: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("policy_algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Validate the policy algorithm name."""
        v = v.strip().lower()
        if v not in ALGORITHMS:
            raise ValueError(f"policy_algorithm must be one of {', '.join(ALGORITHMS)}")
        return v

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "redis"):
            raise ValueError("store_backend must be 'memory' or 'redis'")
        return v

    @field_validator("store_operation_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate store timeout is positive."""
        if v <= 0:
            raise ValueError("store_operation_timeout must be positive")
        return v

    @field_validator("store_max_cas_attempts")
    @classmethod
    def validate_cas_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("store_max_cas_attempts must be at least 1")
        return v

    @field_validator("store_max_entries")
    @classmethod
    def validate_max_entries(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("store_max_entries must be at least 1")
        return v

    @field_validator("store_sweep_interval")
    @classmethod
    def validate_sweep_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("store_sweep_interval must be positive")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be text, structured or json")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
