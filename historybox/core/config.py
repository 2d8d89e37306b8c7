"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma separated, e.g. http://localhost:3000,https://historybox.ir. Empty = default list in main.py.
    cors_origins: str = ""

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_recycle_seconds: int = 1800
    db_connect_timeout: int = 5

    # ===========================================
    # REDIS
    # ===========================================
    redis_url: str  # Required, no default

    # ===========================================
    # AUTH (session JWT issued by the identity provider)
    # ===========================================
    auth_jwt_secret: str  # Required, no default
    auth_jwt_algorithm: str = "HS256"
    auth_cookie_name: str = "sAccessToken"

    # ===========================================
    # ECONOMY
    # ===========================================
    region_geohash_precision: int = 5  # 5 chars ~ 4.9km x 4.9km cell
    unlock_cost_coins: int = 2
    unlock_batch_size: int = 10  # posts revealed per unlock
    teaser_post_limit: int = 10
    teaser_description_words: int = 5
    memory_cost_coins: int = 6
    signup_bonus_coins: int = 0

    # ===========================================
    # PAYMENTS (external gateway)
    # ===========================================
    pay_base_url: str = "https://pay.bytecraft.ir"
    pay_api_key: str = ""
    pay_service_id: str = "historybox"
    pay_callback_url: str = ""
    pay_currency: str = "IRR"
    pay_timeout: float = 15.0
    checkout_rate_limit: int = 5  # max checkouts per window
    checkout_rate_window_seconds: int = 60

    # ===========================================
    # GEOCODING (Nominatim)
    # ===========================================
    geocoder_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_contact_email: str = "contact@historybox.local"
    geocoder_timeout: float = 10.0

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30
    cb_storage: str = "redis"  # redis | memory

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("auth_jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure session secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("auth_jwt_secret must be at least 16 characters")
        if v in ("changeme", "secret", "password"):
            raise ValueError("auth_jwt_secret is too weak, please change it")
        return v

    @field_validator("cb_storage")
    @classmethod
    def validate_cb_storage(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("redis", "memory"):
            raise ValueError("cb_storage must be 'redis' or 'memory'")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
