"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "NFC Equipment Tracker"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    # Base URL of the web client, used to build password reset links.
    APP_URL: str = "http://localhost:5173"

    # Database
    DATABASE_URL: str = "sqlite:///./equiptrack.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Proxy / client IP handling
    # Only trust X-Forwarded-* headers when running behind a trusted reverse proxy (e.g. nginx).
    TRUST_PROXY_HEADERS: bool = False

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    CELERY_TASK_ALWAYS_EAGER: bool = False

    # JWT (no default secret: a missing value is reported as a server misconfiguration)
    JWT_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_IN_MINUTES: int = 7 * 24 * 60
    JWT_LEEWAY_SECONDS: int = 0  # clock skew tolerance for exp validation

    # Password policy
    BCRYPT_ROUNDS: int = 10
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_RESET_EXPIRATION_MINUTES: int = 30

    # Equipment
    DEFAULT_EQUIPMENT_STATUS: str = "IN_SERVICE"

    # Rate limits (enforced in the API layer using Redis)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_REQUESTS: int = 100
    AUTH_LOGIN_IP_LIMIT: int = 5  # per RATE_LIMIT_WINDOW_SECONDS
    AUTH_REGISTER_IP_LIMIT_PER_HOUR: int = 3
    AUTH_FORGOT_PASSWORD_IP_LIMIT_PER_HOUR: int = 5

    # Email
    EMAIL_ENABLED: bool = False
    EMAIL_FROM: str = "no-reply@nfc-manager.local"
    EMAIL_API_URL: str | None = None
    EMAIL_API_TOKEN: str | None = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
