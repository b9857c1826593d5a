"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.03.00"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 4

    # CORS (staff UI only; public widgets are governed by per-org allowed origins)
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 60  # General API
    RATE_LIMIT_PUBLIC_READ: int = 60  # Public form config reads
    RATE_LIMIT_PUBLIC_FORMS: int = 20  # Public form submissions

    # Public forms
    PUBLIC_KEY_HEADER: str = "X-Project-Key"
    IDEMPOTENCY_HEADER: str = "X-Request-Id"
    IDEMPOTENCY_KEY_MAX_LENGTH: int = 100
    # Allow mutating public requests that carry neither Origin nor Referer
    PUBLIC_FORMS_ALLOW_NO_ORIGIN_WRITES: bool = False
    ALLOWED_ORIGINS_CACHE_TTL_SECONDS: float = 60.0
    DEFAULT_CURRENCY: str = "UAH"

    # Notifications (Resend)
    RESEND_API_KEY: str = ""
    NOTIFICATION_EMAIL_FROM: str = ""
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets


settings = Settings()
