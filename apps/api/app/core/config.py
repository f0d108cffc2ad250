"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    
    # Environment
    ENV: str = "dev"
    
    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    # Database
    DATABASE_URL: str = "sqlite:///./listing_appointments.db"
    
    # Session Token (supports key rotation)
    # Tokens are issued by the identity service; this API only verifies them.
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 4
    
    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"
    
    # Frontend (for links in notification emails)
    FRONTEND_URL: str = "http://localhost:3000"
    PROPERTY_PLACEHOLDER_IMAGE: str = "https://example.com/placeholder-listing.jpg"
    
    # Outbound email (Resend-compatible HTTP API)
    EMAIL_API_URL: str = "https://api.resend.com/emails"
    EMAIL_API_KEY: str = ""  # Empty disables delivery (messages are logged only)
    EMAIL_FROM: str = "noreply@example.com"
    EMAIL_TIMEOUT_SECONDS: float = 10.0
    
    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""
    
    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 60  # General API
    RATE_LIMIT_BOOKING: int = 10  # Public appointment requests
    
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
    
    @property
    def email_enabled(self) -> bool:
        """Outbound email is only attempted when an API key is configured."""
        return bool(self.EMAIL_API_KEY)


settings = Settings()
