"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="MediLink API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Firebase
    firebase_credentials_path: str | None = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
        description="Path to Firebase service account JSON file",
    )

    firebase_config_json: str | None = Field(
        default=None,
        alias="FIREBASE_CONFIG_JSON",
        description="Raw JSON string of the Firebase service account",
    )

    # Redis (calendar token cache)
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # Google OAuth / Calendar
    google_client_id: str = Field(default="", alias="GOOGLE_CLIENT_ID")
    google_calendar_scope: str = Field(
        default="https://www.googleapis.com/auth/calendar.events",
        alias="GOOGLE_CALENDAR_SCOPE",
    )
    google_calendar_api_url: str = Field(
        default="https://www.googleapis.com/calendar/v3",
        alias="GOOGLE_CALENDAR_API_URL",
    )
    google_calendar_id: str = Field(default="primary", alias="GOOGLE_CALENDAR_ID")
    calendar_time_zone: str = Field(
        default="UTC",
        alias="CALENDAR_TIME_ZONE",
        description="IANA time zone sent with mirrored calendar events",
    )
    calendar_token_backend: str = Field(
        default="redis",
        alias="CALENDAR_TOKEN_BACKEND",
        description="Where calendar access tokens are cached: 'redis' or 'memory'",
    )

    # Email
    email_delivery: str = Field(
        default="emailjs",
        alias="EMAIL_DELIVERY",
        description="Confirmation email transport: 'emailjs' or 'collection'",
    )
    emailjs_api_url: str = Field(
        default="https://api.emailjs.com/api/v1.0/email/send",
        alias="EMAILJS_API_URL",
    )
    emailjs_service_id: str = Field(default="", alias="EMAILJS_SERVICE_ID")
    emailjs_template_id: str = Field(default="", alias="EMAILJS_TEMPLATE_ID")
    emailjs_public_key: str = Field(default="", alias="EMAILJS_PUBLIC_KEY")
    mail_collection: str = Field(default="mail", alias="MAIL_COLLECTION")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def emailjs_configured(self) -> bool:
        """Check that every EmailJS identifier is present."""
        return bool(self.emailjs_service_id and self.emailjs_template_id and self.emailjs_public_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
