"""Application settings and configuration.

This module defines all configuration options for the help-desk service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="SDO Help Desk", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./helpdesk.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # CAPTCHA challenge and per-IP failure throttling
    captcha_ttl_seconds: int = Field(default=15 * 60, alias="CAPTCHA_TTL_SECONDS")
    captcha_max_failures_per_ip: int = Field(default=3, alias="CAPTCHA_MAX_FAILURES_PER_IP")
    captcha_block_seconds: int = Field(default=10 * 60, alias="CAPTCHA_BLOCK_SECONDS")
    captcha_failure_reset_seconds: int = Field(
        default=30 * 60,
        alias="CAPTCHA_FAILURE_RESET_SECONDS",
    )
    # The code is echoed back to the client alongside its id; disable once an
    # out-of-band renderer (image/audio) delivers the challenge instead.
    captcha_expose_code: bool = Field(default=True, alias="CAPTCHA_EXPOSE_CODE")

    # Ticket submission throttling per (email, IP)
    submission_max_attempts: int = Field(default=3, alias="SUBMISSION_MAX_ATTEMPTS")
    submission_window_seconds: int = Field(default=15 * 60, alias="SUBMISSION_WINDOW_SECONDS")
    submission_cooldown_seconds: int = Field(
        default=10 * 60,
        alias="SUBMISSION_COOLDOWN_SECONDS",
    )

    # Honour X-Forwarded-For when running behind a reverse proxy
    trust_proxy_headers: bool = Field(default=False, alias="TRUST_PROXY_HEADERS")

    # Outbound email (SMTP)
    email_notifications_enabled: bool = Field(
        default=False,
        alias="EMAIL_NOTIFICATIONS_ENABLED",
    )
    smtp_host: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    sender_name: str = Field(default="Ticket System", alias="SENDER_NAME")
    sender_email: str | None = Field(default=None, alias="SENDER_EMAIL")
    smtp_timeout_seconds: float = Field(default=10.0, alias="SMTP_TIMEOUT_SECONDS")

    # Default location recorded for troubleshooting tickets filed from the office
    default_office_location: str = Field(
        default="SDO - Imus City",
        alias="DEFAULT_OFFICE_LOCATION",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def email_configured(self) -> bool:
        """Return True when SMTP notifications are enabled and credentialed.

        Returns:
            True if outbound email should be attempted
        """
        return bool(
            self.email_notifications_enabled and self.smtp_user and self.smtp_password
        )

    @property
    def effective_sender_email(self) -> str | None:
        """Return the From address, falling back to the SMTP login."""
        return self.sender_email or self.smtp_user


settings = Settings()  # type: ignore[call-arg]
