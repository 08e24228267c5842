from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Database settings
    DATABASE_URL: str = "postgresql://localhost:5432/artist_command_center"

    # Auth settings
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24

    # Public base URL used in unsubscribe links
    APP_URL: str = "http://localhost:3000"

    # Email delivery
    EMAIL_PROVIDER: str = "resend"  # "resend" or "smtp"
    SENDER_EMAIL: str = "noreply@example.com"
    SENDER_NAME: str = "Artist Command Center"

    RESEND_API_KEY: str | None = None
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_WEBHOOK_SECRET: str | None = None

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_SSL: bool = False

    # Mailgun (sending domain verification only)
    MAILGUN_API_KEY: str | None = None
    MAILGUN_BASE_URL: str = "https://api.mailgun.net/v3"

    # Quota
    DEFAULT_DAILY_EMAIL_LIMIT: int = 1000
    MAX_DAILY_EMAIL_LIMIT: int = 10000
    DEFAULT_MAX_CONTACTS: int = 100

    # Password reset links
    PASSWORD_RESET_TOKEN_EXPIRY_MINUTES: int = 60

    # HTTP
    CORS_ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def unsubscribe_base_url(self) -> str:
        """Base for one-click unsubscribe links (the public API route)."""
        return f"{self.APP_URL.rstrip('/')}/api"

    def password_reset_url(self, token: str) -> str:
        return f"{self.APP_URL.rstrip('/')}/reset-password?token={token}"

    def default_from_address(self) -> str:
        return f"{self.SENDER_NAME} <{self.SENDER_EMAIL}>"

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            # Campaign sends hold one connection for the draft lock plus one
            # per recipient transaction, so keep at least a handful around.
            config.update(
                {
                    "min_size": 2,
                    "max_size": 8,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
