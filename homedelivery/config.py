"""Application Configuration"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Home Delivery Engine"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Billing
    BILL_DUE_DAY: int = 15
    BILL_NUMBER_PREFIX: str = "BILL"
    RECEIPT_NUMBER_PREFIX: str = "RCP"

    # Subscriptions & reminders
    CHANGE_REQUEST_LEAD_DAYS: int = 7
    REMINDER_COOLDOWN_DAYS: int = 7

    # Deliverer commission (percent of delivered publication value)
    DEFAULT_COMMISSION_RATE: float = 2.5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("BILL_DUE_DAY")
    @classmethod
    def validate_due_day(cls, v: int) -> int:
        """Due day must exist in every month"""
        if not 1 <= v <= 28:
            raise ValueError("BILL_DUE_DAY must be between 1 and 28")
        return v

    @field_validator("CHANGE_REQUEST_LEAD_DAYS", "REMINDER_COOLDOWN_DAYS")
    @classmethod
    def validate_positive_days(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive number of days")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"


# Global settings instance
settings = Settings()
