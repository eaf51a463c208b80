# 📄 File: tenant_billing/shared/config/settings.py
#
# 🧭 Purpose (Layman Explanation):
# The main configuration center that reads all settings from environment variables
# (plan prices, when the daily billing run happens, payment gateway keys) and hands them
# to the rest of the billing service in an organized way.
#
# 🧪 Purpose (Technical Summary):
# Pydantic-based settings management with environment variable loading,
# validation, and type safety for database, Celery, renewal policy, plan catalog
# and payment gateway configuration.
#
# 🔗 Dependencies:
# - pydantic-settings for configuration management
# - python-dotenv for .env file loading (through pydantic-settings)
#
# 🔄 Connected Modules / Calls From:
# - tenant_billing.main (application startup)
# - tenant_billing.shared.infrastructure.database (connection parameters)
# - tenant_billing.modules.subscription_billing.container (engine wiring)
# - celery_config (broker and beat schedule)

from decimal import Decimal
from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety. Settings are loaded
    from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================

    APP_NAME: str = Field(default="Tenant Billing API", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    ENVIRONMENT: str = Field(default="development", description="Runtime environment")
    DEBUG: bool = Field(default=False, description="Debug mode flag")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log output format (json/text)")
    LOG_FILE: Optional[str] = Field(None, description="Optional log file path")
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # =========================================================================
    # DATABASE CONFIGURATION
    # =========================================================================

    DATABASE_URL: Optional[str] = Field(None, description="Async SQLAlchemy connection URL")
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="tenant_billing", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="", description="Database password")

    # Connection Pool Settings
    DB_POOL_SIZE: int = Field(default=5, description="Database pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database pool overflow")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time")

    # =========================================================================
    # CELERY / BACKGROUND JOBS
    # =========================================================================

    CELERY_BROKER_URL: str = Field(
        default="redis://localhost:6379/1",
        description="Celery broker URL"
    )
    CELERY_RESULT_BACKEND: str = Field(
        default="redis://localhost:6379/2",
        description="Celery result backend URL"
    )

    # =========================================================================
    # RENEWAL POLICY
    # =========================================================================

    # '0 6 * * *' = every day at 6:00 AM in RENEWAL_TIMEZONE
    RENEWAL_CRON_SCHEDULE: str = Field(default="0 6 * * *", description="Sweep crontab")
    RENEWAL_TIMEZONE: str = Field(default="America/Mexico_City", description="Sweep timezone")
    RENEWAL_MAX_ATTEMPTS: int = Field(
        default=1,
        ge=1,
        description="Charge attempts before degrading to the free tier"
    )
    RENEWAL_CYCLE_DAYS: int = Field(default=30, ge=1, description="Fixed billing cycle length")
    RENEWAL_LEAD_DAYS: int = Field(default=1, ge=0, description="Renew this many days before end")
    REMINDER_DAYS_BEFORE: int = Field(default=3, ge=1, description="Reminder lead time in days")
    BILLING_CURRENCY: str = Field(default="MXN", description="Billing currency")
    SIMULATE_PAYMENT_FAILURE: bool = Field(
        default=False,
        description="Fail every charge without calling the gateway (staging drills)"
    )

    # =========================================================================
    # PLAN CATALOG
    # =========================================================================

    PLAN_TIER1_PRICE: Decimal = Field(default=Decimal("399"), description="tier1 monthly price")
    PLAN_TIER2_PRICE: Decimal = Field(default=Decimal("599"), description="tier2 monthly price")
    PLAN_FREE_CAMPAIGN_LIMIT: int = Field(default=1, ge=0, description="free concurrent campaigns")
    PLAN_TIER1_CAMPAIGN_LIMIT: int = Field(default=3, ge=0, description="tier1 concurrent campaigns")

    # =========================================================================
    # PAYMENT GATEWAY (ECARTPAY)
    # =========================================================================

    ECARTPAY_ENVIRONMENT: str = Field(default="sandbox", description="sandbox or production")
    ECARTPAY_PUBLIC_KEY: Optional[str] = Field(None, description="EcartPay public key")
    ECARTPAY_SECRET_KEY: Optional[str] = Field(None, description="EcartPay secret key")
    ECARTPAY_TIMEOUT_SECONDS: int = Field(default=30, description="Gateway request timeout")
    ECARTPAY_NOTIFY_URL: Optional[str] = Field(None, description="Order notification URL")

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed_environments = ["development", "staging", "production", "test"]
        if v.lower() not in allowed_environments:
            raise ValueError(f"Environment must be one of {allowed_environments}")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of {allowed_levels}")
        return v.upper()

    @field_validator("RENEWAL_CRON_SCHEDULE")
    @classmethod
    def validate_cron_schedule(cls, v: str) -> str:
        """Validate the crontab has the five standard fields."""
        if len(v.split()) != 5:
            raise ValueError("RENEWAL_CRON_SCHEDULE must have 5 fields (m h dom mon dow)")
        return v

    @field_validator("ECARTPAY_ENVIRONMENT")
    @classmethod
    def validate_gateway_environment(cls, v: str) -> str:
        """Validate gateway environment value."""
        if v.lower() not in ("sandbox", "production"):
            raise ValueError("ECARTPAY_ENVIRONMENT must be 'sandbox' or 'production'")
        return v.lower()

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    @property
    def database_url(self) -> str:
        """Get the database URL, preferring explicit DATABASE_URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def ecartpay_base_url(self) -> str:
        """Gateway base URL for the configured environment."""
        if self.ECARTPAY_ENVIRONMENT == "production":
            return "https://ecartpay.com/api"
        return "https://sandbox.ecartpay.com/api"

    @property
    def renewal_crontab_fields(self) -> Dict[str, str]:
        """Split the crontab expression into celery.schedules.crontab kwargs."""
        minute, hour, day_of_month, month_of_year, day_of_week = self.RENEWAL_CRON_SCHEDULE.split()
        return {
            "minute": minute,
            "hour": hour,
            "day_of_month": day_of_month,
            "month_of_year": month_of_year,
            "day_of_week": day_of_week,
        }

    @property
    def debug(self) -> bool:
        """Alias for DEBUG to allow access as settings.debug"""
        return self.DEBUG

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"


# ============================================================================
# SETTINGS FACTORY
# ============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Uses lru_cache to ensure settings are loaded only once
    and reused throughout the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
