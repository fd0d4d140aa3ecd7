"""
Configuration settings for the application
"""
from decimal import Decimal
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed subscription values
PLAN_BASIC = "Basic"
PLAN_PREMIUM = "Premium"
PLANS = (PLAN_BASIC, PLAN_PREMIUM)

BILLING_MONTHLY = "Monthly"
BILLING_YEARLY = "Yearly"
BILLING_PERIODS = (BILLING_MONTHLY, BILLING_YEARLY)

PROVIDER_STRIPE = "Stripe"
PROVIDER_PAYPAL = "PayPal"
PROVIDERS = (PROVIDER_STRIPE, PROVIDER_PAYPAL)

# Price table shared by both billing providers
PRICE_TABLE = {
    BILLING_MONTHLY: {
        "amount": Decimal("49.99"),
        "currency": "USD",
        "interval": "month",
        "trial_days": 3,
        "name": "Monthly Subscription Plan",
    },
    BILLING_YEARLY: {
        "amount": Decimal("299.99"),
        "currency": "USD",
        "interval": "year",
        "trial_days": 7,
        "name": "Annual Subscription Plan",
    },
}

PRODUCT_NAME = "Cat care AI Service"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Core authentication
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_expires_minutes: int = Field(default=60, alias="JWT_EXPIRES_MINUTES")

    # Infrastructure configuration
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./kittycare.db", alias="DATABASE_URL")
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")

    # Stripe billing configuration
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")

    # PayPal billing configuration
    paypal_client_id: Optional[str] = Field(default=None, alias="PAYPAL_CLIENT_ID")
    paypal_secret_key: Optional[str] = Field(default=None, alias="PAYPAL_SECRET_KEY")
    paypal_base_url: str = Field(default="https://api-m.sandbox.paypal.com/v1", alias="PAYPAL_BASE_URL")
    paypal_brand_name: str = Field(default="KittyCare", alias="PAYPAL_BRAND_NAME")

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = Field(default=None, alias="SENDGRID_API_KEY")
    sendgrid_from_email: str = Field(default="noreply@kittycareapp.com", alias="SENDGRID_FROM_EMAIL")
    sendgrid_from_name: str = Field(default="Kitty Care App", alias="SENDGRID_FROM_NAME")

    # Analytics (Klaviyo)
    klaviyo_api_key: Optional[str] = Field(default=None, alias="KLAVIYO_API_KEY")
    klaviyo_revision: str = Field(default="2024-10-15", alias="KLAVIYO_REVISION")

    # OpenAI
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.env and settings.env.lower() == "production")
