"""
Subscription request models
"""
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from config.settings import BILLING_PERIODS, PLANS, PROVIDERS

UPDATE_REQUIRED_MESSAGE = "At least one of plan, end_date, start_date, provider or billing_period must be provided"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def validate_end_date(value: date, today: Optional[date] = None) -> date:
    """end_date must be strictly after today (UTC); today itself is rejected."""
    if value <= (today or utc_today()):
        raise ValueError("End date must be in the future")
    return value


def validate_plan(value: str) -> str:
    if value not in PLANS:
        raise ValueError(f"Plan must be one of: {', '.join(PLANS)}")
    return value


def validate_provider(value: str) -> str:
    if value not in PROVIDERS:
        raise ValueError("Provider must be either PayPal or Stripe")
    return value


def validate_billing_period(value: str) -> str:
    if value not in BILLING_PERIODS:
        raise ValueError("Billing period must be either Monthly or Yearly")
    return value


class SubscriptionCreate(BaseModel):
    plan: str
    start_date: date
    end_date: date
    provider: str
    billing_period: str
    # Provider-issued subscription handle, when the client already created one
    id: Optional[str] = None

    @field_validator("plan")
    @classmethod
    def check_plan(cls, value: str) -> str:
        return validate_plan(value)

    @field_validator("provider")
    @classmethod
    def check_provider(cls, value: str) -> str:
        return validate_provider(value)

    @field_validator("billing_period")
    @classmethod
    def check_billing_period(cls, value: str) -> str:
        return validate_billing_period(value)

    @field_validator("end_date")
    @classmethod
    def check_end_date(cls, value: date) -> date:
        return validate_end_date(value)


class SubscriptionUpdate(BaseModel):
    plan: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    provider: Optional[str] = None
    billing_period: Optional[str] = None

    @field_validator("plan")
    @classmethod
    def check_plan(cls, value):
        return validate_plan(value) if value is not None else value

    @field_validator("provider")
    @classmethod
    def check_provider(cls, value):
        return validate_provider(value) if value is not None else value

    @field_validator("billing_period")
    @classmethod
    def check_billing_period(cls, value):
        return validate_billing_period(value) if value is not None else value

    @field_validator("end_date")
    @classmethod
    def check_end_date(cls, value):
        return validate_end_date(value) if value is not None else value

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.changes():
            raise ValueError(UPDATE_REQUIRED_MESSAGE)
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)
