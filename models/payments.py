"""
Payment provider request models
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.settings import BILLING_PERIODS
from models.user import validate_email


class StripeSubscriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    payment_method_id: str = Field(alias="paymentMethodId")
    price_id: str = Field(alias="priceId")
    trial_end: Optional[int] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)


class ProductRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class PlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period: str
    product_id: str = Field(alias="productId")

    @field_validator("period")
    @classmethod
    def check_period(cls, value: str) -> str:
        if value not in BILLING_PERIODS:
            raise ValueError("Billing period must be either Monthly or Yearly")
        return value


class PayPalSubscriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(alias="planId")
    # PayPal subscriber object, e.g. {"name": {...}, "email_address": "..."}
    subscriber: Dict[str, Any]
    return_url: str = Field(alias="returnUrl")
    cancel_url: str = Field(alias="cancelUrl")


class CancelRequest(BaseModel):
    reason: Optional[str] = None
