"""
Cat profile request models
"""
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

GENDERS = ("Male", "Female")
CHECK_IN_PERIODS = ("Daily", "3 Times a Week", "Weekly")


def validate_gender(value):
    if value is not None and value not in GENDERS:
        raise ValueError("Gender must be either Male or Female")
    return value


def validate_check_in_period(value):
    if value is not None and value not in CHECK_IN_PERIODS:
        raise ValueError(f"Check-in period must be one of: {', '.join(CHECK_IN_PERIODS)}")
    return value


def validate_positive(value, label: str):
    if value is not None and value <= 0:
        raise ValueError(f"{label} must be a positive number")
    return value


class CatProfile(BaseModel):
    """Full cat profile; also the body for one-off recommendation requests."""

    name: Optional[str] = None
    photo: Optional[str] = None
    goals: str
    issues_faced: str
    activity_level: str
    gender: str
    age: int
    country: Optional[str] = None
    zipcode: Optional[str] = None
    breed: str
    weight: float
    target_weight: float
    required_progress: str
    check_in_period: str
    training_days: str
    medical_conditions: Optional[str] = None
    medications: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    medical_history: Optional[str] = None
    items: str

    @field_validator("gender")
    @classmethod
    def check_gender(cls, value):
        return validate_gender(value)

    @field_validator("check_in_period")
    @classmethod
    def check_check_in_period(cls, value):
        return validate_check_in_period(value)

    @field_validator("weight")
    @classmethod
    def check_weight(cls, value):
        return validate_positive(value, "Weight")

    @field_validator("target_weight")
    @classmethod
    def check_target_weight(cls, value):
        return validate_positive(value, "Target weight")


class CatUpdate(BaseModel):
    name: Optional[str] = None
    photo: Optional[str] = None
    goals: Optional[str] = None
    issues_faced: Optional[str] = None
    activity_level: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    country: Optional[str] = None
    zipcode: Optional[str] = None
    breed: Optional[str] = None
    weight: Optional[float] = None
    target_weight: Optional[float] = None
    required_progress: Optional[str] = None
    check_in_period: Optional[str] = None
    training_days: Optional[str] = None
    medical_conditions: Optional[str] = None
    medications: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    medical_history: Optional[str] = None
    items: Optional[str] = None

    @field_validator("gender")
    @classmethod
    def check_gender(cls, value):
        return validate_gender(value)

    @field_validator("check_in_period")
    @classmethod
    def check_check_in_period(cls, value):
        return validate_check_in_period(value)

    @field_validator("weight")
    @classmethod
    def check_weight(cls, value):
        return validate_positive(value, "Weight")

    @field_validator("target_weight")
    @classmethod
    def check_target_weight(cls, value):
        return validate_positive(value, "Target weight")

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one cat field must be provided")
        return self

    def changes(self) -> dict:
        """Only the fields the client actually sent, explicit nulls included."""
        return self.model_dump(exclude_unset=True)
