"""
Authentication request models
"""
import re
from typing import Optional

from pydantic import BaseModel, field_validator

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

SPECIALS = r"!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?"
PASSWORD_PATTERN = re.compile(
    rf"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[{SPECIALS}])[A-Za-z\d{SPECIALS}]{{8,}}$"
)
PASSWORD_MESSAGE = (
    "Password must be at least 8 characters long and contain at least 1 uppercase letter, "
    "1 lowercase letter, 1 number, and 1 special character"
)


def validate_email(email: str) -> str:
    """Validate email format; returns the lower-cased address."""
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")
    return email.lower()


def validate_password_strength(password: str) -> str:
    if not PASSWORD_PATTERN.match(password):
        raise ValueError(PASSWORD_MESSAGE)
    return password


def _not_blank(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} cannot be empty")
    return value


class SignupRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    password: str
    phone_number: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def check_first_name(cls, value: str) -> str:
        return _not_blank(value, "First name")

    @field_validator("last_name")
    @classmethod
    def check_last_name(cls, value: str) -> str:
        return _not_blank(value, "Last name")

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password_strength(value)


class SigninRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return validate_email(value)
