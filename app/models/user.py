# app/models/user.py

import re
from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator

MAX_AGE_YEARS = 200
STRONG_PASSWORD_MESSAGE = (
    "Password must be at least 8 characters long, contain an uppercase letter, a number, and a special character"
)


def is_strong_password(password: str) -> bool:
    return (
        len(password) >= 8
        and re.search(r"[A-Z]", password) is not None
        and re.search(r"\d", password) is not None
        and re.search(r"[^A-Za-z0-9]", password) is not None
    )


# --- Request Models ---
class UserPayload(BaseModel):
    """Data required to register a new user"""
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(..., alias="firstName", min_length=1, max_length=255)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=255)
    email: EmailStr
    confirm_email: EmailStr = Field(..., alias="confirmEmail")
    password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., alias="confirmPassword", min_length=1)
    birth_date: date = Field(..., alias="birthDate")

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", "confirm_email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("birth_date", mode="before")
    @classmethod
    def accept_datetime_strings(cls, v):
        # Clients send RFC 3339 timestamps ("1990-01-01T00:00:00Z"); only the date matters
        if isinstance(v, str) and "T" in v:
            try:
                return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
            except ValueError:
                return v
        return v

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        if not is_strong_password(v):
            raise ValueError(STRONG_PASSWORD_MESSAGE)
        return v

    @field_validator("birth_date")
    @classmethod
    def check_birth_date(cls, v: date) -> date:
        today = datetime.now(timezone.utc).date()
        if v > today:
            raise ValueError("The date of birth cannot be in the future")
        if today.year - v.year - ((today.month, today.day) < (v.month, v.day)) > MAX_AGE_YEARS:
            raise ValueError(
                f"The date of birth indicates an age greater than the allowed maximum of {MAX_AGE_YEARS} years"
            )
        return v

    @field_validator("confirm_email")
    @classmethod
    def check_email_confirmation(cls, v: str, info: ValidationInfo) -> str:
        if "email" in info.data and v != info.data["email"]:
            raise ValueError("Email and confirmation email do not match")
        return v

    @field_validator("confirm_password")
    @classmethod
    def check_password_confirmation(cls, v: str, info: ValidationInfo) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Password and confirmation password do not match")
        return v


class SignInPayload(BaseModel):
    """Data required for user login"""
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


# --- Response Models ---
class SignInResponse(BaseModel):
    token: str

