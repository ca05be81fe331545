"""Member, authentication and account schemas."""

from datetime import datetime
import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..core.constants import (
    MAX_NAME_LENGTH,
    MAX_PASSWORD_LENGTH,
    MIN_NAME_LENGTH,
    MIN_PASSWORD_LENGTH,
    UK_MOBILE_PATTERN,
)
from ._strict_base import StrictRequestModel

ExperienceLevel = Literal["beginner", "intermediate", "advanced"]

INVALID_MOBILE_MESSAGE = (
    "Please enter a valid UK mobile number (e.g. 07123 456789 or +44 7123 456789)"
)
_PHONE_NOISE = re.compile(r"[\s\-()]")
_UK_MOBILE = re.compile(UK_MOBILE_PATTERN)


def normalize_phone(value: str) -> str:
    """Strip spaces, dashes and parentheses from a phone number."""
    return _PHONE_NOISE.sub("", value)


def normalize_uk_mobile(value: str) -> str:
    """Normalized UK mobile number; raises ValueError when it isn't one."""
    cleaned = normalize_phone(value)
    if not _UK_MOBILE.fullmatch(cleaned):
        raise ValueError(INVALID_MOBILE_MESSAGE)
    return cleaned


def _check_name(value: str) -> str:
    value = value.strip()
    if len(value) < MIN_NAME_LENGTH:
        raise ValueError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"Name must be under {MAX_NAME_LENGTH} characters")
    return value


def _check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(value) > MAX_PASSWORD_LENGTH:
        raise ValueError("Password is too long")
    return value


class MemberRegister(StrictRequestModel):
    name: str
    email: EmailStr
    phone: str
    age: Optional[int] = Field(default=None, ge=1, le=100)
    emergency_contact_name: str
    emergency_contact_phone: str = Field(..., min_length=1, max_length=20)
    password: str
    experience_level: ExperienceLevel = "beginner"
    captcha_token: Optional[str] = None
    agree_to_terms: bool

    @field_validator("name", "emergency_contact_name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("phone")
    @classmethod
    def _validate_phone(cls, v: str) -> str:
        return normalize_uk_mobile(v)

    @field_validator("emergency_contact_phone")
    @classmethod
    def _clean_emergency_phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("password")
    @classmethod
    def _validate_password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("agree_to_terms")
    @classmethod
    def _must_agree(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must agree to the Terms & Conditions and Privacy Policy")
        return v


class MemberLogin(StrictRequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class EmailRequest(StrictRequestModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class PasswordResetConfirm(StrictRequestModel):
    token: str = Field(..., min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def _validate_password(cls, v: str) -> str:
        return _check_password(v)


class DeleteAccountRequest(StrictRequestModel):
    password: str = Field(..., min_length=1)


class MemberUpdate(StrictRequestModel):
    """Fields a member may change on their own profile."""

    name: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=1, le=100)
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = Field(default=None, max_length=20)
    experience_level: Optional[ExperienceLevel] = None

    @field_validator("name", "emergency_contact_name")
    @classmethod
    def _validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _check_name(v) if v is not None else v

    @field_validator("phone")
    @classmethod
    def _validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_uk_mobile(v) if v else None

    @field_validator("emergency_contact_phone")
    @classmethod
    def _clean_emergency_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v) if v else None


class AdminMemberUpdate(MemberUpdate):
    email: Optional[EmailStr] = None
    is_admin: Optional[bool] = None
    has_used_free_session: Optional[bool] = None
    email_verified: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else None


class MemberResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    age: Optional[int] = None
    emergency_contact_name: str
    emergency_contact_phone: str
    experience_level: str
    is_admin: bool
    has_used_free_session: bool
    email_verified: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    member: MemberResponse


class MessageResponse(BaseModel):
    message: str
