"""Pydantic schemas for accounts, families and auth flows.

Learn: Pydantic v2 models validate request/response data. Separate
request schemas (input) from read schemas (output) for clean APIs.
Validation messages are written for direct display in the app; the
error handler surfaces the first one as {"error": ...} with a 400.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from dianji.auth.password import password_problem

INVALID_EMAIL_MESSAGE = "Please enter a valid email address"

# Column sizes in db/models.py
NAME_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 32
EMAIL_MAX_LENGTH = 255


def _check_password(value: str) -> str:
    problem = password_problem(value)
    if problem:
        raise ValueError(problem)
    return value


def _check_required(
    value: str, message: str, label: str, max_length: int = NAME_MAX_LENGTH
) -> str:
    value = value.strip()
    if not value:
        raise ValueError(message)
    if len(value) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return value


# ─── Requests ───────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: str
    familyName: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        # email-validator accepts one-letter top-level domains
        tld = v.rsplit(".", 1)[-1]
        if len(v) > EMAIL_MAX_LENGTH or len(tld) < 2:
            raise ValueError(INVALID_EMAIL_MESSAGE)
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _check_required(v, "Please enter your name", "Name")

    @field_validator("familyName")
    @classmethod
    def _family_name(cls, v: str) -> str:
        return _check_required(v, "Please enter a family name", "Family name")


class LoginRequest(BaseModel):
    account: str = Field(description="Email or phone number")
    password: str

    @field_validator("account")
    @classmethod
    def _account(cls, v: str) -> str:
        return _check_required(
            v, "Please enter your email or phone number", "Account", EMAIL_MAX_LENGTH
        )

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Please enter your password")
        return v


class JoinRequest(BaseModel):
    invite_code: str
    phone: str
    password: str
    name: str

    @field_validator("invite_code")
    @classmethod
    def _invite_code(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 8:
            raise ValueError("Invite code format is invalid")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        v = v.strip()
        if not 10 <= len(v) <= PHONE_MAX_LENGTH:
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _check_required(v, "Please enter your name", "Name")


# ─── Responses ──────────────────────────────────────────

class UserRead(BaseModel):
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    name: str
    role: str
    family_id: str
    timezone: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FamilyRead(BaseModel):
    id: str
    name: str
    invite_code: Optional[str] = None
    invite_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MemberRead(BaseModel):
    """Family member as shown to other members (no handles)."""
    id: str
    name: str
    role: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    """Returned by register, login and join. Tokens are also set as cookies."""
    user: UserRead
    family: Optional[FamilyRead] = None
    accessToken: str


class AccessTokenResponse(BaseModel):
    accessToken: str


class MeResponse(BaseModel):
    user: UserRead
    family: Optional[FamilyRead] = None


class AuthStatusResponse(BaseModel):
    authenticated: bool
    user: Optional[UserRead] = None


class FamilyOverview(BaseModel):
    family: FamilyRead
    members: list[MemberRead]


class InviteResponse(BaseModel):
    invite_code: str
    invite_url: str
    expires_at: datetime


class InvitePreviewResponse(BaseModel):
    valid: bool
    family_name: Optional[str] = None
