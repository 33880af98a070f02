"""Schemas for registration, login and profile endpoints."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _validate_email(value: str) -> str:
    email = value.strip()
    if not EMAIL_REGEX.match(email):
        raise ValueError("Enter a valid email address.")
    return email.lower()


class RegisterRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., description="At least 8 characters")
    name: str = Field(..., min_length=1, max_length=200)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _validate_email(value)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class NotificationPreferences(BaseModel):
    email: bool = True
    push: bool = True
    transaction_alerts: bool = True
    weekly_reports: bool = True


class Preferences(BaseModel):
    currency: str = "USD"
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    theme: Literal["light", "dark"] = "dark"


class PublicUser(BaseModel):
    """User as returned to clients; never carries password or tokens."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: Literal["user", "admin"]
    avatar: Optional[str] = None
    is_email_verified: bool
    preferences: Preferences
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class RegisterResponse(BaseModel):
    message: str
    user: PublicUser


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: PublicUser


class IdentityResponse(BaseModel):
    subject_id: str
    email: str
    display_name: str
    role: Literal["user", "admin"]


class NotificationPreferencesUpdate(BaseModel):
    email: Optional[bool] = None
    push: Optional[bool] = None
    transaction_alerts: Optional[bool] = None
    weekly_reports: Optional[bool] = None


class PreferencesUpdate(BaseModel):
    currency: Optional[str] = Field(default=None, max_length=8)
    notifications: Optional[NotificationPreferencesUpdate] = None
    theme: Optional[Literal["light", "dark"]] = None


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    avatar: Optional[str] = None
    preferences: Optional[PreferencesUpdate] = None


class MessageResponse(BaseModel):
    message: str
