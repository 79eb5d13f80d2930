"""
Wayfarer Backend — User Schemas
=================================

What:  Request/response models for /api/v1/users and for users embedded in
       other documents (tour guides, review authors).
Why:   Embedded users must never carry internal bookkeeping fields
       (version counter, password change timestamp).
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.models.user import USER_ROLES
from app.schemas.common import APIModel


def _check_role(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in USER_ROLES:
        raise ValueError(f"Role can only be: {', '.join(USER_ROLES)}.")
    return v


class UserCreate(APIModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    photo: Optional[str] = None
    role: str = "user"

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return _check_role(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    photo: Optional[str] = None
    role: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        return _check_role(v)


class GuideSummary(APIModel):
    """User as joined into a Tour: version and passwordChangedAt projected out."""
    id: uuid.UUID
    name: str
    email: str
    photo: str
    role: str


class ReviewAuthor(APIModel):
    """User as joined into a Review."""
    id: uuid.UUID
    name: str
    photo: str


class UserResponse(APIModel):
    id: uuid.UUID
    name: str
    email: str
    photo: str
    role: str
    active: bool
    created_at: datetime
