'''
Pydantic models for user accounts.
'''
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    """
    Pydantic model for validating the signup payload.
    """
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class UserRead(BaseModel):
    """
    Safe public profile of a user (never includes the password hash).
    Corresponds to the db_models.Users ORM model.
    """
    id: UUID
    name: str
    email: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Lean user object nested inside slots and swap requests."""
    id: UUID
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)
