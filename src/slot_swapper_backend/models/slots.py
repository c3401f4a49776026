'''
Pydantic models for calendar slots.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import SlotStatus
from .user import UserSummary


class SlotBase(BaseModel):
    """
    Base Pydantic model with common fields for a Slot.
    """
    title: str = Field(..., min_length=1, max_length=100)
    start_time: datetime
    end_time: datetime
    description: Optional[str] = Field('', max_length=500)
    location: Optional[str] = Field(None, max_length=200)


class SlotCreate(SlotBase):
    """
    Payload when CREATING a slot. 'owner_id' is taken from the token.
    New slots may start BUSY or SWAPPABLE, never SWAP_PENDING.
    """
    status: SlotStatus = SlotStatus.BUSY


class SlotUpdate(BaseModel):
    """
    Payload when UPDATING a slot. All fields optional for PATCH.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=200)
    status: Optional[SlotStatus] = None


class SlotRead(SlotBase):
    """
    Slot as sent back to the frontend.
    """
    id: UUID
    owner_id: UUID
    status: SlotStatus
    duration_minutes: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarketplaceSlotRead(SlotRead):
    """A swappable slot of another user, with its owner's public details."""
    owner: UserSummary
