'''
Pydantic models for swap requests: API payloads, engine commands and
engine results. Commands and results are frozen so an operation can't
mutate what it was given or what it handed back.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..database.db_enums import SlotStatus, SwapDecision, SwapStatus
from .slots import SlotRead
from .user import UserSummary


def _normalize_decision(value):
    """Accepts the past-tense wire values used by older clients."""
    if isinstance(value, str):
        value = value.strip().upper()
        return {"ACCEPTED": "ACCEPT", "REJECTED": "REJECT"}.get(value, value)
    return value


# --- API Payloads ---

class SwapRequestCreate(BaseModel):
    """
    JSON payload for proposing a swap. The requester comes from the token.
    """
    my_slot_id: UUID
    their_slot_id: UUID
    message: Optional[str] = Field('', max_length=500)

    @model_validator(mode="after")
    def check_distinct_slots(self):
        if self.my_slot_id == self.their_slot_id:
            raise ValueError("Cannot swap the same slot")
        return self


class SwapRespond(BaseModel):
    """JSON payload for accepting or rejecting an incoming request."""
    decision: SwapDecision = Field(validation_alias=AliasChoices("decision", "response"))

    @field_validator("decision", mode="before")
    @classmethod
    def normalize_decision(cls, value):
        return _normalize_decision(value)


# --- Engine Commands ---

class ProposeCommand(BaseModel):
    requester_id: UUID
    offered_slot_id: UUID
    wanted_slot_id: UUID
    message: str = Field('', max_length=500)

    model_config = ConfigDict(frozen=True)


class RespondCommand(BaseModel):
    responder_id: UUID
    request_id: UUID
    decision: SwapDecision

    model_config = ConfigDict(frozen=True)

    @field_validator("decision", mode="before")
    @classmethod
    def normalize_decision(cls, value):
        return _normalize_decision(value)


class CancelCommand(BaseModel):
    requester_id: UUID
    request_id: UUID

    model_config = ConfigDict(frozen=True)


# --- Read Models ---

class SwapRequestRead(BaseModel):
    """
    Raw swap request as stored, identifiers only.
    """
    id: UUID
    requester_id: UUID
    requested_user_id: UUID
    my_slot_id: Optional[UUID] = None
    their_slot_id: Optional[UUID] = None
    status: SwapStatus
    message: Optional[str] = ''
    responded_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class SwapRequestDetailRead(SwapRequestRead):
    """
    Swap request with users and slots populated, used by the listing endpoints.
    Slots may be None if they were deleted after the request was resolved.
    """
    requester: UserSummary
    requested_user: UserSummary
    my_slot: Optional[SlotRead] = None
    their_slot: Optional[SlotRead] = None


# --- Engine Results ---

class ProposeResult(BaseModel):
    request: SwapRequestRead
    offered_slot: SlotRead
    wanted_slot: SlotRead

    model_config = ConfigDict(frozen=True)


class RespondResult(BaseModel):
    decision: SwapDecision
    request: SwapRequestRead
    offered_slot: SlotRead
    wanted_slot: SlotRead
    message: str

    model_config = ConfigDict(frozen=True)


class CancelResult(BaseModel):
    request_id: UUID
    released_slot_ids: list[UUID] = Field(default_factory=list)
    skipped_slot_ids: list[UUID] = Field(default_factory=list)
    message: str = "Swap request cancelled successfully"

    model_config = ConfigDict(frozen=True)


class SlotState(BaseModel):
    id: UUID
    owner_id: UUID
    status: SlotStatus

    model_config = ConfigDict(from_attributes=True, frozen=True)


class SwapStatusRead(BaseModel):
    """
    Composite state of a swap request and the two slots it references.
    `consistent` is False when a PENDING request does not hold both slots
    in SWAP_PENDING, which only happens after a failed compensation.
    """
    request_id: UUID
    status: SwapStatus
    offered_slot: Optional[SlotState] = None
    wanted_slot: Optional[SlotState] = None
    consistent: bool

    model_config = ConfigDict(frozen=True)
