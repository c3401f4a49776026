'''
Owner-facing slot CRUD and the marketplace listing.
'''
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status

from ..common.exceptions import ConflictError
from ..common.logger import log
from ..common.time_utils import as_utc, utcnow
from ..core.slot_state import SlotStateMachine
from ..database import models as db_models
from ..database.db_enums import SlotStatus
from ..database.slot_store import SlotStore
from ..database.utils import CasOutcome
from ..models import slots as slot_models


class SlotService:
    """
    Service for all business logic around a user's own slots.
    Status changes go through the SlotStateMachine and are written with a
    compare-and-swap, so an owner edit can never overwrite an engine lock.
    """
    def __init__(self, slots: Annotated[SlotStore, Depends(SlotStore)]):
        self.slots = slots

    # --- Helpers ---

    async def _get_owned_slot(self, slot_id: UUID, current_user: db_models.Users) -> db_models.Slots:
        slot = await self.slots.get(slot_id)
        if not slot:
            log.warning(f"Tried to fetch non-existing slot: {slot_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Slot not found.")
        if slot.owner_id != current_user.id:
            log.warning(f"SECURITY: User {current_user.id} tried to access slot {slot_id} owned by {slot.owner_id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this slot."
            )
        return slot

    @staticmethod
    def _validate_time_range(start_time: datetime, end_time: datetime) -> None:
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        if end_time <= start_time:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End time must be after start time")
        if start_time < utcnow():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot schedule slots in the past")

    # --- Public Read Methods ---

    async def get_slot_for_api(self, slot_id: UUID, current_user: db_models.Users) -> slot_models.SlotRead:
        slot = await self._get_owned_slot(slot_id, current_user)
        return slot_models.SlotRead.model_validate(slot)

    async def get_my_slots_for_api(
        self,
        current_user: db_models.Users,
        slot_status: Optional[SlotStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> list[slot_models.SlotRead]:
        log.info(f"User {current_user.id} listing own slots (status={slot_status}).")
        slots = await self.slots.find_by_owner(
            current_user.id,
            status=slot_status,
            start_after=as_utc(start_date) if start_date else None,
            start_before=as_utc(end_date) if end_date else None
        )
        return [slot_models.SlotRead.model_validate(slot) for slot in slots]

    async def get_marketplace_for_api(self, current_user: db_models.Users) -> list[slot_models.MarketplaceSlotRead]:
        log.info(f"User {current_user.id} browsing the marketplace.")
        slots = await self.slots.find_swappable(current_user.id)
        return [slot_models.MarketplaceSlotRead.model_validate(slot) for slot in slots]

    # --- Public Write Methods ---

    async def create_slot_for_api(self, data: slot_models.SlotCreate, current_user: db_models.Users) -> slot_models.SlotRead:
        log.info(f"User {current_user.id} creating slot '{data.title}'.")
        self._validate_time_range(data.start_time, data.end_time)
        SlotStateMachine.ensure_owner_transition(SlotStatus.BUSY, data.status)

        new_slot = db_models.Slots(
            owner_id=current_user.id,
            title=data.title.strip(),
            description=data.description or '',
            location=data.location,
            start_time=as_utc(data.start_time),
            end_time=as_utc(data.end_time),
            status=data.status.value,
            created_at=utcnow(),
            updated_at=utcnow()
        )
        await self.slots.create(new_slot)
        return slot_models.SlotRead.model_validate(new_slot)

    async def update_slot_for_api(
        self,
        slot_id: UUID,
        data: slot_models.SlotUpdate,
        current_user: db_models.Users
    ) -> slot_models.SlotRead:
        log.info(f"User {current_user.id} attempting to update slot {slot_id}.")
        slot = await self._get_owned_slot(slot_id, current_user)
        current_status = SlotStatus(slot.status)

        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

        SlotStateMachine.ensure_editable(current_status)
        if update_data.get("status") is not None:
            SlotStateMachine.ensure_owner_transition(current_status, update_data["status"])

        if "start_time" in update_data or "end_time" in update_data:
            self._validate_time_range(
                update_data.get("start_time") or slot.start_time,
                update_data.get("end_time") or slot.end_time
            )

        values = {}
        for key, value in update_data.items():
            if value is None and key in ("title", "start_time", "end_time", "status"):
                continue # required columns can't be cleared
            if key in ("start_time", "end_time"):
                value = as_utc(value)
            values[key] = value

        outcome = await self.slots.conditional_update(slot.id, current_status, **values)
        if outcome is CasOutcome.NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Slot not found.")
        if outcome is CasOutcome.CONFLICT:
            log.warning(f"Slot {slot_id} changed status while user {current_user.id} was updating it.")
            raise ConflictError("Slot was changed by another request, please retry")

        return slot_models.SlotRead.model_validate(await self.slots.get(slot.id))

    async def delete_slot(self, slot_id: UUID, current_user: db_models.Users) -> bool:
        log.info(f"User {current_user.id} attempting to delete slot {slot_id}.")
        slot = await self._get_owned_slot(slot_id, current_user)
        current_status = SlotStatus(slot.status)
        SlotStateMachine.ensure_deletable(current_status)

        outcome = await self.slots.delete(slot.id, expected_status=current_status)
        if outcome is CasOutcome.CONFLICT:
            # Most likely locked by a proposal in the meantime
            raise ConflictError("Slot was changed by another request, please retry")
        return outcome is CasOutcome.SUCCESS
