'''
Persistence for slots. Status changes only happen through the conditional
update methods, never through read-then-write on an ORM object.
'''
from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..common.logger import log
from ..common.time_utils import utcnow
from . import models as db_models
from .db_enums import SlotStatus
from .engine import get_db_session
from .utils import CasOutcome, StoreBase


class SlotStore(StoreBase):
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    async def get(self, slot_id: UUID) -> db_models.Slots | None:
        """Fetches a slot by ID, always refreshing it from the database."""
        return await self._bounded(
            self.db.get(db_models.Slots, slot_id, populate_existing=True)
        )

    async def find_by_owner(
        self,
        owner_id: UUID,
        status: Optional[SlotStatus] = None,
        start_after: Optional[datetime] = None,
        start_before: Optional[datetime] = None
    ) -> list[db_models.Slots]:
        stmt = select(db_models.Slots).filter(db_models.Slots.owner_id == owner_id)
        if status is not None:
            stmt = stmt.filter(db_models.Slots.status == status.value)
        if start_after is not None:
            stmt = stmt.filter(db_models.Slots.start_time >= start_after)
        if start_before is not None:
            stmt = stmt.filter(db_models.Slots.start_time <= start_before)
        stmt = stmt.order_by(db_models.Slots.start_time.asc())

        result = await self._bounded(self.db.execute(stmt))
        return list(result.scalars().all())

    async def find_swappable(self, exclude_owner_id: UUID, now: Optional[datetime] = None) -> list[db_models.Slots]:
        """Marketplace query: future SWAPPABLE slots of everybody except `exclude_owner_id`."""
        stmt = select(db_models.Slots).options(
            selectinload(db_models.Slots.owner)
        ).filter(
            db_models.Slots.owner_id != exclude_owner_id,
            db_models.Slots.status == SlotStatus.SWAPPABLE.value,
            db_models.Slots.start_time > (now or utcnow())
        ).order_by(db_models.Slots.start_time.asc()).execution_options(populate_existing=True)

        result = await self._bounded(self.db.execute(stmt))
        return list(result.scalars().all())

    async def create(self, slot: db_models.Slots) -> db_models.Slots:
        self.db.add(slot)
        await self._bounded(self.db.flush())
        return slot

    async def conditional_update(self, slot_id: UUID, expected_status: SlotStatus, **values: Any) -> CasOutcome:
        """
        UPDATE slots SET ... WHERE id = :slot_id AND status = :expected_status.
        Returns CONFLICT when the row exists with another status.
        """
        values = {key: self._enum_value(value) for key, value in values.items()}
        values["updated_at"] = utcnow()
        stmt = (
            update(db_models.Slots)
            .where(
                db_models.Slots.id == slot_id,
                db_models.Slots.status == expected_status.value
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._bounded(self.db.execute(stmt))
        if result.rowcount == 1:
            return CasOutcome.SUCCESS
        return await self._miss_outcome(slot_id)

    async def conditional_update_status(
        self,
        slot_id: UUID,
        expected_status: SlotStatus,
        new_status: SlotStatus,
        **other_fields: Any
    ) -> CasOutcome:
        outcome = await self.conditional_update(slot_id, expected_status, status=new_status, **other_fields)
        log.info(f"Slot {slot_id}: {expected_status.value} -> {new_status.value} ({outcome.value})")
        return outcome

    async def delete(self, slot_id: UUID, expected_status: SlotStatus) -> CasOutcome:
        stmt = (
            delete(db_models.Slots)
            .where(
                db_models.Slots.id == slot_id,
                db_models.Slots.status == expected_status.value
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._bounded(self.db.execute(stmt))
        if result.rowcount == 1:
            return CasOutcome.SUCCESS
        return await self._miss_outcome(slot_id)

    async def _miss_outcome(self, slot_id: UUID) -> CasOutcome:
        stmt = select(db_models.Slots.id).filter(db_models.Slots.id == slot_id)
        result = await self._bounded(self.db.execute(stmt))
        return CasOutcome.CONFLICT if result.first() is not None else CasOutcome.NOT_FOUND
