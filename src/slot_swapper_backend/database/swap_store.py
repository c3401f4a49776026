'''
Persistence for swap requests.
'''
from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..common.logger import log
from . import models as db_models
from .db_enums import SwapStatus
from .engine import get_db_session
from .utils import CasOutcome, StoreBase


class SwapRecordStore(StoreBase):
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    def _detailed(self):
        return select(db_models.SwapRequests).options(
            selectinload(db_models.SwapRequests.requester),
            selectinload(db_models.SwapRequests.requested_user),
            selectinload(db_models.SwapRequests.my_slot),
            selectinload(db_models.SwapRequests.their_slot)
        ).execution_options(populate_existing=True)

    async def get(self, request_id: UUID) -> db_models.SwapRequests | None:
        return await self._bounded(
            self.db.get(db_models.SwapRequests, request_id, populate_existing=True)
        )

    async def find_duplicate_pending(
        self,
        requester_id: UUID,
        requested_user_id: UUID,
        my_slot_id: UUID,
        their_slot_id: UUID
    ) -> db_models.SwapRequests | None:
        stmt = select(db_models.SwapRequests).filter(
            db_models.SwapRequests.requester_id == requester_id,
            db_models.SwapRequests.requested_user_id == requested_user_id,
            db_models.SwapRequests.my_slot_id == my_slot_id,
            db_models.SwapRequests.their_slot_id == their_slot_id,
            db_models.SwapRequests.status == SwapStatus.PENDING.value
        )
        result = await self._bounded(self.db.execute(stmt))
        return result.scalars().first()

    async def find_incoming(self, user_id: UUID, status: SwapStatus = SwapStatus.PENDING) -> list[db_models.SwapRequests]:
        stmt = self._detailed().filter(
            db_models.SwapRequests.requested_user_id == user_id,
            db_models.SwapRequests.status == status.value
        ).order_by(db_models.SwapRequests.created_at.desc())
        result = await self._bounded(self.db.execute(stmt))
        return list(result.scalars().all())

    async def find_outgoing(self, user_id: UUID, status: SwapStatus = SwapStatus.PENDING) -> list[db_models.SwapRequests]:
        stmt = self._detailed().filter(
            db_models.SwapRequests.requester_id == user_id,
            db_models.SwapRequests.status == status.value
        ).order_by(db_models.SwapRequests.created_at.desc())
        result = await self._bounded(self.db.execute(stmt))
        return list(result.scalars().all())

    async def create(self, record: db_models.SwapRequests) -> db_models.SwapRequests:
        """Inserts the record. A duplicate PENDING tuple raises IntegrityError on flush."""
        self.db.add(record)
        await self._bounded(self.db.flush())
        log.info(f"Swap request {record.id} created ({record.status}).")
        return record

    async def conditional_update_status(
        self,
        request_id: UUID,
        expected_status: SwapStatus,
        new_status: SwapStatus,
        responded_at: Optional[datetime]
    ) -> CasOutcome:
        stmt = (
            update(db_models.SwapRequests)
            .where(
                db_models.SwapRequests.id == request_id,
                db_models.SwapRequests.status == expected_status.value
            )
            .values(status=new_status.value, responded_at=responded_at)
            .execution_options(synchronize_session=False)
        )
        result = await self._bounded(self.db.execute(stmt))
        outcome = CasOutcome.SUCCESS if result.rowcount == 1 else await self._miss_outcome(request_id)
        log.info(f"Swap request {request_id}: {expected_status.value} -> {new_status.value} ({outcome.value})")
        return outcome

    async def delete(self, request_id: UUID, expected_status: Optional[SwapStatus] = None) -> CasOutcome:
        stmt = delete(db_models.SwapRequests).where(db_models.SwapRequests.id == request_id)
        if expected_status is not None:
            stmt = stmt.where(db_models.SwapRequests.status == expected_status.value)
        stmt = stmt.execution_options(synchronize_session=False)

        result = await self._bounded(self.db.execute(stmt))
        outcome = CasOutcome.SUCCESS if result.rowcount == 1 else await self._miss_outcome(request_id)
        log.info(f"Swap request {request_id}: delete ({outcome.value})")
        return outcome

    async def restore(self, snapshot: dict[str, Any]) -> CasOutcome:
        """Re-inserts a previously deleted record from a column snapshot."""
        # Core insert, the deleted instance may still sit in the identity map
        stmt = insert(db_models.SwapRequests).values(**snapshot)
        await self._bounded(self.db.execute(stmt))
        log.info(f"Swap request {snapshot['id']} restored.")
        return CasOutcome.SUCCESS

    async def record_cancellation(
        self,
        request_id: UUID,
        requester_id: UUID,
        requested_user_id: UUID,
        cancelled_at: datetime
    ) -> CasOutcome:
        stmt = insert(db_models.CancelledSwapRequests).values(
            request_id=request_id,
            requester_id=requester_id,
            requested_user_id=requested_user_id,
            cancelled_at=cancelled_at
        )
        await self._bounded(self.db.execute(stmt))
        return CasOutcome.SUCCESS

    async def forget_cancellation(self, request_id: UUID) -> CasOutcome:
        stmt = delete(db_models.CancelledSwapRequests).where(
            db_models.CancelledSwapRequests.request_id == request_id
        ).execution_options(synchronize_session=False)
        result = await self._bounded(self.db.execute(stmt))
        return CasOutcome.SUCCESS if result.rowcount == 1 else CasOutcome.NOT_FOUND

    async def get_cancellation(self, request_id: UUID) -> db_models.CancelledSwapRequests | None:
        return await self._bounded(
            self.db.get(db_models.CancelledSwapRequests, request_id, populate_existing=True)
        )

    async def _miss_outcome(self, request_id: UUID) -> CasOutcome:
        stmt = select(db_models.SwapRequests.id).filter(db_models.SwapRequests.id == request_id)
        result = await self._bounded(self.db.execute(stmt))
        return CasOutcome.CONFLICT if result.first() is not None else CasOutcome.NOT_FOUND
