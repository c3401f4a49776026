'''
API-facing wrapper around the swap engine: builds commands from the
authenticated user and serves the incoming / outgoing listings.
'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends

from ..common.logger import log
from ..database import models as db_models
from ..database.db_enums import SwapDecision, SwapStatus
from ..database.swap_store import SwapRecordStore
from ..models import swaps as swap_models
from .swap_engine import SwapTransactionEngine


class SwapRequestService:
    def __init__(
        self,
        engine: Annotated[SwapTransactionEngine, Depends(SwapTransactionEngine)],
        swaps: Annotated[SwapRecordStore, Depends(SwapRecordStore)]
    ):
        self.engine = engine
        self.swaps = swaps

    async def propose_for_api(
        self,
        data: swap_models.SwapRequestCreate,
        current_user: db_models.Users
    ) -> swap_models.ProposeResult:
        return await self.engine.propose(swap_models.ProposeCommand(
            requester_id=current_user.id,
            offered_slot_id=data.my_slot_id,
            wanted_slot_id=data.their_slot_id,
            message=data.message or ''
        ))

    async def respond_for_api(
        self,
        request_id: UUID,
        decision: SwapDecision,
        current_user: db_models.Users
    ) -> swap_models.RespondResult:
        return await self.engine.respond(swap_models.RespondCommand(
            responder_id=current_user.id,
            request_id=request_id,
            decision=decision
        ))

    async def cancel_for_api(self, request_id: UUID, current_user: db_models.Users) -> swap_models.CancelResult:
        return await self.engine.cancel(swap_models.CancelCommand(
            requester_id=current_user.id,
            request_id=request_id
        ))

    async def get_status_for_api(self, request_id: UUID, current_user: db_models.Users) -> swap_models.SwapStatusRead:
        return await self.engine.get_status(current_user.id, request_id)

    async def get_incoming_for_api(
        self,
        current_user: db_models.Users,
        swap_status: SwapStatus = SwapStatus.PENDING
    ) -> list[swap_models.SwapRequestDetailRead]:
        log.info(f"User {current_user.id} listing incoming {swap_status.value} swap requests.")
        records = await self.swaps.find_incoming(current_user.id, swap_status)
        return [swap_models.SwapRequestDetailRead.model_validate(record) for record in records]

    async def get_outgoing_for_api(
        self,
        current_user: db_models.Users,
        swap_status: SwapStatus = SwapStatus.PENDING
    ) -> list[swap_models.SwapRequestDetailRead]:
        log.info(f"User {current_user.id} listing outgoing {swap_status.value} swap requests.")
        records = await self.swaps.find_outgoing(current_user.id, swap_status)
        return [swap_models.SwapRequestDetailRead.model_validate(record) for record in records]
