'''
Swap transaction engine.

Moves a swap request and the two slots it references between their valid
composite states. All coordination goes through the stores' conditional
writes: a slot leaves SWAPPABLE only via a compare-and-swap on its status,
so of two racing proposals on one slot exactly one can win.

Writes always happen in the order request -> offered slot -> wanted slot.
With SWAP_ATOMIC_COMMIT the three writes share one database transaction.
Without it every write is committed on its own and a failure later in the
sequence is undone by reverting the earlier writes, newest first.
'''
import uuid
from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..common.config import settings
from ..common.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
    AlreadyResolvedError,
    StoreTimeoutError,
    SwapEngineError,
    TransactionFailedError,
)
from ..common.logger import log
from ..common.time_utils import utcnow
from ..core.slot_state import SlotStateMachine
from ..core.swap_state import SwapStateMachine
from ..database import models as db_models
from ..database.db_enums import SlotStatus, SwapDecision, SwapStatus
from ..database.slot_store import SlotStore
from ..database.swap_store import SwapRecordStore
from ..database.utils import CasOutcome
from ..models import slots as slot_models
from ..models import swaps as swap_models


@dataclass
class WriteStep:
    """
    One conditional write of a multi-record operation.
    `apply` and `undo` return the CasOutcome of the write.
    Optional steps tolerate CONFLICT / NOT_FOUND and are simply skipped.
    """
    name: str
    apply: Callable[[], Awaitable[CasOutcome]]
    undo: Optional[Callable[[], Awaitable[CasOutcome]]] = None
    on_loss: type[SwapEngineError] = ConflictError
    loss_message: str = "Lost a concurrent update, please retry"
    optional: bool = False


_FAILURES = (SwapEngineError, StoreTimeoutError, SQLAlchemyError)


class SwapTransactionEngine:
    """
    Orchestrates the slot and swap state machines for propose, respond,
    cancel and the read-only status query.
    """
    def __init__(
        self,
        slots: Annotated[SlotStore, Depends(SlotStore)],
        swaps: Annotated[SwapRecordStore, Depends(SwapRecordStore)]
    ):
        self.slots = slots
        self.swaps = swaps
        self.atomic_commit = settings.SWAP_ATOMIC_COMMIT

    # --- Internal Fetchers ---

    async def _get_slot_or_404(self, slot_id: Optional[UUID], label: str) -> db_models.Slots:
        slot = await self.slots.get(slot_id) if slot_id is not None else None
        if slot is None:
            log.warning(f"{label} slot {slot_id} not found.")
            raise NotFoundError("One or both slots not found", details={"slot_id": str(slot_id)})
        return slot

    async def _get_request_or_404(
        self,
        request_id: UUID,
        user_id: Optional[UUID] = None,
        cancelled_error: Optional[SwapEngineError] = None
    ) -> db_models.SwapRequests:
        """
        With `cancelled_error`, a request that `user_id` had cancelled (or had
        cancelled on them) raises that error instead of NotFound.
        """
        record = await self.swaps.get(request_id)
        if record is None:
            if cancelled_error is not None:
                marker = await self.swaps.get_cancellation(request_id)
                if marker is not None and user_id in (marker.requester_id, marker.requested_user_id):
                    log.warning(f"Swap request {request_id} was cancelled at {marker.cancelled_at}.")
                    raise cancelled_error
            log.warning(f"Swap request {request_id} not found.")
            raise NotFoundError("Swap request not found", details={"request_id": str(request_id)})
        return record

    # --- Write Sequencing ---

    async def _run_steps(self, operation: str, steps: list[WriteStep], details: dict[str, Any]) -> list[str]:
        """
        Applies `steps` in order. Returns the names of the steps that were
        skipped (optional steps whose condition no longer held).
        """
        applied: list[WriteStep] = []
        committed = 0
        skipped: list[str] = []
        try:
            for step in steps:
                outcome = await step.apply()
                if outcome is not CasOutcome.SUCCESS:
                    if step.optional:
                        log.warning(f"{operation}: skipped {step.name} ({outcome.value})")
                        skipped.append(step.name)
                        continue
                    log.warning(f"{operation}: {step.name} failed its condition ({outcome.value})")
                    raise step.on_loss(
                        step.loss_message,
                        details={**details, "step": step.name, "outcome": outcome.value}
                    )
                applied.append(step)
                if not self.atomic_commit:
                    await self.swaps.commit()
                    committed += 1
            if self.atomic_commit:
                await self.swaps.commit()
        except _FAILURES as exc:
            await self._safe_rollback(operation)
            if not self.atomic_commit:
                await self._compensate(operation, applied, committed, details, exc)
            error = self._as_engine_error(exc, details)
            if error is exc:
                raise
            raise error from exc
        return skipped

    async def _compensate(
        self,
        operation: str,
        applied: list[WriteStep],
        committed: int,
        details: dict[str, Any],
        cause: Exception
    ) -> None:
        """
        Reverts applied steps newest first. A step past `committed` may or may
        not have reached the database, so its undo is allowed to miss.
        """
        failures: list[str] = []
        for index in reversed(range(len(applied))):
            step = applied[index]
            if step.undo is None:
                continue
            try:
                outcome = await step.undo()
                await self.swaps.commit()
            except (StoreTimeoutError, SQLAlchemyError) as undo_exc:
                await self._safe_rollback(operation)
                failures.append(f"{step.name}: {undo_exc!r}")
                continue
            if outcome is not CasOutcome.SUCCESS and index < committed:
                failures.append(f"{step.name}: {outcome.value}")

        if failures:
            failure_details = {
                **details,
                "applied_steps": [step.name for step in applied],
                "undo_failures": failures,
                "cause": repr(cause),
            }
            log.critical(f"{operation}: compensation failed, manual reconciliation required: {failure_details}")
            raise TransactionFailedError(
                f"{operation} failed and could not be rolled back",
                details=failure_details
            ) from cause
        log.info(f"{operation}: compensated {len(applied)} step(s) after {cause!r}")

    async def _safe_rollback(self, operation: str) -> None:
        try:
            await self.swaps.rollback()
        except (StoreTimeoutError, SQLAlchemyError) as e:
            log.error(f"{operation}: rollback failed: {e}", exc_info=True)

    @staticmethod
    def _as_engine_error(exc: Exception, details: dict[str, Any]) -> Exception:
        if isinstance(exc, SwapEngineError):
            return exc
        if isinstance(exc, IntegrityError):
            return ConflictError("A pending swap request already exists for these slots", details=details)
        if isinstance(exc, StoreTimeoutError):
            return ConflictError("The store timed out, no changes were kept. Please retry.", details=details)
        return exc

    # --- Operations ---

    async def propose(self, command: swap_models.ProposeCommand) -> swap_models.ProposeResult:
        """
        Creates a PENDING swap request and locks both slots in SWAP_PENDING.
        Preconditions are checked in order, the first failure wins.
        """
        log.info(f"User {command.requester_id} proposing swap {command.offered_slot_id} <-> {command.wanted_slot_id}")

        # 1. Both slots exist
        offered = await self._get_slot_or_404(command.offered_slot_id, "Offered")
        wanted = await self._get_slot_or_404(command.wanted_slot_id, "Wanted")

        # 2. Requester owns the offered slot
        if offered.owner_id != command.requester_id:
            log.warning(f"SECURITY: User {command.requester_id} tried to offer slot {offered.id} owned by {offered.owner_id}.")
            raise ForbiddenError("You can only offer your own slots")

        # 3. No self-swap
        if wanted.owner_id == command.requester_id:
            raise InvalidOperationError("Cannot swap with your own slots")

        recipient_id = wanted.owner_id
        duplicate_key = (command.requester_id, recipient_id, offered.id, wanted.id)

        # 4. Both slots SWAPPABLE. When they are locked by this very proposal the
        #    duplicate is the more precise answer.
        if not (SlotStateMachine.is_offerable(offered.status) and SlotStateMachine.is_offerable(wanted.status)):
            if await self.swaps.find_duplicate_pending(*duplicate_key):
                raise ConflictError("You have already sent a swap request for these slots")
            if not SlotStateMachine.is_offerable(offered.status):
                raise InvalidStateError("Your slot must be in SWAPPABLE status")
            raise InvalidStateError("The requested slot is no longer available for swapping")

        # 5. No duplicate pending request
        if await self.swaps.find_duplicate_pending(*duplicate_key):
            raise ConflictError("You have already sent a swap request for these slots")

        request_id = uuid.uuid4()
        offered_id, wanted_id = offered.id, wanted.id
        details = {
            "operation": "propose",
            "request_id": str(request_id),
            "offered_slot_id": str(offered_id),
            "wanted_slot_id": str(wanted_id),
        }

        async def create_request() -> CasOutcome:
            await self.swaps.create(db_models.SwapRequests(
                id=request_id,
                requester_id=command.requester_id,
                requested_user_id=recipient_id,
                my_slot_id=offered_id,
                their_slot_id=wanted_id,
                status=SwapStatus.PENDING.value,
                message=command.message or '',
                created_at=utcnow()
            ))
            return CasOutcome.SUCCESS

        def lock(slot_id: UUID) -> Callable[[], Awaitable[CasOutcome]]:
            return self._status_writer(slot_id, SlotStatus.SWAPPABLE, SlotStatus.SWAP_PENDING)

        def unlock(slot_id: UUID) -> Callable[[], Awaitable[CasOutcome]]:
            return self._revert_writer(slot_id, SlotStatus.SWAP_PENDING, SlotStatus.SWAPPABLE)

        await self._run_steps("propose", [
            WriteStep(
                "create_request", create_request,
                undo=lambda: self.swaps.delete(request_id, expected_status=SwapStatus.PENDING)
            ),
            WriteStep(
                "lock_offered_slot", lock(offered_id), undo=unlock(offered_id),
                loss_message="Your slot was changed by another request, please retry"
            ),
            WriteStep(
                "lock_wanted_slot", lock(wanted_id), undo=unlock(wanted_id),
                loss_message="The requested slot was taken by another swap request"
            ),
        ], details)

        log.info(f"Swap request {request_id} created, slots {offered_id} and {wanted_id} locked.")
        return swap_models.ProposeResult(
            request=swap_models.SwapRequestRead.model_validate(await self._get_request_or_404(request_id)),
            offered_slot=slot_models.SlotRead.model_validate(await self._get_slot_or_404(offered_id, "Offered")),
            wanted_slot=slot_models.SlotRead.model_validate(await self._get_slot_or_404(wanted_id, "Wanted")),
        )

    async def respond(self, command: swap_models.RespondCommand) -> swap_models.RespondResult:
        """
        ACCEPT exchanges the owners of both slots and sets them BUSY.
        REJECT leaves the owners alone and releases both slots to SWAPPABLE.
        """
        log.info(f"User {command.responder_id} responding {command.decision.value} to swap request {command.request_id}")

        record = await self._get_request_or_404(
            command.request_id,
            command.responder_id,
            cancelled_error=AlreadyResolvedError("This request has been cancelled by the requester")
        )
        if record.requested_user_id != command.responder_id:
            log.warning(f"SECURITY: User {command.responder_id} tried to respond to swap request {record.id}.")
            raise ForbiddenError("You are not authorized to respond to this request")
        SwapStateMachine.ensure_can_respond(record.status)

        offered = await self._get_slot_or_404(record.my_slot_id, "Offered")
        wanted = await self._get_slot_or_404(record.their_slot_id, "Wanted")

        request_id = record.id
        offered_id, wanted_id = offered.id, wanted.id
        offered_owner, wanted_owner = offered.owner_id, wanted.owner_id
        new_request_status = SwapStateMachine.target_status(command.decision)
        new_slot_status = SwapStateMachine.slot_status_after(command.decision)
        accepted = command.decision == SwapDecision.ACCEPT
        responded_at = utcnow()
        details = {
            "operation": "respond",
            "decision": command.decision.value,
            "request_id": str(request_id),
            "offered_slot_id": str(offered_id),
            "wanted_slot_id": str(wanted_id),
        }

        def release(slot_id: UUID, new_owner: UUID) -> Callable[[], Awaitable[CasOutcome]]:
            fields = {"owner_id": new_owner} if accepted else {}
            return self._status_writer(slot_id, SlotStatus.SWAP_PENDING, new_slot_status, **fields)

        def relock(slot_id: UUID, old_owner: UUID) -> Callable[[], Awaitable[CasOutcome]]:
            fields = {"owner_id": old_owner} if accepted else {}
            return self._revert_writer(slot_id, new_slot_status, SlotStatus.SWAP_PENDING, **fields)

        await self._run_steps("respond", [
            WriteStep(
                "resolve_request",
                lambda: self.swaps.conditional_update_status(
                    request_id, SwapStatus.PENDING, new_request_status, responded_at
                ),
                undo=lambda: self.swaps.conditional_update_status(
                    request_id, new_request_status, SwapStatus.PENDING, None
                ),
                on_loss=AlreadyResolvedError,
                loss_message="This request has already been responded to"
            ),
            WriteStep("release_offered_slot", release(offered_id, wanted_owner), undo=relock(offered_id, offered_owner)),
            WriteStep("release_wanted_slot", release(wanted_id, offered_owner), undo=relock(wanted_id, wanted_owner)),
        ], details)

        if accepted:
            message = "Swap request accepted. Slots have been exchanged."
        else:
            message = "Swap request rejected. Slots are available again."
        log.info(f"Swap request {request_id} {new_request_status.value}.")

        return swap_models.RespondResult(
            decision=command.decision,
            request=swap_models.SwapRequestRead.model_validate(await self._get_request_or_404(request_id)),
            offered_slot=slot_models.SlotRead.model_validate(await self._get_slot_or_404(offered_id, "Offered")),
            wanted_slot=slot_models.SlotRead.model_validate(await self._get_slot_or_404(wanted_id, "Wanted")),
            message=message,
        )

    async def cancel(self, command: swap_models.CancelCommand) -> swap_models.CancelResult:
        """
        Deletes a PENDING request and releases its slots back to SWAPPABLE.
        Slots that no longer exist, or are no longer locked, are skipped.
        """
        log.info(f"User {command.requester_id} cancelling swap request {command.request_id}")

        record = await self._get_request_or_404(
            command.request_id,
            command.requester_id,
            cancelled_error=InvalidStateError("Can only cancel pending requests")
        )
        if record.requester_id != command.requester_id:
            log.warning(f"SECURITY: User {command.requester_id} tried to cancel swap request {record.id}.")
            raise ForbiddenError("You can only cancel your own requests")
        SwapStateMachine.ensure_can_cancel(record.status)

        snapshot = {
            column.key: getattr(record, column.key)
            for column in db_models.SwapRequests.__table__.columns
        }
        request_id = record.id
        parties = (record.requester_id, record.requested_user_id)
        slot_ids = [slot_id for slot_id in (record.my_slot_id, record.their_slot_id) if slot_id is not None]
        details = {
            "operation": "cancel",
            "request_id": str(request_id),
            "slot_ids": [str(slot_id) for slot_id in slot_ids],
        }

        async def delete_request() -> CasOutcome:
            outcome = await self.swaps.delete(request_id, expected_status=SwapStatus.PENDING)
            if outcome is CasOutcome.SUCCESS:
                await self.swaps.record_cancellation(request_id, *parties, utcnow())
            return outcome

        async def restore_request() -> CasOutcome:
            await self.swaps.forget_cancellation(request_id)
            return await self.swaps.restore(snapshot)

        steps = [
            WriteStep(
                "delete_request", delete_request, undo=restore_request,
                on_loss=InvalidStateError,
                loss_message="Can only cancel pending requests"
            )
        ]
        for slot_id in slot_ids:
            steps.append(WriteStep(
                f"release_slot_{slot_id}",
                self._status_writer(slot_id, SlotStatus.SWAP_PENDING, SlotStatus.SWAPPABLE),
                undo=self._revert_writer(slot_id, SlotStatus.SWAPPABLE, SlotStatus.SWAP_PENDING),
                optional=True
            ))

        skipped = await self._run_steps("cancel", steps, details)

        released = [slot_id for slot_id in slot_ids if f"release_slot_{slot_id}" not in skipped]
        skipped_ids = [slot_id for slot_id in slot_ids if slot_id not in released]
        log.info(f"Swap request {request_id} cancelled. Released slots: {released}")
        return swap_models.CancelResult(
            request_id=request_id,
            released_slot_ids=released,
            skipped_slot_ids=skipped_ids
        )

    def _status_writer(
        self, slot_id: UUID, expected: SlotStatus, new: SlotStatus, **fields: Any
    ) -> Callable[[], Awaitable[CasOutcome]]:
        """Forward slot write. Only engine transitions of the slot state machine are allowed."""
        SlotStateMachine.ensure_engine_transition(expected, new)
        return self._revert_writer(slot_id, expected, new, **fields)

    def _revert_writer(
        self, slot_id: UUID, expected: SlotStatus, new: SlotStatus, **fields: Any
    ) -> Callable[[], Awaitable[CasOutcome]]:
        # Undo writes put back an earlier state, they are not machine transitions
        return lambda: self.slots.conditional_update_status(slot_id, expected, new, **fields)

    async def get_status(self, user_id: UUID, request_id: UUID) -> swap_models.SwapStatusRead:
        """
        Read-only view of {request status, offered slot, wanted slot}.
        Only the two parties of the request may look at it.
        """
        record = await self._get_request_or_404(request_id)
        if user_id not in (record.requester_id, record.requested_user_id):
            log.warning(f"SECURITY: User {user_id} tried to read status of swap request {record.id}.")
            raise ForbiddenError("You do not have permission to view this request")

        offered = await self.slots.get(record.my_slot_id) if record.my_slot_id else None
        wanted = await self.slots.get(record.their_slot_id) if record.their_slot_id else None

        status = SwapStatus(record.status)
        # Resolved requests no longer constrain their slots, which may be in a new negotiation
        consistent = status != SwapStatus.PENDING or all(
            slot is not None and slot.status == SlotStatus.SWAP_PENDING.value
            for slot in (offered, wanted)
        )

        return swap_models.SwapStatusRead(
            request_id=record.id,
            status=status,
            offered_slot=swap_models.SlotState.model_validate(offered) if offered else None,
            wanted_slot=swap_models.SlotState.model_validate(wanted) if wanted else None,
            consistent=consistent,
        )
