'''
Slot status state machine.

    BUSY <-> SWAPPABLE              owner toggles
    SWAPPABLE -> SWAP_PENDING       engine, on propose
    SWAP_PENDING -> BUSY            engine, on accept
    SWAP_PENDING -> SWAPPABLE       engine, on reject / cancel

SWAP_PENDING is the lock that keeps a slot out of a second negotiation, so
nothing else may leave it and owners may neither enter it nor edit the slot
while it holds.
'''
import enum

from ..common.exceptions import InvalidOperationError, InvalidStateError
from ..database.db_enums import SlotStatus


class Actor(str, enum.Enum):
    OWNER = "OWNER"
    ENGINE = "ENGINE"


class SlotStateMachine:
    TRANSITIONS: dict[tuple[SlotStatus, SlotStatus], Actor] = {
        (SlotStatus.BUSY, SlotStatus.SWAPPABLE): Actor.OWNER,
        (SlotStatus.SWAPPABLE, SlotStatus.BUSY): Actor.OWNER,
        (SlotStatus.SWAPPABLE, SlotStatus.SWAP_PENDING): Actor.ENGINE,
        (SlotStatus.SWAP_PENDING, SlotStatus.BUSY): Actor.ENGINE,
        (SlotStatus.SWAP_PENDING, SlotStatus.SWAPPABLE): Actor.ENGINE,
    }

    @classmethod
    def can_transition(cls, current: SlotStatus, target: SlotStatus, actor: Actor) -> bool:
        return cls.TRANSITIONS.get((SlotStatus(current), SlotStatus(target))) == actor

    @classmethod
    def ensure_owner_transition(cls, current: SlotStatus, target: SlotStatus) -> None:
        """
        Validates a status change requested directly by the slot owner.
        Re-submitting the current status is a no-op and allowed, except while locked.
        """
        current, target = SlotStatus(current), SlotStatus(target)
        if target == SlotStatus.SWAP_PENDING:
            raise InvalidOperationError("Cannot manually set status to SWAP_PENDING")
        if current == SlotStatus.SWAP_PENDING:
            raise InvalidStateError("Cannot update slot during pending swap. Wait for swap resolution.")
        if current == target:
            return
        if not cls.can_transition(current, target, Actor.OWNER):
            raise InvalidStateError(f"Slot cannot move from {current.value} to {target.value}")

    @classmethod
    def ensure_engine_transition(cls, current: SlotStatus, target: SlotStatus) -> None:
        current, target = SlotStatus(current), SlotStatus(target)
        if not cls.can_transition(current, target, Actor.ENGINE):
            raise InvalidStateError(f"Slot cannot move from {current.value} to {target.value}")

    @staticmethod
    def ensure_editable(current: SlotStatus) -> None:
        if SlotStatus(current) == SlotStatus.SWAP_PENDING:
            raise InvalidStateError("Cannot update slot during pending swap. Wait for swap resolution.")

    @staticmethod
    def ensure_deletable(current: SlotStatus) -> None:
        if SlotStatus(current) == SlotStatus.SWAP_PENDING:
            raise InvalidStateError("Cannot delete slot during pending swap. Reject or cancel the swap request first.")

    @staticmethod
    def is_offerable(current: SlotStatus) -> bool:
        return SlotStatus(current) == SlotStatus.SWAPPABLE
