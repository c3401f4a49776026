'''
Swap request state machine. PENDING is the only non-terminal status: a
request leaves it exactly once, by response (ACCEPTED / REJECTED) or by
cancellation (deleted), and never comes back.
'''
from ..common.exceptions import AlreadyResolvedError, InvalidOperationError, InvalidStateError
from ..database.db_enums import SlotStatus, SwapDecision, SwapStatus


class SwapStateMachine:
    DECISION_TARGETS: dict[SwapDecision, SwapStatus] = {
        SwapDecision.ACCEPT: SwapStatus.ACCEPTED,
        SwapDecision.REJECT: SwapStatus.REJECTED,
    }
    # Where both slots end up once the request is resolved
    SLOT_OUTCOMES: dict[SwapDecision, SlotStatus] = {
        SwapDecision.ACCEPT: SlotStatus.BUSY,
        SwapDecision.REJECT: SlotStatus.SWAPPABLE,
    }

    @staticmethod
    def is_terminal(status: SwapStatus) -> bool:
        return SwapStatus(status) != SwapStatus.PENDING

    @classmethod
    def target_status(cls, decision: SwapDecision) -> SwapStatus:
        try:
            return cls.DECISION_TARGETS[SwapDecision(decision)]
        except (KeyError, ValueError):
            raise InvalidOperationError(f"Unknown decision: {decision}")

    @classmethod
    def slot_status_after(cls, decision: SwapDecision) -> SlotStatus:
        return cls.SLOT_OUTCOMES[SwapDecision(decision)]

    @classmethod
    def ensure_can_respond(cls, status: SwapStatus) -> None:
        if cls.is_terminal(status):
            raise AlreadyResolvedError(f"This request has already been responded to ({SwapStatus(status).value})")

    @classmethod
    def ensure_can_cancel(cls, status: SwapStatus) -> None:
        if cls.is_terminal(status):
            raise InvalidStateError("Can only cancel pending requests")
