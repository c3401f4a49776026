'''
Static enums mirroring the database ENUM types.
'''
import enum


class SlotStatus(str, enum.Enum):
    BUSY = "BUSY"
    SWAPPABLE = "SWAPPABLE"
    SWAP_PENDING = "SWAP_PENDING"


class SwapStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class SwapDecision(str, enum.Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
