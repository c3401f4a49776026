'''
Shared plumbing for the slot and swap request stores.
'''
import asyncio
import enum
from typing import Any, Awaitable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from ..common.config import settings
from ..common.exceptions import StoreTimeoutError
from ..common.logger import log

T = TypeVar("T")


class CasOutcome(str, enum.Enum):
    """Result of a conditional (compare-and-swap) write."""
    SUCCESS = "SUCCESS"
    CONFLICT = "CONFLICT"      # record exists but its status was not the expected one
    NOT_FOUND = "NOT_FOUND"


class StoreBase:
    """
    Base class for the stores. Every database round trip goes through
    `_bounded` so no call can block longer than STORE_TIMEOUT_SECONDS.
    """
    def __init__(self, db: AsyncSession, timeout: Optional[float] = None):
        self.db = db
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            log.error(f"{type(self).__name__}: store call exceeded {self.timeout}s")
            raise StoreTimeoutError(f"Store call exceeded {self.timeout} seconds") from e

    async def commit(self) -> None:
        await self._bounded(self.db.commit())

    async def rollback(self) -> None:
        await self._bounded(self.db.rollback())

    @staticmethod
    def _enum_value(value: Any) -> Any:
        return value.value if isinstance(value, enum.Enum) else value
