import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from app.errors import ScanInProgress, ScanSuperseded

logger = logging.getLogger("bridgepay")

T = TypeVar("T")


class _Slot:
    def __init__(self):
        self.generation = 0
        self.task: asyncio.Task | None = None


class ScanCoordinator:
    """Allows at most one outstanding scan per client.

    With the "supersede" policy a new scan cancels the previous one; with
    "reject" the new scan fails with ScanInProgress. A result belonging to a
    slot generation that is no longer current is never returned.
    """

    def __init__(self, policy: str = "supersede"):
        if policy not in ("supersede", "reject"):
            raise ValueError(f"Unknown scan policy: {policy}")
        self.policy = policy
        self._slots: dict[str, _Slot] = {}

    def in_flight(self, key: str) -> bool:
        slot = self._slots.get(key)
        return bool(slot and slot.task and not slot.task.done())

    def cancel(self, key: str) -> bool:
        """Cancel the outstanding scan for `key`. Returns True if one was running."""
        slot = self._slots.get(key)
        if not slot or not slot.task or slot.task.done():
            return False
        slot.generation += 1
        slot.task.cancel()
        logger.info("Scan cancelled", extra={"extra_data": {"client": key}})
        return True

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        slot = self._slots.setdefault(key, _Slot())
        if slot.task and not slot.task.done():
            if self.policy == "reject":
                raise ScanInProgress()
            logger.info("Superseding outstanding scan", extra={"extra_data": {"client": key}})
            slot.task.cancel()

        slot.generation += 1
        generation = slot.generation
        task = asyncio.ensure_future(factory())
        slot.task = task

        try:
            result = await task
        except asyncio.CancelledError:
            if slot.generation != generation:
                raise ScanSuperseded()
            raise
        finally:
            if slot.task is task:
                slot.task = None
                self._slots.pop(key, None)

        if slot.generation != generation:
            raise ScanSuperseded()
        return result
