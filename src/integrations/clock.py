"""Wall-clock and interruptible sleep implementation."""

import asyncio
from datetime import UTC, datetime


class SystemClock:
    """
    Clock backed by the system time and asyncio.sleep.

    Sleeps can be interrupted by an asyncio.Event so that a caller-supplied
    cancellation signal is honored between retries.
    """

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float, cancel_event: asyncio.Event | None = None) -> bool:
        if seconds <= 0:
            # Still yield to the loop so a retry-now path is not a busy loop
            await asyncio.sleep(0)
            return not (cancel_event and cancel_event.is_set())

        if cancel_event is None:
            await asyncio.sleep(seconds)
            return True

        if cancel_event.is_set():
            return False

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
        except TimeoutError:
            return True
        return False


DEFAULT_CLOCK = SystemClock()


__all__ = ["SystemClock", "DEFAULT_CLOCK"]
