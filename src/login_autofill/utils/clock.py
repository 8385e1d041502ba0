"""
Clock - Time source and delay capability.

Every wait in the detector and the entry state machine goes through a
Clock so tests can run poll loops without real time passing.
"""

import asyncio
import time


class Clock:
    """Real clock backed by the event loop."""

    async def sleep(self, ms: float) -> None:
        """Suspend the current task for ``ms`` milliseconds."""
        if ms > 0:
            await asyncio.sleep(ms / 1000)
        else:
            await asyncio.sleep(0)

    def monotonic_ms(self) -> float:
        """Milliseconds from an arbitrary fixed point."""
        return time.monotonic() * 1000


_clock: Clock | None = None


def get_clock() -> Clock:
    """Get or create the global clock."""
    global _clock
    if _clock is None:
        _clock = Clock()
    return _clock
