"""
Keystrokes - Typing strategies for credential fields.

DIRECT sends the whole value at once, CHUNKED sends short bursts with a
random pause between them, PER_CHARACTER pauses after every key. Any
failure of the configured strategy falls back to clear + direct send.
"""

import math
import random
from enum import Enum
from typing import List, Optional, TYPE_CHECKING
import logging

from login_autofill.utils.clock import Clock, get_clock

if TYPE_CHECKING:
    from login_autofill.config.settings import EntrySettings
    from login_autofill.interfaces.browser import IElement

logger = logging.getLogger(__name__)


class TypingMode(str, Enum):
    """How text is sent to a field."""
    DIRECT = "direct"
    CHUNKED = "chunked"
    PER_CHARACTER = "per_character"


def chunk_text(text: str) -> List[str]:
    """Split text into bursts of 1-5 characters (about half the text, at most 5)."""
    if not text:
        return []
    size = min(5, max(1, math.ceil(len(text) / 2)))
    return [text[i:i + size] for i in range(0, len(text), size)]


class Typist:
    """
    Enter text into fields using the configured typing mode.

    Example:
        >>> typist = Typist(TypingMode.CHUNKED)
        >>> await typist.type_into(element, "alice")
    """

    def __init__(
        self,
        mode: TypingMode = TypingMode.CHUNKED,
        min_delay_ms: int = 10,
        max_delay_ms: int = 30,
        post_entry_delay_ms: int = 50,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.mode = TypingMode(mode)
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max(min_delay_ms, max_delay_ms)
        self.post_entry_delay_ms = post_entry_delay_ms
        self.clock = clock or get_clock()
        self.rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: "EntrySettings", clock: Optional[Clock] = None) -> "Typist":
        return cls(
            mode=TypingMode(settings.typing_mode),
            min_delay_ms=settings.min_delay_ms,
            max_delay_ms=settings.max_delay_ms,
            post_entry_delay_ms=settings.post_entry_delay_ms,
            clock=clock,
        )

    def _delay(self) -> int:
        return self.rng.randint(self.min_delay_ms, self.max_delay_ms)

    async def _send_chunked(self, element: "IElement", text: str) -> None:
        chunks = chunk_text(text)
        for index, chunk in enumerate(chunks):
            await element.type_text(chunk)
            if index < len(chunks) - 1:
                await self.clock.sleep(self._delay())

    async def _send_per_character(self, element: "IElement", text: str) -> None:
        for char in text:
            await element.type_text(char)
            await self.clock.sleep(self._delay())

    async def type_into(self, element: "IElement", text: str, label: str = "field") -> None:
        """
        Clear the field, focus it and type ``text``.

        Args:
            element: Target field
            text: Value to enter
            label: Field name for logs (the value itself is never logged)
        """
        start = self.clock.monotonic_ms()
        try:
            await element.clear()
            await element.click()
            if self.mode == TypingMode.DIRECT:
                await element.type_text(text)
            elif self.mode == TypingMode.CHUNKED:
                await self._send_chunked(element, text)
            else:
                await self._send_per_character(element, text)
        except Exception as e:
            logger.warning(f"{self.mode.value} typing into {label} failed ({e}), falling back to direct entry")
            await element.clear()
            await element.type_text(text)

        await self.clock.sleep(self.post_entry_delay_ms)
        logger.debug(
            f"Entered {label} ({len(text)} chars, {self.mode.value}) "
            f"in {self.clock.monotonic_ms() - start:.0f}ms"
        )
