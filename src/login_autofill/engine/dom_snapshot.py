"""
DOM Snapshot Cache - Per-URL element cache and cheap change detection.

The cache is filled with one query per category; the elements of all
categories are then described concurrently. A DOMFingerprint is small
enough to poll every 100-200 ms and tells callers when to re-scan.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, TYPE_CHECKING
import logging

from login_autofill.engine.models import ElementHandle

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IPage

logger = logging.getLogger(__name__)


FINGERPRINT_JS = """() => {
    const inputs = Array.from(document.querySelectorAll('input'));
    const visibleInputs = inputs.filter(el => {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        return (rect.width || rect.height) && style.visibility !== 'hidden' && style.display !== 'none';
    });
    return {
        inputCount: inputs.length,
        passwordCount: document.querySelectorAll("input[type='password']").length,
        buttonCount: document.querySelectorAll("button, input[type='submit'], input[type='button']").length,
        visibleInputs: visibleInputs.length,
        bodyHash: document.body ? document.body.innerHTML.length : 0,
    };
}"""


@dataclass(frozen=True)
class DOMFingerprint:
    """Coarse summary of the page's form-relevant DOM."""
    input_count: int = 0
    password_count: int = 0
    button_count: int = 0
    visible_inputs: int = 0
    body_hash: int = 0

    @classmethod
    async def capture(cls, page: "IPage") -> Optional["DOMFingerprint"]:
        """Compute the fingerprint; None if the page cannot be evaluated."""
        try:
            data = await page.evaluate(FINGERPRINT_JS)
        except Exception as e:
            logger.debug(f"Fingerprint capture failed: {e}")
            return None
        if not data:
            return None
        return cls(
            input_count=int(data.get("inputCount", 0)),
            password_count=int(data.get("passwordCount", 0)),
            button_count=int(data.get("buttonCount", 0)),
            visible_inputs=int(data.get("visibleInputs", 0)),
            body_hash=int(data.get("bodyHash", 0)),
        )

    def changed_from(self, other: Optional["DOMFingerprint"]) -> bool:
        return other is None or self != other


class DOMSnapshotCache:
    """
    Cache of described elements for the current URL.

    Categories: inputs, buttons, selects, links, plus the derived
    form_elements (inputs + buttons + selects) and clickable_elements
    (buttons + links + submit/button inputs).

    Owned by a single detector; not shared across tasks.
    """

    INPUTS = "inputs"
    BUTTONS = "buttons"
    SELECTS = "selects"
    LINKS = "links"
    FORM_ELEMENTS = "form_elements"
    CLICKABLE_ELEMENTS = "clickable_elements"

    CATEGORY_SELECTORS: Dict[str, str] = {
        INPUTS: "input",
        BUTTONS: "button",
        SELECTS: "select",
        LINKS: "a",
    }

    def __init__(self):
        self._url: Optional[str] = None
        self._fingerprint: Optional[DOMFingerprint] = None
        self._categories: Dict[str, List[ElementHandle]] = {}
        self.refresh_count = 0

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def fingerprint(self) -> Optional[DOMFingerprint]:
        return self._fingerprint

    @property
    def is_populated(self) -> bool:
        return bool(self._categories)

    def is_for_url(self, url: str) -> bool:
        return self._url == url

    def invalidate(self) -> None:
        """Drop every cached element."""
        self._url = None
        self._fingerprint = None
        self._categories = {}

    async def ensure_current(self, page: "IPage") -> None:
        """Invalidate the cache when the page has navigated elsewhere."""
        if self._url is not None and not self.is_for_url(page.url):
            logger.debug(f"URL changed ({self._url} -> {page.url}), invalidating DOM cache")
            self.invalidate()

    async def refresh(self, page: "IPage") -> None:
        """Query every category once and describe all elements concurrently."""
        categories = list(self.CATEGORY_SELECTORS)
        queried = await asyncio.gather(
            *(page.query_selector_all(self.CATEGORY_SELECTORS[c]) for c in categories)
        )

        captures = []
        for elements in queried:
            captures.append(asyncio.gather(*(ElementHandle.capture(el) for el in elements)))
        described = await asyncio.gather(*captures)

        self._categories = {
            category: [h for h in handles if h is not None]
            for category, handles in zip(categories, described)
        }
        self._url = page.url
        self._fingerprint = await DOMFingerprint.capture(page)
        self.refresh_count += 1

        logger.debug(
            f"DOM cache refreshed: {len(self._categories[self.INPUTS])} inputs, "
            f"{len(self._categories[self.BUTTONS])} buttons, "
            f"{len(self._categories[self.SELECTS])} selects, "
            f"{len(self._categories[self.LINKS])} links"
        )

    async def refresh_if_stale(self, page: "IPage") -> bool:
        """
        Refresh when empty, on another URL, or when the fingerprint changed.

        Returns:
            True if a refresh happened
        """
        if not self.is_populated or not self.is_for_url(page.url):
            await self.refresh(page)
            return True
        current = await DOMFingerprint.capture(page)
        if current is not None and current.changed_from(self._fingerprint):
            await self.refresh(page)
            return True
        return False

    def get(self, category: str) -> List[ElementHandle]:
        """Cached handles for a category (empty list when unknown or not loaded)."""
        if category == self.FORM_ELEMENTS:
            return self.get(self.INPUTS) + self.get(self.BUTTONS) + self.get(self.SELECTS)
        if category == self.CLICKABLE_ELEMENTS:
            submit_inputs = [h for h in self.get(self.INPUTS) if h.type in ("submit", "button")]
            return self.get(self.BUTTONS) + self.get(self.LINKS) + submit_inputs
        return list(self._categories.get(category, []))
