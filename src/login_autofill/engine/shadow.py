"""
Shadow Traversal - Find login fields hidden inside shadow roots.

Hosts are discovered two ways: structural heuristics over tags and
attributes (custom elements, known component-library prefixes, marker
attributes) and a DOM walk listing every element with an open shadow
root. Roots are reached through the native accessor first and a script
fallback second; a closed root is simply "not found".
"""

import asyncio
from typing import Dict, List, Optional, Set, TYPE_CHECKING
import logging

from login_autofill.engine.dom_snapshot import DOMSnapshotCache
from login_autofill.engine.models import ElementHandle, FieldRole
from login_autofill.engine.scoring import are_same_element

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IElement, IPage, ISearchContext, IShadowRoot

logger = logging.getLogger(__name__)


SHADOW_HOST_PREFIXES = (
    "app-", "ui-", "component-", "widget-", "mui-", "md-", "mdc-",
    "paper-", "ion-", "stencil-", "lwc-", "lit-", "polymer-",
)

SHADOW_HOST_ATTRIBUTES = ("data-shadow", "data-shadow-root", "data-component", "data-widget", "is")

HOST_ATTRIBUTE_SELECTOR = ", ".join(f"[{a}]" for a in SHADOW_HOST_ATTRIBUTES)

ROLE_SELECTORS: Dict[FieldRole, List[str]] = {
    FieldRole.USERNAME: [
        "input[type='text']",
        "input[type='email']",
        "input:not([type])",
        "[role='textbox']",
    ],
    FieldRole.PASSWORD: [
        "input[type='password']",
    ],
    FieldRole.DOMAIN: [
        "select",
        "input[type='text']",
        "[role='combobox']",
        "[role='listbox']",
    ],
    FieldRole.SUBMIT_BUTTON: [
        "button",
        "input[type='submit']",
        "input[type='button']",
        "[role='button']",
    ],
}


class ShadowTraversal:
    """
    Collect role candidates from shadow roots.

    Example:
        >>> traversal = ShadowTraversal(max_hosts=10, max_depth=3)
        >>> passwords = await traversal.collect(page, cache, FieldRole.PASSWORD)
    """

    def __init__(self, max_hosts: int = 10, max_depth: int = 3):
        self.max_hosts = max_hosts
        self.max_depth = max_depth

    @staticmethod
    def is_likely_host(handle: ElementHandle) -> bool:
        """Structural guess that an element hosts a shadow root."""
        if handle.has_shadow_root:
            return True
        tag = handle.tag_name
        if "-" in tag:
            return True
        if tag.startswith(SHADOW_HOST_PREFIXES):
            return True
        return any(attribute in handle.attributes for attribute in SHADOW_HOST_ATTRIBUTES)

    async def find_hosts(self, page: "IPage", cache: Optional[DOMSnapshotCache] = None) -> List[ElementHandle]:
        """
        Candidate hosts, visible, de-duplicated, capped at ``max_hosts``.

        Args:
            page: Page to inspect
            cache: Snapshot cache whose form elements are checked structurally
        """
        candidates: List[ElementHandle] = []
        if cache is not None:
            candidates.extend(h for h in cache.get(DOMSnapshotCache.FORM_ELEMENTS) if self.is_likely_host(h))

        marked = await page.query_selector_all(HOST_ATTRIBUTE_SELECTOR)
        walked = await page.query_shadow_hosts()
        described = await asyncio.gather(*(ElementHandle.capture(el) for el in [*marked, *walked]))
        candidates.extend(h for h in described if h is not None)

        hosts: List[ElementHandle] = []
        for handle in candidates:
            if not handle.is_visible:
                continue
            if any(are_same_element(handle, seen) for seen in hosts):
                continue
            hosts.append(handle)
            if len(hosts) >= self.max_hosts:
                break

        logger.debug(f"Found {len(hosts)} potential shadow hosts")
        return hosts

    async def get_shadow_root(self, page: "IPage", host: "IElement") -> Optional["IShadowRoot"]:
        """Native accessor first, script fallback second; None when closed or absent."""
        try:
            root = await host.shadow_root()
        except Exception as e:
            logger.debug(f"Native shadow root accessor failed: {e}")
            root = None
        if root is not None:
            return root
        try:
            return await page.resolve_shadow_root(host)
        except Exception as e:
            logger.debug(f"Script shadow root lookup failed: {e}")
            return None

    async def _collect_from_root(
        self,
        page: "IPage",
        root: "ISearchContext",
        role: FieldRole,
        depth: int,
        found: List[ElementHandle],
    ) -> None:
        for selector in ROLE_SELECTORS[role]:
            elements = await root.query_selector_all(selector)
            for handle in await asyncio.gather(*(ElementHandle.capture(el, in_shadow_root=True) for el in elements)):
                if handle is None or any(are_same_element(handle, f) for f in found):
                    continue
                found.append(handle)

        if depth >= self.max_depth:
            return

        for element in await root.query_selector_all("*"):
            nested = await self.get_shadow_root(page, element)
            if nested is not None:
                await self._collect_from_root(page, nested, role, depth + 1, found)

    async def collect(
        self,
        page: "IPage",
        cache: Optional[DOMSnapshotCache],
        role: FieldRole,
    ) -> List[ElementHandle]:
        """
        Every element inside reachable shadow roots matching the role's selectors.

        Args:
            page: Page to inspect
            cache: Snapshot cache used for structural host discovery
            role: Role whose selectors are run inside each root

        Returns:
            Handles flagged ``in_shadow_root``
        """
        found: List[ElementHandle] = []
        visited: Set[int] = set()
        for host in await self.find_hosts(page, cache):
            if id(host.element) in visited:
                continue
            visited.add(id(host.element))
            root = await self.get_shadow_root(page, host.element)
            if root is None:
                continue
            await self._collect_from_root(page, root, role, 1, found)

        if found:
            logger.debug(f"Shadow traversal found {len(found)} {role.value} candidates")
        return found
