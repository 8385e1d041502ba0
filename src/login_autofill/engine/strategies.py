"""
Detection Strategies - Independent ways of classifying a login form.

Each strategy fills a DetectedForm from the same DetectionContext and
reports its own confidence. The detector runs them in an adaptive order
and keeps the first valid result.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING
import logging

from login_autofill.engine.dom_snapshot import DOMSnapshotCache
from login_autofill.engine.models import DetectedForm, DetectionMethod, ElementHandle, FieldRole
from login_autofill.engine.scoring import ElementScorer, has_strong_identifiers, is_excluded
from login_autofill.engine.selectors import filter_handles
from login_autofill.engine.shadow import ShadowTraversal
from login_autofill.engine.site_config import SiteProfile

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IElement, IPage

logger = logging.getLogger(__name__)


@dataclass
class DetectionContext:
    """Everything a strategy may use for one detection run."""
    page: "IPage"
    cache: DOMSnapshotCache
    scorer: ElementScorer
    shadow: ShadowTraversal
    profile: Optional[SiteProfile] = None
    shadow_bonus: int = 500


async def capture_all(elements: Sequence["IElement"]) -> List[ElementHandle]:
    handles = await asyncio.gather(*(ElementHandle.capture(el) for el in elements))
    return [h for h in handles if h is not None]


def _first_usable(
    handles: Iterable[ElementHandle],
    exclude: Iterable[Optional[ElementHandle]],
) -> Optional[ElementHandle]:
    exclude = [e for e in exclude if e is not None]
    for handle in handles:
        if handle.is_visible and not is_excluded(handle, exclude):
            return handle
    return None


def classify_pools(
    scorer: ElementScorer,
    username_pool: Sequence[ElementHandle],
    password_pool: Sequence[ElementHandle],
    domain_pool: Sequence[ElementHandle],
    submit_pool: Sequence[ElementHandle],
    bonus: Optional[Callable[[ElementHandle], int]] = None,
) -> DetectedForm:
    """Pick the best element per role, each role excluding the ones before it."""
    username = scorer.best(username_pool, FieldRole.USERNAME, bonus=bonus)
    password = scorer.best(password_pool, FieldRole.PASSWORD, exclude=[username], bonus=bonus)
    domain = scorer.best(domain_pool, FieldRole.DOMAIN, exclude=[username, password], bonus=bonus)
    submit = scorer.best(
        submit_pool, FieldRole.SUBMIT_BUTTON, exclude=[username, password, domain], bonus=bonus,
    )
    return DetectedForm(
        username_field=username,
        password_field=password,
        domain_field=domain,
        submit_button=submit,
    )


def common_attributes_confidence(form: DetectedForm) -> int:
    """70 base, up to +10 per credential field for strong identifiers, +5 for submit."""
    confidence = 70
    for field in (form.username_field, form.password_field):
        if field is None:
            continue
        confidence += 10 if has_strong_identifiers(field) else 5
    if form.submit_button is not None:
        confidence += 5
    return min(confidence, 95)


class DetectionStrategy(ABC):
    """Base class for detection strategies."""

    method: DetectionMethod

    def is_available(self, ctx: DetectionContext) -> bool:
        """Whether the strategy can run at all in this context."""
        return True

    @abstractmethod
    async def detect(self, ctx: DetectionContext) -> Optional[DetectedForm]:
        """
        Classify the page's form.

        Args:
            ctx: Detection context

        Returns:
            A form (possibly incomplete), or None when nothing was found
        """
        ...

    @abstractmethod
    def confidence(self, form: DetectedForm) -> int:
        """Confidence (0-100) of a form produced by this strategy."""
        ...


class SiteProfileStrategy(DetectionStrategy):
    """Selectors from the matching site profile, tried in order."""

    method = DetectionMethod.URL_SPECIFIC

    def is_available(self, ctx: DetectionContext) -> bool:
        return ctx.profile is not None

    async def _find(
        self,
        ctx: DetectionContext,
        selectors: List[str],
        pool: List[ElementHandle],
        exclude: Iterable[Optional[ElementHandle]],
    ) -> Optional[ElementHandle]:
        exclude = list(exclude)
        for selector in selectors:
            matched = filter_handles(pool, selector)
            if matched is None:
                # Combinators and positional pseudo-classes need the live DOM
                matched = await capture_all(await ctx.page.query_selector_all(selector))
            found = _first_usable(matched, exclude)
            if found is not None:
                logger.debug(f"Profile selector {selector!r} matched {found.describe_short()}")
                return found
        return None

    async def detect(self, ctx: DetectionContext) -> Optional[DetectedForm]:
        profile = ctx.profile
        if profile is None:
            return None
        pool = ctx.cache.get(DOMSnapshotCache.FORM_ELEMENTS) + ctx.cache.get(DOMSnapshotCache.LINKS)

        username = await self._find(ctx, profile.username_selectors, pool, [])
        password = await self._find(ctx, profile.password_selectors, pool, [username])
        domain = await self._find(ctx, profile.domain_selectors, pool, [username, password])
        submit = await self._find(ctx, profile.submit_selectors, pool, [username, password, domain])
        return DetectedForm(
            username_field=username,
            password_field=password,
            domain_field=domain,
            submit_button=submit,
        )

    def confidence(self, form: DetectedForm) -> int:
        confidence = 85
        if form.username_field is not None:
            confidence += 5
        if form.password_field is not None:
            confidence += 5
        if form.submit_button is not None:
            confidence += 3
        if form.domain_field is not None:
            confidence += 2
        return min(confidence, 100)


class CommonAttributesStrategy(DetectionStrategy):
    """Score every cached element with the element scorer."""

    method = DetectionMethod.COMMON_ATTRIBUTES

    async def detect(self, ctx: DetectionContext) -> Optional[DetectedForm]:
        cache = ctx.cache
        inputs = cache.get(DOMSnapshotCache.INPUTS)
        selects = cache.get(DOMSnapshotCache.SELECTS)
        return classify_pools(
            ctx.scorer,
            username_pool=inputs + selects,
            password_pool=inputs,
            domain_pool=inputs + selects,
            submit_pool=cache.get(DOMSnapshotCache.CLICKABLE_ELEMENTS),
        )

    def confidence(self, form: DetectedForm) -> int:
        return common_attributes_confidence(form)


XPATH_EXPRESSIONS: Dict[FieldRole, List[str]] = {
    FieldRole.USERNAME: [
        "//input[@type='text' and (contains(@name,'user') or contains(@id,'user') or contains(@placeholder,'user'))]",
        "//input[@type='email']",
        "//input[contains(@class,'username') or contains(@class,'user')]",
        "//input[@type='text'][1]",
    ],
    FieldRole.PASSWORD: [
        "//input[@type='password']",
        "//input[contains(@name,'pass') or contains(@id,'pass')]",
        "//input[contains(@class,'password')]",
    ],
    FieldRole.DOMAIN: [
        "//select[contains(@id,'domain') or contains(@name,'domain')]",
        "//input[contains(@id,'domain') or contains(@name,'domain')]",
        "//label[contains(translate(text(),'DOMAIN','domain'),'domain')]/following::input[1]",
    ],
    FieldRole.SUBMIT_BUTTON: [
        "//button[@type='submit' or contains(text(),'Login') or contains(text(),'Sign in')]",
        "//input[@type='submit']",
        "//button[contains(@class,'login') or contains(@class,'submit')]",
        "//a[contains(@class,'login') or contains(text(),'Login')]",
    ],
}


class XPathStrategy(DetectionStrategy):
    """Ordered XPath expressions per role; first visible match wins."""

    method = DetectionMethod.XPATH

    async def _find(
        self,
        ctx: DetectionContext,
        role: FieldRole,
        exclude: Iterable[Optional[ElementHandle]],
    ) -> Optional[ElementHandle]:
        exclude = list(exclude)
        for expression in XPATH_EXPRESSIONS[role]:
            found = _first_usable(await capture_all(await ctx.page.query_xpath(expression)), exclude)
            if found is not None:
                return found
        return None

    async def detect(self, ctx: DetectionContext) -> Optional[DetectedForm]:
        username = await self._find(ctx, FieldRole.USERNAME, [])
        password = await self._find(ctx, FieldRole.PASSWORD, [username])
        domain = await self._find(ctx, FieldRole.DOMAIN, [username, password])
        submit = await self._find(ctx, FieldRole.SUBMIT_BUTTON, [username, password, domain])
        return DetectedForm(
            username_field=username,
            password_field=password,
            domain_field=domain,
            submit_button=submit,
        )

    def confidence(self, form: DetectedForm) -> int:
        confidence = 60
        if has_strong_identifiers(form.username_field):
            confidence += 10
        if has_strong_identifiers(form.password_field):
            confidence += 10
        if has_strong_identifiers(form.submit_button):
            confidence += 8
        return min(confidence, 95)


class ShadowDomStrategy(DetectionStrategy):
    """Score light-DOM and shadow-root candidates together; shadow matches get a bonus."""

    method = DetectionMethod.SHADOW_DOM

    async def detect(self, ctx: DetectionContext) -> Optional[DetectedForm]:
        cache = ctx.cache

        def light(category: str) -> List[ElementHandle]:
            return [h for h in cache.get(category) if not h.in_shadow_root]

        shadow: Dict[FieldRole, List[ElementHandle]] = {}
        for role in FieldRole:
            shadow[role] = await ctx.shadow.collect(ctx.page, cache, role)

        if not any(shadow.values()):
            logger.debug("No shadow-root candidates found")

        def bonus(handle: ElementHandle) -> int:
            return ctx.shadow_bonus if handle.in_shadow_root else 0

        inputs = light(DOMSnapshotCache.INPUTS)
        selects = light(DOMSnapshotCache.SELECTS)
        return classify_pools(
            ctx.scorer,
            username_pool=inputs + selects + shadow[FieldRole.USERNAME],
            password_pool=inputs + shadow[FieldRole.PASSWORD],
            domain_pool=inputs + selects + shadow[FieldRole.DOMAIN],
            submit_pool=light(DOMSnapshotCache.CLICKABLE_ELEMENTS) + shadow[FieldRole.SUBMIT_BUTTON],
            bonus=bonus,
        )

    def confidence(self, form: DetectedForm) -> int:
        confidence = 70
        in_shadow = False
        if form.username_field is not None and form.username_field.in_shadow_root:
            confidence += 10
            in_shadow = True
        if form.password_field is not None and form.password_field.in_shadow_root:
            confidence += 10
            in_shadow = True
        if form.submit_button is not None and form.submit_button.in_shadow_root:
            confidence += 5
            in_shadow = True
        if not in_shadow:
            confidence = max(confidence - 20, 40)
        return min(confidence, 90)


def default_strategies() -> Dict[DetectionMethod, DetectionStrategy]:
    """One instance of every built-in strategy, keyed by method."""
    strategies: List[DetectionStrategy] = [
        SiteProfileStrategy(),
        CommonAttributesStrategy(),
        XPathStrategy(),
        ShadowDomStrategy(),
    ]
    return {s.method: s for s in strategies}
