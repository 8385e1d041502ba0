"""
Login Detector - Locate the username, password, domain and submit fields.

Detection flow:
1. Fast path: a cheap type-based scan that settles most simple forms
2. Wait for the page to be ready (bounded)
3. Refresh the DOM snapshot cache if the page or its fingerprint changed
4. Run the strategies in the order recommended by the metrics store;
   the first valid, unambiguous form wins
5. With no visible password anywhere, return a username-only form so the
   entry state machine can drive a progressive login
6. On total failure, log a diagnostic dump of the page's controls

Confidence values are recorded for metrics and diagnostics only; they
never gate a result.
"""

from typing import Dict, List, Optional, TYPE_CHECKING
import logging

from login_autofill.config import Settings, get_settings
from login_autofill.engine.detection_metrics import DetectionMetrics, get_metrics
from login_autofill.engine.dom_snapshot import DOMSnapshotCache
from login_autofill.engine.models import (
    DetectedForm,
    DetectionAttempt,
    DetectionMethod,
    ElementHandle,
    FieldRole,
)
from login_autofill.engine.scoring import (
    SEARCH_TERM,
    USER_TERM,
    ElementScorer,
    are_same_element,
    has_strong_identifiers,
    is_likely_domain_dropdown,
    is_likely_username_dropdown,
)
from login_autofill.engine.shadow import ShadowTraversal
from login_autofill.engine.site_config import SiteConfigRegistry, SiteProfile
from login_autofill.engine.strategies import (
    DetectionContext,
    DetectionStrategy,
    capture_all,
    common_attributes_confidence,
    default_strategies,
)
from login_autofill.exceptions.detection import AmbiguousMatchError
from login_autofill.utils.clock import Clock, get_clock

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IPage

logger = logging.getLogger(__name__)

FAST_PATH_INPUTS = "input, select"
FAST_PATH_SUBMIT = "button[type='submit'], input[type='submit'], button"
SUBMIT_WORDS = ("login", "log in", "sign", "submit")


def nearest_text_input(controls: List[ElementHandle], password: ElementHandle) -> Optional[ElementHandle]:
    """
    The plausible username input closest to the password field.

    Search, query and filter boxes are skipped. The closest input before
    the password wins, then the first one after it.
    """
    position = next(i for i, h in enumerate(controls) if h is password)
    candidates = [
        (i, h) for i, h in enumerate(controls)
        if h.tag_name == "input"
        and h.type in ("text", "email", "")
        and not are_same_element(h, password)
        and not SEARCH_TERM.search(h.combined_attributes())
    ]
    before = [h for i, h in candidates if i < position]
    if before:
        return before[-1]
    after = [h for i, h in candidates if i > position]
    return after[0] if after else None


def build_registry(settings: Settings) -> SiteConfigRegistry:
    """Site profile registry from settings (YAML file and/or generic profile)."""
    sites = settings.sites
    if sites.profiles_path:
        return SiteConfigRegistry.from_yaml(sites.profiles_path, include_generic=sites.use_generic_profile)
    return SiteConfigRegistry(include_generic=sites.use_generic_profile)


class LoginDetector:
    """
    Multi-strategy login form detector.

    Example:
        >>> detector = LoginDetector()
        >>> form = await detector.detect(page)
        >>> if form:
        ...     print(form.method, form.confidence)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scorer: Optional[ElementScorer] = None,
        registry: Optional[SiteConfigRegistry] = None,
        metrics: Optional[DetectionMetrics] = None,
        shadow: Optional[ShadowTraversal] = None,
        strategies: Optional[Dict[DetectionMethod, DetectionStrategy]] = None,
        clock: Optional[Clock] = None,
    ):
        settings = settings or get_settings()
        self.settings = settings.detection
        self.scoring = settings.scoring
        self.scorer = scorer or ElementScorer(settings.scoring)
        self.registry = registry or build_registry(settings)
        if metrics is not None:
            self.metrics = metrics
        elif settings.metrics.enabled:
            self.metrics = get_metrics()
        else:
            self.metrics = DetectionMetrics(cache_path=None)
        self.shadow = shadow or ShadowTraversal(
            max_hosts=self.settings.max_shadow_hosts,
            max_depth=self.settings.max_shadow_depth,
        )
        self.strategies = strategies or default_strategies()
        self.clock = clock or get_clock()
        self.cache = DOMSnapshotCache()
        self.attempts: List[DetectionAttempt] = []

    async def detect(self, page: "IPage") -> Optional[DetectedForm]:
        """
        Detect the login form on a page.

        Args:
            page: Rendered page

        Returns:
            The detected form (username-only for progressive logins), or None
        """
        self.attempts = []
        await self.cache.ensure_current(page)

        if self.settings.fast_path_enabled:
            form = await self.fast_path(page)
            if form is not None:
                logger.info(
                    f"Fast path found login form (confidence {form.confidence}): "
                    f"username={form.username_field.describe_short()} "
                    f"password={form.password_field.describe_short()}"
                )
                return form

        order = self.metrics.method_order(page.url)
        profile = self.registry.lookup(page.url)
        if profile is not None:
            logger.debug(f"Using site profile '{profile.display_name or profile.url_pattern}'")

        await self.wait_for_page_ready(page, profile)
        await self.cache.refresh_if_stale(page)
        logger.info(
            f"Detecting login form on {page.url}: "
            f"{len(self.cache.get(DOMSnapshotCache.INPUTS))} inputs, "
            f"{len(self.cache.get(DOMSnapshotCache.BUTTONS))} buttons, "
            f"{len(self.cache.get(DOMSnapshotCache.SELECTS))} selects"
        )

        ctx = DetectionContext(
            page=page,
            cache=self.cache,
            scorer=self.scorer,
            shadow=self.shadow,
            profile=profile,
            shadow_bonus=self.scoring.shadow_bonus,
        )

        for method in order:
            strategy = self.strategies.get(method)
            if strategy is None or not strategy.is_available(ctx):
                logger.debug(f"Skipping {method.value}: not available")
                continue
            form = await self._run_strategy(strategy, ctx)
            if form is not None:
                return form

        if self.settings.progressive_fallback:
            form = self.progressive_form()
            if form is not None:
                return form

        await self.log_diagnostics(page)
        return None

    async def _run_strategy(self, strategy: DetectionStrategy, ctx: DetectionContext) -> Optional[DetectedForm]:
        attempt = self.metrics.start_attempt(ctx.page.url, strategy.method)
        self.attempts.append(attempt)
        try:
            form = await strategy.detect(ctx)
            if form is None or not form.is_valid:
                self.metrics.record_failure(attempt, "username or password field not found")
                logger.debug(f"{strategy.method.value}: no complete form")
                return None
            form.ensure_distinct()
        except AmbiguousMatchError as e:
            self.metrics.record_failure(attempt, f"ambiguous match: {e.message}")
            logger.warning(f"{strategy.method.value}: {e.message}")
            return None
        except Exception as e:
            self.metrics.record_failure(attempt, f"error: {e}")
            logger.warning(f"{strategy.method.value} failed: {e}")
            return None

        form.method = strategy.method
        form.confidence = strategy.confidence(form)
        self.metrics.record_success(attempt, form, form.confidence)
        logger.info(f"Login form detected by {strategy.method.value} (confidence {form.confidence})")
        return form

    async def fast_path(self, page: "IPage") -> Optional[DetectedForm]:
        """
        Cheap type-based scan.

        Returns:
            A form when both a username and a password field were found
        """
        controls = await capture_all(await page.query_selector_all(FAST_PATH_INPUTS))
        usable = [h for h in controls if h.is_usable]

        password = next((h for h in usable if h.tag_name == "input" and h.type == "password"), None)
        if password is None:
            return None

        username = nearest_text_input(usable, password)
        if username is None:
            username = next(
                (h for h in usable if h.tag_name == "select" and is_likely_username_dropdown(h)),
                None,
            )
        if username is None:
            return None

        domain = next(
            (
                h for h in usable
                if h.tag_name == "select"
                and not are_same_element(h, username)
                and is_likely_domain_dropdown(h)
            ),
            None,
        )

        submit = None
        for handle in await capture_all(await page.query_selector_all(FAST_PATH_SUBMIT)):
            if not handle.is_usable:
                continue
            label = f"{handle.text} {handle.get('value')}".lower()
            if handle.type == "submit" or any(word in label for word in SUBMIT_WORDS):
                submit = handle
                break

        form = DetectedForm(
            username_field=username,
            password_field=password,
            domain_field=domain,
            submit_button=submit,
            method=DetectionMethod.COMMON_ATTRIBUTES,
        )
        try:
            form.ensure_distinct()
        except AmbiguousMatchError as e:
            logger.debug(f"Fast path ambiguous: {e.message}")
            return None
        form.confidence = common_attributes_confidence(form)
        return form

    def progressive_form(self) -> Optional[DetectedForm]:
        """
        Username-only form for pages that reveal the password later.

        Runs on the cached snapshot after every strategy failed. There must
        be no visible password field, and the username candidate must look
        like a login field or the page must hold a hidden password input.
        """
        inputs = self.cache.get(DOMSnapshotCache.INPUTS)
        passwords = [h for h in inputs if h.type == "password"]
        if any(h.is_usable for h in passwords):
            return None

        candidates = [
            h for h in inputs + self.cache.get(DOMSnapshotCache.SELECTS)
            if h.type != "password" and not SEARCH_TERM.search(h.combined_attributes())
        ]
        username = self.scorer.best(candidates, FieldRole.USERNAME)
        if username is None:
            return None
        if not passwords and username.type != "email" and not USER_TERM.search(username.combined_attributes()):
            logger.debug(f"{username.describe_short()} does not look like a login field")
            return None

        submit = self.scorer.best(
            self.cache.get(DOMSnapshotCache.CLICKABLE_ELEMENTS), FieldRole.SUBMIT_BUTTON, exclude=[username],
        )
        form = DetectedForm(
            username_field=username,
            submit_button=submit,
            method=DetectionMethod.COMMON_ATTRIBUTES,
        )
        form.confidence = 50 + (10 if has_strong_identifiers(username) else 0) + (5 if submit is not None else 0)
        logger.info(
            f"No visible password field; treating {username.describe_short()} as the first step "
            f"of a progressive login (confidence {form.confidence})"
        )
        return form

    async def wait_for_page_ready(self, page: "IPage", profile: Optional[SiteProfile] = None) -> None:
        """Bounded wait for the document and its inputs to be ready."""
        if await page.query_selector_all("input"):
            return

        settings = self.settings
        deadline = self.clock.monotonic_ms() + settings.page_ready_timeout_ms
        while self.clock.monotonic_ms() < deadline:
            try:
                state = await page.evaluate("document.readyState")
            except Exception as e:
                logger.debug(f"readyState check failed: {e}")
                state = None
            if state == "complete":
                break
            await self.clock.sleep(settings.poll_interval_ms)

        deadline = self.clock.monotonic_ms() + settings.quick_input_check_ms
        while self.clock.monotonic_ms() < deadline:
            if await page.query_selector_all("input"):
                break
            await self.clock.sleep(settings.poll_interval_ms)

        if profile is not None and profile.additional_wait_ms > 0:
            await self.clock.sleep(min(profile.additional_wait_ms, settings.max_additional_wait_ms))
        else:
            await self.clock.sleep(settings.settle_delay_ms)

    async def log_diagnostics(self, page: "IPage") -> None:
        """Log the controls present on the page after every strategy failed."""
        inputs = self.cache.get(DOMSnapshotCache.INPUTS)
        buttons = self.cache.get(DOMSnapshotCache.BUTTONS)
        try:
            form_count = await page.evaluate("document.forms.length")
        except Exception as e:
            logger.debug(f"Form count unavailable: {e}")
            form_count = "?"

        lines = [f"No login form detected on {page.url}"]
        lines.append(f"  inputs: {len(inputs)}, buttons: {len(buttons)}, forms: {form_count}")
        for handle in inputs[: self.settings.diagnostic_inputs]:
            lines.append(
                f"  input type={handle.type or '-'} id={handle.id or '-'} name={handle.name or '-'} "
                f"placeholder={handle.placeholder or '-'} class={handle.class_name or '-'} "
                f"visible={handle.is_visible}"
            )
        for handle in buttons[: self.settings.diagnostic_buttons]:
            lines.append(
                f"  button type={handle.type or '-'} id={handle.id or '-'} text={handle.text[:40] or '-'} "
                f"visible={handle.is_visible}"
            )
        for attempt in self.attempts:
            lines.append(f"  {attempt.method.value}: {attempt.reason or 'failed'}")
        logger.warning("\n".join(lines))
