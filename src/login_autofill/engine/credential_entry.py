"""
Credential Entry - Drive a detected login form from Idle to Success or Failed.

States: IDLE -> DETECT_MODE -> STANDARD_FILL | PROGRESSIVE_FILL -> SUBMIT -> SUCCESS | FAILED

Standard forms show every field up front and are filled in one pass.
Progressive forms reveal the password (and sometimes the submit control)
only after the username is entered; they are driven as four steps, each
with bounded retries, a per-attempt timeout and a screenshot on failure:

1. EnterUsername - fill, then wait for a visible, stable password field
2. EnterPassword - fill, then wait for a submit control (may never come)
3. EnterDomain - only when a domain was given
4. Submit - native click, script click, or Enter on the password field

When a step fails after the username went in, Enter is pressed on the
last filled field instead of giving up.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TYPE_CHECKING
import logging

from login_autofill.config.settings import EntrySettings
from login_autofill.engine.dom_snapshot import DOMFingerprint
from login_autofill.engine.domain_field import (
    DomainFieldHandler,
    is_valid_domain_field,
    select_username_option,
)
from login_autofill.engine.keystrokes import Typist
from login_autofill.engine.models import (
    Credentials,
    DetectedForm,
    ElementHandle,
    EntryMode,
    EntryResult,
    EntryState,
    FieldRole,
    StepResult,
)
from login_autofill.engine.scoring import ElementScorer, are_same_element
from login_autofill.engine.shadow import ROLE_SELECTORS
from login_autofill.engine.strategies import capture_all
from login_autofill.exceptions.base import LoginAutofillError
from login_autofill.exceptions.detection import InteractionError, NotFoundError
from login_autofill.utils.clock import Clock, get_clock
from login_autofill.utils.retry import RetryConfig, retry_async

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IPage
    from login_autofill.reporting.screenshot_manager import ScreenshotManager

logger = logging.getLogger(__name__)

HIDDEN_PASSWORD_SELECTOR = "input[type='password']"
HIDDEN_SUBMIT_SELECTOR = "button[type='submit'], input[type='submit']"


@dataclass
class _Fields:
    """Fields known so far in a progressive run."""
    username: ElementHandle
    password: Optional[ElementHandle] = None
    domain: Optional[ElementHandle] = None
    submit: Optional[ElementHandle] = None
    last_filled: Optional[ElementHandle] = None

    def taken(self) -> List[Optional[ElementHandle]]:
        return [self.username, self.password, self.domain]


class CredentialEntry:
    """
    Enter credentials into a detected form.

    Example:
        >>> entry = CredentialEntry(page)
        >>> result = await entry.enter(form, Credentials("alice", "s3cret"))
        >>> result.success, result.mode, [s.name for s in result.steps]
    """

    def __init__(
        self,
        page: "IPage",
        settings: Optional[EntrySettings] = None,
        scorer: Optional[ElementScorer] = None,
        typist: Optional[Typist] = None,
        domain_handler: Optional[DomainFieldHandler] = None,
        screenshots: Optional["ScreenshotManager"] = None,
        clock: Optional[Clock] = None,
    ):
        self.page = page
        self.settings = settings or EntrySettings()
        self.clock = clock or get_clock()
        self.scorer = scorer or ElementScorer()
        self.typist = typist or Typist.from_settings(self.settings, clock=self.clock)
        self.domain_handler = domain_handler or DomainFieldHandler(self.typist)
        self.screenshots = screenshots
        self._states: List[EntryState] = []
        self._steps: List[StepResult] = []

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def _transition(self, state: EntryState) -> None:
        previous = self._states[-1] if self._states else None
        self._states.append(state)
        if previous is not None:
            logger.debug(f"Entry state {previous.value} -> {state.value}")

    def _finish(self, result: EntryResult, state: EntryState, error: Optional[str] = None) -> EntryResult:
        self._transition(state)
        result.success = state == EntryState.SUCCESS
        result.state = state
        result.error = error
        result.steps = list(self._steps)
        result.states = list(self._states)
        if result.success:
            logger.info(
                f"Credentials submitted ({result.mode.value if result.mode else '?'} mode"
                f"{', fallback submit' if result.fallback_used else ''})"
            )
        else:
            logger.error(f"Credential entry failed: {error}")
        return result

    async def enter(self, form: DetectedForm, credentials: Credentials) -> EntryResult:
        """
        Fill and submit the form.

        Args:
            form: Form returned by the detector
            credentials: Values to enter

        Returns:
            EntryResult; failures are reported in it, never raised
        """
        self._states = []
        self._steps = []
        result = EntryResult(success=False)
        self._transition(EntryState.IDLE)

        username = form.username_field
        if username is None:
            return self._finish(result, EntryState.FAILED, "form has no username field")

        self._transition(EntryState.DETECT_MODE)
        result.mode = await self.detect_mode(form)
        logger.info(f"Entry mode: {result.mode.value}")

        password = form.password_field
        if result.mode == EntryMode.PROGRESSIVE or password is None:
            self._transition(EntryState.PROGRESSIVE_FILL)
            return await self._progressive_fill(form, username, credentials, result)

        self._transition(EntryState.STANDARD_FILL)
        return await self._standard_fill(form, username, password, credentials, result)

    # =========================================================================
    # MODE DETECTION
    # =========================================================================

    async def detect_mode(self, form: DetectedForm) -> EntryMode:
        """
        Classify the form as standard or progressive.

        Visibility is re-read from the live page; the detector's snapshot
        may be stale by now.
        """
        if form.awaits_password:
            logger.debug("No password field known yet: progressive")
            return EntryMode.PROGRESSIVE

        username_visible = await self._live_visible(form.username_field)
        password_visible = await self._live_visible(form.password_field)
        submit_visible = await self._live_visible(form.submit_button)

        if username_visible and not password_visible:
            logger.debug("Password field absent or hidden: progressive")
            return EntryMode.PROGRESSIVE
        if username_visible and password_visible and not submit_visible:
            logger.debug("No visible submit control: progressive")
            return EntryMode.PROGRESSIVE
        if await self._has_hidden_controls():
            logger.debug("Hidden password or submit control in DOM: progressive")
            return EntryMode.PROGRESSIVE
        return EntryMode.STANDARD

    async def _live_visible(self, handle: Optional[ElementHandle]) -> bool:
        if handle is None:
            return False
        try:
            return await handle.element.is_visible()
        except Exception as e:
            logger.debug(f"Visibility check failed for {handle.describe_short()}: {e}")
            return False

    async def _has_hidden_controls(self) -> bool:
        for selector in (HIDDEN_PASSWORD_SELECTOR, HIDDEN_SUBMIT_SELECTOR):
            for element in await self.page.query_selector_all(selector):
                try:
                    if not await element.is_visible():
                        return True
                except Exception as e:
                    logger.debug(f"Visibility check failed: {e}")
        return False

    # =========================================================================
    # STEP PLUMBING
    # =========================================================================

    async def _run_step(self, name: str, func: Callable[[], Awaitable[Any]]) -> StepResult:
        """Run one step with retries, a per-attempt timeout and a failure screenshot."""
        settings = self.settings
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return await func()

        config = RetryConfig(
            max_attempts=1 + settings.step_retries,
            initial_delay_ms=settings.retry_delay_ms,
            max_delay_ms=max(settings.retry_delay_ms, 1) * 4,
            attempt_timeout_ms=settings.step_timeout_ms,
            retry_on=(InteractionError, asyncio.TimeoutError),
        )

        start = self.clock.monotonic_ms()
        try:
            value = await retry_async(attempt, config, clock=self.clock)
            step = StepResult(
                name=name,
                success=True,
                duration_ms=self.clock.monotonic_ms() - start,
                result=value,
                attempts=attempts,
            )
            logger.debug(f"Step {name} succeeded after {attempts} attempt(s)")
        except Exception as e:
            error = str(e) or type(e).__name__
            step = StepResult(
                name=name,
                success=False,
                duration_ms=self.clock.monotonic_ms() - start,
                error=error,
                attempts=attempts,
            )
            logger.warning(f"Step {name} failed after {attempts} attempt(s): {error}")
            if self.screenshots is not None:
                await self.screenshots.capture_on_error(self.page, name, error)

        self._steps.append(step)
        return step

    async def _fill_text(self, handle: ElementHandle, value: str, label: str) -> None:
        try:
            await self.typist.type_into(handle.element, value, label=label)
        except LoginAutofillError:
            raise
        except Exception as e:
            raise InteractionError(f"Could not type into {label} field", action="type", reason=str(e)) from e

    async def _fill_username(self, handle: ElementHandle, username: str) -> None:
        if handle.tag_name == "select":
            try:
                await select_username_option(handle, username)
            except LoginAutofillError:
                raise
            except Exception as e:
                raise InteractionError("Could not select username option", action="select", reason=str(e)) from e
            return
        await self._fill_text(handle, username, "username")

    async def _press_enter(self, handle: ElementHandle) -> None:
        try:
            await handle.element.press("Enter")
        except Exception as e:
            raise InteractionError(f"Enter on {handle.describe_short()} failed", action="press", reason=str(e)) from e

    async def click_submit(self, handle: ElementHandle) -> str:
        """
        Click a submit control, falling back to a script click.

        Returns:
            "click" or "script_click"

        Raises:
            InteractionError: If both clicks failed
        """
        try:
            await handle.element.click()
            return "click"
        except Exception as e:
            if not self.settings.script_click_fallback:
                raise InteractionError("Submit click failed", action="click", reason=str(e)) from e
            logger.warning(f"Native click on {handle.describe_short()} failed ({e}), trying script click")

        try:
            await handle.element.script_click()
            return "script_click"
        except Exception as e:
            raise InteractionError("Submit click failed", action="script_click", reason=str(e)) from e

    # =========================================================================
    # WAITING
    # =========================================================================

    async def _scan(self, role: FieldRole, known: Optional[ElementHandle]) -> List[ElementHandle]:
        handles = await capture_all(await self.page.query_selector_all(", ".join(ROLE_SELECTORS[role])))
        if known is not None:
            fresh = await known.refresh()
            if fresh is not None and not any(are_same_element(fresh, h) for h in handles):
                handles.insert(0, fresh)
        return handles

    async def _refresh_all(self, handles: Sequence[ElementHandle]) -> List[ElementHandle]:
        refreshed = await asyncio.gather(*(h.refresh() for h in handles))
        return [h for h in refreshed if h is not None]

    async def is_stable(self, handle: ElementHandle) -> bool:
        """Visible with an unchanged bounding box over the stability window."""
        element = handle.element
        try:
            before = await element.bounding_box()
            if before is None or not await element.is_visible():
                return False
            await self.clock.sleep(self.settings.stability_window_ms)
            after = await element.bounding_box()
            return after == before and await element.is_visible()
        except Exception as e:
            logger.debug(f"Stability check failed for {handle.describe_short()}: {e}")
            return False

    async def wait_for_field(
        self,
        role: FieldRole,
        known: Optional[ElementHandle] = None,
        exclude: Sequence[Optional[ElementHandle]] = (),
        timeout_ms: Optional[int] = None,
    ) -> Optional[ElementHandle]:
        """
        Poll until the best candidate for a role is visible and stable.

        The page is re-scanned whenever its DOM fingerprint changes; in
        between, the known candidates are only re-described.

        Returns:
            The field, or None on timeout
        """
        timeout_ms = self.settings.field_wait_timeout_ms if timeout_ms is None else timeout_ms
        deadline = self.clock.monotonic_ms() + timeout_ms
        fingerprint: Optional[DOMFingerprint] = None
        pool: Optional[List[ElementHandle]] = None

        while True:
            current = await DOMFingerprint.capture(self.page)
            if pool is None or current is None or current.changed_from(fingerprint):
                pool = await self._scan(role, known)
                fingerprint = current
            else:
                pool = await self._refresh_all(pool)

            candidate = self.scorer.best(pool, role, exclude=exclude)
            if candidate is not None and await self.is_stable(candidate):
                logger.debug(f"{role.value} field ready: {candidate.describe_short()}")
                return candidate

            if self.clock.monotonic_ms() >= deadline:
                logger.debug(f"No {role.value} field within {timeout_ms}ms")
                return None
            await self.clock.sleep(self.settings.polling_interval_ms)

    # =========================================================================
    # STANDARD
    # =========================================================================

    async def _standard_fill(
        self,
        form: DetectedForm,
        username: ElementHandle,
        password: ElementHandle,
        credentials: Credentials,
        result: EntryResult,
    ) -> EntryResult:
        step = await self._run_step("FillUsername", lambda: self._fill_username(username, credentials.username))
        if not step.success:
            return self._finish(result, EntryState.FAILED, step.error)
        last_filled = username

        if credentials.domain:
            if is_valid_domain_field(form.domain_field, username, password):
                domain = form.domain_field
                step = await self._run_step("FillDomain", lambda: self.domain_handler.apply(domain, credentials.domain))
                if step.success and domain.tag_name != "select":
                    last_filled = domain
            else:
                logger.warning("Domain given but no usable domain field, continuing without it")

        step = await self._run_step("FillPassword", lambda: self._fill_text(password, credentials.password, "password"))
        if not step.success:
            return await self._fallback(last_filled, result, step.error)
        last_filled = password

        self._transition(EntryState.SUBMIT)

        async def submit() -> str:
            await self.clock.sleep(self.settings.submission_delay_ms)
            if form.submit_button is not None:
                return await self.click_submit(form.submit_button)
            await self._press_enter(password)
            return "enter"

        step = await self._run_step("Submit", submit)
        if not step.success:
            return await self._fallback(last_filled, result, step.error)
        return self._finish(result, EntryState.SUCCESS)

    # =========================================================================
    # PROGRESSIVE
    # =========================================================================

    async def _progressive_fill(
        self,
        form: DetectedForm,
        username: ElementHandle,
        credentials: Credentials,
        result: EntryResult,
    ) -> EntryResult:
        settings = self.settings
        fields = _Fields(username=username, domain=None, submit=form.submit_button)

        async def enter_username() -> ElementHandle:
            await self._fill_username(fields.username, credentials.username)
            password = await self.wait_for_field(
                FieldRole.PASSWORD,
                known=form.password_field,
                exclude=[fields.username],
                timeout_ms=settings.field_wait_timeout_ms,
            )
            if password is None:
                raise NotFoundError(
                    "Password field did not appear after entering the username",
                    role=FieldRole.PASSWORD.value,
                    timeout_ms=settings.field_wait_timeout_ms,
                )
            fields.password = password
            return password

        step = await self._run_step("EnterUsername", enter_username)
        if not step.success:
            return self._finish(result, EntryState.FAILED, step.error)
        fields.last_filled = fields.username
        password: ElementHandle = step.result

        async def enter_password() -> Optional[ElementHandle]:
            await self._fill_text(password, credentials.password, "password")
            submit = await self.wait_for_field(
                FieldRole.SUBMIT_BUTTON,
                known=fields.submit,
                exclude=fields.taken(),
                timeout_ms=settings.submit_wait_timeout_ms,
            )
            if submit is None:
                logger.info("No submit control appeared, will submit with Enter")
            fields.submit = submit
            return submit

        step = await self._run_step("EnterPassword", enter_password)
        if not step.success:
            return await self._fallback(fields.last_filled, result, step.error)
        fields.last_filled = password

        if credentials.domain:
            async def enter_domain() -> Optional[str]:
                domain = form.domain_field
                if not is_valid_domain_field(domain, fields.username, fields.password):
                    domain = await self.wait_for_field(
                        FieldRole.DOMAIN,
                        exclude=[fields.username, fields.password],
                        timeout_ms=settings.domain_wait_timeout_ms,
                    )
                if domain is None or not is_valid_domain_field(domain, fields.username, fields.password):
                    logger.warning("Domain given but no domain field found, continuing without it")
                    return None
                fields.domain = domain
                return await self.domain_handler.apply(domain, credentials.domain)

            step = await self._run_step("EnterDomain", enter_domain)
            if not step.success:
                return await self._fallback(fields.last_filled, result, step.error)
            if fields.domain is not None and fields.domain.tag_name != "select":
                fields.last_filled = fields.domain

        self._transition(EntryState.SUBMIT)

        async def submit() -> str:
            control = fields.submit
            if control is None:
                await self._press_enter(password)
                return "enter"
            if not await self.is_stable(control):
                refreshed = await self.wait_for_field(
                    FieldRole.SUBMIT_BUTTON,
                    known=control,
                    exclude=fields.taken(),
                    timeout_ms=settings.submit_wait_timeout_ms,
                )
                if refreshed is None:
                    raise InteractionError("Submit control is not visible and stable", action="click")
                control = fields.submit = refreshed
            return await self.click_submit(control)

        step = await self._run_step("Submit", submit)
        if not step.success:
            return await self._fallback(fields.last_filled, result, step.error)
        return self._finish(result, EntryState.SUCCESS)

    # =========================================================================
    # FALLBACK
    # =========================================================================

    async def _fallback(
        self,
        last_filled: Optional[ElementHandle],
        result: EntryResult,
        error: Optional[str],
    ) -> EntryResult:
        """Press Enter on the last filled field after a step failed."""
        if last_filled is None:
            return self._finish(result, EntryState.FAILED, error)

        logger.info(f"Falling back to Enter on {last_filled.describe_short()}")
        if not self._states or self._states[-1] != EntryState.SUBMIT:
            self._transition(EntryState.SUBMIT)

        start = self.clock.monotonic_ms()
        try:
            await self._press_enter(last_filled)
        except InteractionError as e:
            self._steps.append(StepResult(
                name="FallbackSubmit",
                success=False,
                duration_ms=self.clock.monotonic_ms() - start,
                error=str(e),
            ))
            return self._finish(result, EntryState.FAILED, f"{error}; fallback failed: {e}")

        self._steps.append(StepResult(
            name="FallbackSubmit",
            success=True,
            duration_ms=self.clock.monotonic_ms() - start,
            result="enter",
        ))
        result.fallback_used = True
        return self._finish(result, EntryState.SUCCESS, error)
