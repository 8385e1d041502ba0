"""
Domain Field - Fill domain/tenant fields and user-picker dropdowns.

Dropdowns are filled by ranking their options against the requested
value; text fields are typed and then read back. A text field that does
not hold the typed value after one direct re-fill is a validation
failure, never retried further.
"""

import re
from typing import List, Optional, Sequence, TYPE_CHECKING
import logging

from login_autofill.engine.keystrokes import Typist
from login_autofill.engine.models import ElementHandle, SelectOption
from login_autofill.engine.scoring import (
    DOMAIN_TERM,
    PASSWORD_TERM,
    USER_TERM,
    are_same_element,
    is_placeholder_option,
)
from login_autofill.exceptions.detection import NotFoundError, ValidationFailedError

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IElement

logger = logging.getLogger(__name__)


def rank_option(option: SelectOption, domain: str) -> int:
    """
    Score one option against a domain value.

    Returns:
        100 exact, 90 exact ignoring case, 70 whole-word match,
        50 option contains the domain, 30 domain contains the option,
        0 otherwise (and always 0 for placeholder options)
    """
    if is_placeholder_option(option.text) and is_placeholder_option(option.value):
        return 0
    wanted = domain.strip()
    if not wanted:
        return 0
    candidates = [c for c in (option.value.strip(), option.text.strip()) if c]

    if wanted in candidates:
        return 100
    lowered = wanted.lower()
    if any(c.lower() == lowered for c in candidates):
        return 90
    boundary = re.compile(rf"\b{re.escape(wanted)}\b", re.IGNORECASE)
    if any(boundary.search(c) for c in candidates):
        return 70
    if any(lowered in c.lower() for c in candidates):
        return 50
    if any(c.lower() in lowered for c in candidates):
        return 30
    return 0


def choose_option(options: Sequence[SelectOption], domain: str) -> Optional[SelectOption]:
    """Highest-ranked option; the first one wins ties."""
    best: Optional[SelectOption] = None
    best_score = 0
    for option in options:
        score = rank_option(option, domain)
        if score > best_score:
            best, best_score = option, score
    return best


def is_valid_domain_field(
    domain_field: Optional[ElementHandle],
    username_field: Optional[ElementHandle] = None,
    password_field: Optional[ElementHandle] = None,
) -> bool:
    """
    A domain field must be its own element, carry a domain term and no
    username or password term.
    """
    if domain_field is None:
        return False
    if are_same_element(domain_field, username_field) or are_same_element(domain_field, password_field):
        logger.warning(f"Domain field {domain_field.describe_short()} is also a credential field, skipping")
        return False
    attrs = domain_field.combined_attributes()
    if not DOMAIN_TERM.search(attrs):
        logger.warning(f"Domain field {domain_field.describe_short()} has no domain identifier, skipping")
        return False
    if USER_TERM.search(attrs) or PASSWORD_TERM.search(attrs):
        logger.warning(f"Domain field {domain_field.describe_short()} looks like a credential field, skipping")
        return False
    return True


async def _current_options(handle: ElementHandle) -> List[SelectOption]:
    fresh = await handle.refresh()
    return (fresh or handle).options


async def select_username_option(handle: ElementHandle, username: str) -> str:
    """
    Pick a user from a dropdown.

    Tries, in order: exact value, exact label, case-insensitive text,
    partial text.

    Returns:
        The selected option value

    Raises:
        NotFoundError: If no option matches
    """
    element = handle.element
    options = await _current_options(handle)
    lowered = username.lower()

    if any(o.value == username for o in options):
        await element.select_option(value=username)
        return username
    match = next((o for o in options if o.text == username), None)
    if match is not None:
        await element.select_option(label=match.text)
        return match.value
    match = next((o for o in options if o.text.lower() == lowered or o.value.lower() == lowered), None)
    if match is None:
        match = next(
            (
                o for o in options
                if not is_placeholder_option(o.text)
                and (lowered in o.text.lower() or lowered in o.value.lower())
            ),
            None,
        )
    if match is None:
        raise NotFoundError(f"No option in {handle.describe_short()} matches user '{username}'")

    await element.select_option(value=match.value)
    logger.debug(f"Selected user option '{match.text}'")
    return match.value


class DomainFieldHandler:
    """
    Enter a domain into a select or a text field.

    Example:
        >>> handler = DomainFieldHandler(typist)
        >>> await handler.apply(form.domain_field, "CORP")
    """

    def __init__(self, typist: Typist):
        self.typist = typist

    async def apply(self, handle: ElementHandle, domain: str) -> str:
        """
        Fill the domain field.

        Args:
            handle: Domain field
            domain: Requested domain

        Returns:
            The value now held by the field

        Raises:
            NotFoundError: No dropdown option matches the domain
            ValidationFailedError: A text field does not keep the typed value
        """
        if handle.tag_name == "select":
            return await self._select(handle, domain)
        return await self._type(handle.element, domain)

    async def _select(self, handle: ElementHandle, domain: str) -> str:
        options = await _current_options(handle)
        option = choose_option(options, domain)
        if option is None:
            raise NotFoundError(
                f"No option in {handle.describe_short()} matches domain '{domain}' "
                f"({len(options)} options)",
            )
        await handle.element.select_option(value=option.value)
        logger.info(f"Selected domain option '{option.text or option.value}'")
        return option.value

    async def _type(self, element: "IElement", domain: str) -> str:
        await self.typist.type_into(element, domain, label="domain")
        actual = await element.input_value()
        if actual == domain:
            return actual

        logger.warning(f"Domain read-back mismatch (got '{actual}'), re-filling directly")
        await element.fill(domain)
        actual = await element.input_value()
        if actual != domain:
            raise ValidationFailedError(
                "Domain field did not keep the entered value",
                expected=domain,
                actual=actual,
            )
        return actual
