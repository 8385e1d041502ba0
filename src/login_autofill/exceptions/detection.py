"""
Detection and entry exceptions.

These are recovered locally by the detector and the entry state machine.
Callers only ever observe them through an empty detection result or a
failed entry result.
"""

from login_autofill.exceptions.base import LoginAutofillError


class NotFoundError(LoginAutofillError):
    """
    No element qualified for a role within the allotted time.

    Raised when a required field never appears, when a dropdown has no
    option matching the requested value, or when a strategy runs out
    of candidates.
    """

    def __init__(self, message: str, role: str | None = None, timeout_ms: int | None = None):
        super().__init__(message, {"role": role, "timeout_ms": timeout_ms})
        self.role = role
        self.timeout_ms = timeout_ms


class AmbiguousMatchError(LoginAutofillError):
    """
    The same element was classified for two roles.

    Never treated as success: the detector discards the candidate form
    and moves on to the next strategy.
    """

    def __init__(self, message: str, roles: tuple[str, str]):
        super().__init__(message, {"roles": list(roles)})
        self.roles = roles


class InteractionError(LoginAutofillError):
    """
    A click, keystroke or select action on a live element failed.

    Considered transient: entry steps retry it and submit falls back
    to a script click.
    """

    def __init__(self, message: str, action: str, reason: str | None = None):
        super().__init__(message, {"action": action, "reason": reason})
        self.action = action
        self.reason = reason


class ValidationFailedError(LoginAutofillError):
    """
    A value read back from a field differs from what was entered.

    Raised after the single allowed retry. Never retried again.
    """

    def __init__(self, message: str, expected: str, actual: str | None):
        super().__init__(message, {"expected": expected, "actual": actual})
        self.expected = expected
        self.actual = actual
