"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout Login Autofill,
providing clear error types for different failure scenarios.
"""

from login_autofill.exceptions.base import (
    LoginAutofillError,
    ConfigurationError,
)
from login_autofill.exceptions.browser import (
    BrowserError,
    BrowserLaunchError,
    BrowserConnectionError,
    NavigationError,
)
from login_autofill.exceptions.detection import (
    NotFoundError,
    AmbiguousMatchError,
    InteractionError,
    ValidationFailedError,
)

__all__ = [
    # Base exceptions
    "LoginAutofillError",
    "ConfigurationError",
    # Browser exceptions
    "BrowserError",
    "BrowserLaunchError",
    "BrowserConnectionError",
    "NavigationError",
    # Detection / entry exceptions
    "NotFoundError",
    "AmbiguousMatchError",
    "InteractionError",
    "ValidationFailedError",
]
