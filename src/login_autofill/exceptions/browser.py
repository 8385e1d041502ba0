"""
Browser-related exceptions.
"""

from login_autofill.exceptions.base import LoginAutofillError


class BrowserError(LoginAutofillError):
    """Base exception for browser-related errors."""
    pass


class BrowserLaunchError(BrowserError):
    """
    Error launching the browser.

    Raised when the browser fails to start, which could be due to:
    - Missing browser binaries
    - Invalid browser options
    """
    pass


class BrowserConnectionError(BrowserError):
    """
    Error connecting to the browser.

    Raised when a page is requested before the browser was launched
    or after the connection was lost.
    """
    pass


class NavigationError(BrowserError):
    """
    Error during page navigation.

    Raised when the login page cannot be opened (invalid URL, network
    error, navigation timeout).
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url})
        self.url = url
