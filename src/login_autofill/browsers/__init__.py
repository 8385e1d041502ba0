"""
Browsers module - Browser driver implementations.
"""

from login_autofill.browsers.playwright_browser import (
    PlaywrightBrowser,
    PlaywrightPage,
    PlaywrightElement,
)

__all__ = [
    "PlaywrightBrowser",
    "PlaywrightPage",
    "PlaywrightElement",
]
