"""
Interfaces module - Abstract driver contracts.
"""

from login_autofill.interfaces.browser import (
    BrowserType,
    ISearchContext,
    IShadowRoot,
    IElement,
    IPage,
    IBrowser,
)

__all__ = [
    "BrowserType",
    "ISearchContext",
    "IShadowRoot",
    "IElement",
    "IPage",
    "IBrowser",
]
