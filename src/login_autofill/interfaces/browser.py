"""
Browser Interface - Abstract base classes for the browser driver.

This module defines the narrow capability the detector and the entry state
machine need from a browser: query elements, inspect them, act on them,
evaluate script and take screenshots.

Example:
    >>> from login_autofill.browsers import PlaywrightBrowser
    >>> browser = PlaywrightBrowser()
    >>> await browser.launch(headless=True)
    >>> page = await browser.new_page()
    >>> await page.goto("https://example.com/login")
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class BrowserType(Enum):
    """Supported browser types."""
    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class ISearchContext(ABC):
    """Anything elements can be queried from: a page, an element or a shadow root."""

    @abstractmethod
    async def query_selector_all(self, selector: str) -> List["IElement"]:
        """
        Find all elements matching a CSS selector.

        Args:
            selector: CSS selector

        Returns:
            Matching elements (empty list when none match)
        """
        ...


class IShadowRoot(ISearchContext):
    """An open shadow root attached to a host element."""


class IElement(ISearchContext):
    """
    Abstract interface for interacting with a DOM element.

    This interface wraps a live browser element reference and provides
    methods for interaction and inspection.
    """

    @abstractmethod
    async def describe(self) -> Dict[str, Any]:
        """
        Read everything the scorer needs in one round-trip.

        Returns:
            Dictionary with keys: tag, attributes, text, value, visible,
            enabled, options (list of {value, text}), formInputIndex,
            formInputCount, isLastFormButton, inShadowRoot, hasShadowRoot,
            rect ({x, y, width, height} or None)
        """
        ...

    @abstractmethod
    async def get_attribute(self, name: str) -> Optional[str]:
        """
        Get an attribute value from this element.

        Args:
            name: The attribute name

        Returns:
            The attribute value, or None if not present
        """
        ...

    @abstractmethod
    async def text_content(self) -> Optional[str]:
        """Get the text content of this element."""
        ...

    @abstractmethod
    async def input_value(self) -> str:
        """Get the current value of an input, textarea or select."""
        ...

    @abstractmethod
    async def is_visible(self) -> bool:
        """Check if this element is visible."""
        ...

    @abstractmethod
    async def is_enabled(self) -> bool:
        """Check if this element is enabled."""
        ...

    @abstractmethod
    async def bounding_box(self) -> Optional[Dict[str, float]]:
        """Get the element's position and size, or None when not rendered."""
        ...

    @abstractmethod
    async def click(self, **options: Any) -> None:
        """
        Click on this element with a native pointer event.

        Args:
            **options: Browser-specific click options
        """
        ...

    @abstractmethod
    async def script_click(self) -> None:
        """Click this element through script (``el.click()``)."""
        ...

    @abstractmethod
    async def fill(self, value: str) -> None:
        """
        Replace the element's value in one operation.

        Args:
            value: The text to set
        """
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Clear the element's value."""
        ...

    @abstractmethod
    async def type_text(self, text: str) -> None:
        """
        Send keystrokes for ``text`` without clearing first.

        Args:
            text: The text to type
        """
        ...

    @abstractmethod
    async def press(self, key: str) -> None:
        """
        Press a single key (e.g. "Enter") with this element focused.

        Args:
            key: Key name
        """
        ...

    @abstractmethod
    async def select_option(
        self,
        value: Optional[str] = None,
        label: Optional[str] = None,
    ) -> List[str]:
        """
        Select an option in a <select> element by value or by label.

        Args:
            value: Option value to select
            label: Option label to select

        Returns:
            List of selected option values
        """
        ...

    @abstractmethod
    async def shadow_root(self) -> Optional[IShadowRoot]:
        """
        Native accessor for the element's open shadow root.

        Returns:
            The shadow root, or None when absent, closed or unsupported
        """
        ...


class IPage(ISearchContext):
    """
    Abstract interface for browser page operations.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Get the current page URL."""
        ...

    @abstractmethod
    async def goto(self, url: str, **options: Any) -> None:
        """
        Navigate to a URL.

        Args:
            url: The URL to navigate to
            **options: Browser-specific navigation options
        """
        ...

    @abstractmethod
    async def query_xpath(self, expression: str) -> List[IElement]:
        """
        Find all elements matching an XPath expression.

        Args:
            expression: XPath expression

        Returns:
            Matching elements (empty list when none match)
        """
        ...

    @abstractmethod
    async def query_shadow_hosts(self) -> List[IElement]:
        """
        Walk the document and return every element exposing an open shadow root.

        Returns:
            Host elements in document order
        """
        ...

    @abstractmethod
    async def resolve_shadow_root(self, element: IElement) -> Optional[IShadowRoot]:
        """
        Script fallback for reaching an element's shadow root.

        Args:
            element: The host element

        Returns:
            The shadow root, or None when absent or closed
        """
        ...

    @abstractmethod
    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """
        Execute JavaScript in the page context.

        Args:
            expression: JavaScript expression or function to execute
            arg: Optional argument passed to the function

        Returns:
            The result of the JavaScript execution
        """
        ...

    @abstractmethod
    async def screenshot(
        self,
        path: Optional["Path"] = None,
        full_page: bool = False,
    ) -> bytes:
        """
        Take a screenshot of the page.

        Args:
            path: Optional path to save the screenshot
            full_page: Whether to capture the full scrollable page

        Returns:
            The screenshot as PNG bytes
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close this page."""
        ...


class IBrowser(ABC):
    """
    Abstract interface for browser management.
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the browser is connected and running."""
        ...

    @abstractmethod
    async def launch(
        self,
        headless: bool = True,
        browser_type: BrowserType = BrowserType.CHROMIUM,
        **options: Any,
    ) -> None:
        """
        Launch a browser instance.

        Args:
            headless: Whether to run in headless mode
            browser_type: Type of browser to launch
            **options: Browser-specific launch options
        """
        ...

    @abstractmethod
    async def new_page(self, **options: Any) -> IPage:
        """
        Create a new browser page/tab.

        Args:
            **options: Browser-specific context options (e.g., viewport size)

        Returns:
            A new page instance
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the browser and cleanup resources."""
        ...
