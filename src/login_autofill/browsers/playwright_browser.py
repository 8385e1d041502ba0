"""
Playwright Browser - Implementation of the driver interfaces using Playwright.

This module provides a Playwright-based implementation of the browser interface.
"""

from typing import Any, Dict, List, Optional
import logging

from login_autofill.interfaces.browser import (
    IBrowser,
    IPage,
    IElement,
    IShadowRoot,
    BrowserType,
)
from login_autofill.exceptions.browser import (
    BrowserLaunchError,
    BrowserConnectionError,
    NavigationError,
)

logger = logging.getLogger(__name__)


# One round-trip per element: attributes, visibility, options, form position, shadow flags
DESCRIBE_ELEMENT_JS = """el => {
    const attrs = {};
    for (const attr of el.attributes) {
        attrs[attr.name] = attr.value;
    }
    const style = window.getComputedStyle(el);
    const rect = el.getBoundingClientRect();
    const visible = !!(rect.width || rect.height || el.getClientRects().length)
        && style.visibility !== 'hidden' && style.display !== 'none';

    let formInputIndex = -1;
    let formInputCount = 0;
    let isLastFormButton = false;
    const form = el.form || el.closest('form');
    if (form) {
        const inputs = Array.from(form.querySelectorAll('input'));
        formInputIndex = inputs.indexOf(el);
        formInputCount = inputs.length;
        const buttons = [
            ...form.querySelectorAll('button'),
            ...form.querySelectorAll("input[type='submit'], input[type='button']"),
        ];
        isLastFormButton = buttons.length > 0 && buttons[buttons.length - 1] === el;
    }

    const options = el.tagName === 'SELECT'
        ? Array.from(el.options).map(o => ({ value: o.value, text: (o.text || '').trim() }))
        : [];

    return {
        tag: el.tagName.toLowerCase(),
        attributes: attrs,
        text: (el.innerText || el.textContent || '').trim().slice(0, 200),
        value: ('value' in el && el.value != null) ? String(el.value) : '',
        visible: visible,
        enabled: !el.disabled,
        options: options,
        formInputIndex: formInputIndex,
        formInputCount: formInputCount,
        isLastFormButton: isLastFormButton,
        inShadowRoot: el.getRootNode() instanceof ShadowRoot,
        hasShadowRoot: !!el.shadowRoot,
        rect: visible ? { x: rect.x, y: rect.y, width: rect.width, height: rect.height } : null,
    };
}"""

FIND_SHADOW_HOSTS_JS = """() => {
    const hosts = [];
    const walker = document.createTreeWalker(document.body || document.documentElement, NodeFilter.SHOW_ELEMENT);
    let node = walker.currentNode;
    while (node) {
        if (node.shadowRoot) {
            hosts.push(node);
        }
        node = walker.nextNode();
    }
    return hosts;
}"""

RESOLVE_SHADOW_ROOT_JS = """el => {
    if (el.shadowRoot) {
        return el.shadowRoot;
    }
    if (typeof el.openOrClosedShadowRoot === 'function') {
        return el.openOrClosedShadowRoot() || null;
    }
    return null;
}"""


async def _handles_from_array(array_handle: Any) -> List[Any]:
    """Turn a JSHandle wrapping an array of nodes into element handles."""
    properties = await array_handle.get_properties()
    handles = []
    for prop in properties.values():
        element = prop.as_element()
        if element is not None:
            handles.append(element)
    await array_handle.dispose()
    return handles


class PlaywrightShadowRoot(IShadowRoot):
    """A shadow root reached through a Playwright handle."""

    def __init__(self, handle: Any):
        self._handle = handle

    async def query_selector_all(self, selector: str) -> List[IElement]:
        """Find all matching elements inside this root."""
        elements = await self._handle.query_selector_all(selector)
        return [PlaywrightElement(el) for el in elements]


class PlaywrightElement(IElement):
    """
    Playwright implementation of IElement.

    Wraps a Playwright ElementHandle for interaction and inspection.
    """

    def __init__(self, element: Any):
        """
        Initialize the element wrapper.

        Args:
            element: Playwright ElementHandle
        """
        self._element = element

    @property
    def raw(self) -> Any:
        """The wrapped Playwright handle."""
        return self._element

    async def describe(self) -> Dict[str, Any]:
        """Read tag, attributes, visibility and form context in one call."""
        return await self._element.evaluate(DESCRIBE_ELEMENT_JS)

    async def query_selector_all(self, selector: str) -> List[IElement]:
        """Find all matching descendants."""
        elements = await self._element.query_selector_all(selector)
        return [PlaywrightElement(el) for el in elements]

    async def get_attribute(self, name: str) -> Optional[str]:
        """Get an attribute value."""
        return await self._element.get_attribute(name)

    async def text_content(self) -> Optional[str]:
        """Get text content."""
        return await self._element.text_content()

    async def input_value(self) -> str:
        """Get the current input value."""
        return await self._element.input_value()

    async def is_visible(self) -> bool:
        """Check if visible."""
        return await self._element.is_visible()

    async def is_enabled(self) -> bool:
        """Check if enabled."""
        return await self._element.is_enabled()

    async def bounding_box(self) -> Optional[Dict[str, float]]:
        """Get position and size."""
        return await self._element.bounding_box()

    async def click(self, **options: Any) -> None:
        """Click on this element."""
        await self._element.click(**options)

    async def script_click(self) -> None:
        """Click through script."""
        await self._element.evaluate("el => el.click()")

    async def fill(self, value: str) -> None:
        """Fill this element with text."""
        await self._element.fill(value)

    async def clear(self) -> None:
        """Clear the value."""
        await self._element.fill("")

    async def type_text(self, text: str) -> None:
        """Type text as keystrokes."""
        await self._element.type(text)

    async def press(self, key: str) -> None:
        """Press a key."""
        await self._element.press(key)

    async def select_option(
        self,
        value: Optional[str] = None,
        label: Optional[str] = None,
    ) -> List[str]:
        """Select an option by value or label."""
        if value is not None:
            result = await self._element.select_option(value=value)
        else:
            result = await self._element.select_option(label=label)
        return result if isinstance(result, list) else [result]

    async def shadow_root(self) -> Optional[IShadowRoot]:
        """Native shadowRoot accessor."""
        handle = await self._element.evaluate_handle("el => el.shadowRoot")
        root = handle.as_element()
        if root is None:
            await handle.dispose()
            return None
        return PlaywrightShadowRoot(root)


class PlaywrightPage(IPage):
    """
    Playwright implementation of IPage.

    Wraps a Playwright Page for navigation, querying and script evaluation.
    """

    def __init__(self, page: Any):
        """
        Initialize the page wrapper.

        Args:
            page: Playwright Page object
        """
        self._page = page

    @property
    def url(self) -> str:
        """Get current URL."""
        return self._page.url

    async def goto(self, url: str, **options: Any) -> None:
        """Navigate to URL."""
        try:
            await self._page.goto(url, **options)
        except Exception as e:
            raise NavigationError(f"Failed to navigate to {url}: {e}", url=url)

    async def query_selector_all(self, selector: str) -> List[IElement]:
        """Find all matching elements."""
        elements = await self._page.query_selector_all(selector)
        return [PlaywrightElement(el) for el in elements]

    async def query_xpath(self, expression: str) -> List[IElement]:
        """Find all elements matching an XPath expression."""
        elements = await self._page.query_selector_all(f"xpath={expression}")
        return [PlaywrightElement(el) for el in elements]

    async def query_shadow_hosts(self) -> List[IElement]:
        """Find every element exposing an open shadow root."""
        array_handle = await self._page.evaluate_handle(FIND_SHADOW_HOSTS_JS)
        return [PlaywrightElement(el) for el in await _handles_from_array(array_handle)]

    async def resolve_shadow_root(self, element: IElement) -> Optional[IShadowRoot]:
        """Reach a shadow root through page-level script."""
        if not isinstance(element, PlaywrightElement):
            return None
        handle = await self._page.evaluate_handle(RESOLVE_SHADOW_ROOT_JS, element.raw)
        root = handle.as_element()
        if root is None:
            await handle.dispose()
            return None
        return PlaywrightShadowRoot(root)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Execute JavaScript."""
        if arg is None:
            return await self._page.evaluate(expression)
        return await self._page.evaluate(expression, arg)

    async def screenshot(
        self,
        path: Optional[Any] = None,
        full_page: bool = False,
    ) -> bytes:
        """Take screenshot."""
        return await self._page.screenshot(path=path, full_page=full_page)

    async def close(self) -> None:
        """Close page."""
        await self._page.close()


class PlaywrightBrowser(IBrowser):
    """
    Playwright implementation of IBrowser.

    Example:
        >>> browser = PlaywrightBrowser()
        >>> await browser.launch(headless=True)
        >>> page = await browser.new_page()
        >>> await page.goto("https://example.com/login")
        >>> await browser.close()
    """

    def __init__(self):
        """Initialize the browser (not launched yet)."""
        self._playwright: Any = None
        self._browser: Any = None
        self._default_context: Any = None

    @property
    def is_connected(self) -> bool:
        """Check if browser is connected."""
        return self._browser is not None and self._browser.is_connected()

    async def launch(
        self,
        headless: bool = True,
        browser_type: BrowserType = BrowserType.CHROMIUM,
        **options: Any,
    ) -> None:
        """
        Launch the browser.

        Args:
            headless: Whether to run headless
            browser_type: Type of browser to launch
            **options: Additional Playwright launch options (channel, slow_mo)
        """
        try:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()

            browser_launchers = {
                BrowserType.CHROMIUM: self._playwright.chromium,
                BrowserType.FIREFOX: self._playwright.firefox,
                BrowserType.WEBKIT: self._playwright.webkit,
            }
            launcher = browser_launchers.get(browser_type, self._playwright.chromium)

            self._browser = await launcher.launch(
                headless=headless,
                **{k: v for k, v in options.items() if v is not None},
            )

            logger.info(f"Launched {browser_type.value} browser (headless={headless})")

        except Exception as e:
            raise BrowserLaunchError(f"Failed to launch browser: {e}")

    async def new_page(self, **options: Any) -> IPage:
        """
        Create a new page.

        Args:
            **options: Context options (viewport, etc.)

        Returns:
            New page instance
        """
        if not self._browser:
            raise BrowserConnectionError("Browser not launched. Call launch() first.")

        if not self._default_context:
            self._default_context = await self._browser.new_context(**options)

        page = await self._default_context.new_page()
        return PlaywrightPage(page)

    async def close(self) -> None:
        """Close the browser and cleanup."""
        if self._default_context:
            await self._default_context.close()
            self._default_context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Browser closed")
