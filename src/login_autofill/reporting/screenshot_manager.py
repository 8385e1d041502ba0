"""
Screenshot Manager - Capture diagnostic screenshots when entry steps fail.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, TYPE_CHECKING
import logging
import re

if TYPE_CHECKING:
    from login_autofill.interfaces.browser import IPage

logger = logging.getLogger(__name__)


@dataclass
class Screenshot:
    """
    A captured screenshot.

    Attributes:
        path: File path to the screenshot
        label: Step or phase the screenshot belongs to
        timestamp: When the screenshot was taken
        description: Description of what the screenshot shows
        is_error: Whether this is an error screenshot
    """
    path: Path
    label: str
    timestamp: datetime
    description: str = ""
    is_error: bool = False


def _slug(label: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]+", "_", label).strip("_").lower() or "page"


class ScreenshotManager:
    """
    Manage screenshot capture for one entry run.

    Example:
        >>> manager = ScreenshotManager(output_dir="./screenshots", run_id="run_123")
        >>> await manager.capture_on_error(page, "EnterUsername", "password field never appeared")
    """

    def __init__(
        self,
        output_dir: str | Path,
        run_id: Optional[str] = None,
        format: str = "png",
    ):
        """
        Initialize the screenshot manager.

        Args:
            output_dir: Directory to save screenshots
            run_id: Run identifier (subdirectory); defaults to a timestamp
            format: Image format (png, jpeg)
        """
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.output_dir = Path(output_dir) / self.run_id
        self.format = format
        self._screenshots: list[Screenshot] = []

    async def capture(
        self,
        page: "IPage",
        label: str,
        description: str = "",
        full_page: bool = False,
        is_error: bool = False,
    ) -> Optional[Screenshot]:
        """
        Capture a screenshot.

        Args:
            page: Browser page to capture
            label: Step or phase name, used in the file name
            description: Description of the screenshot
            full_page: Whether to capture full scrollable page
            is_error: Whether this is an error screenshot

        Returns:
            Screenshot object, or None when the page could not be captured
        """
        timestamp = datetime.now()
        prefix = "error_" if is_error else ""
        filename = f"{prefix}{_slug(label)}_{timestamp.strftime('%H%M%S_%f')}.{self.format}"
        path = self.output_dir / filename

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=path, full_page=full_page)
        except Exception as e:
            logger.warning(f"Screenshot '{label}' failed: {e}")
            return None

        screenshot = Screenshot(
            path=path,
            label=label,
            timestamp=timestamp,
            description=description,
            is_error=is_error,
        )
        self._screenshots.append(screenshot)

        logger.debug(f"Captured screenshot: {path}")
        return screenshot

    async def capture_on_error(
        self,
        page: "IPage",
        label: str,
        error: str,
    ) -> Optional[Screenshot]:
        """Capture an error screenshot."""
        screenshot = await self.capture(
            page=page,
            label=label,
            description=f"Error: {error}",
            full_page=True,
            is_error=True,
        )
        if screenshot is not None:
            logger.info(f"Error screenshot for {label}: {screenshot.path}")
        return screenshot

    def get_screenshots(self) -> list[Screenshot]:
        """Get all captured screenshots."""
        return self._screenshots.copy()

    def get_screenshots_for(self, label: str) -> list[Screenshot]:
        """Get all screenshots taken for a step."""
        return [s for s in self._screenshots if s.label == label]
