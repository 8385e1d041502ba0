"""
Tests for the reporting module.
"""

import pytest
from pathlib import Path
from datetime import datetime
from unittest.mock import MagicMock, AsyncMock


class TestScreenshot:
    """Test the Screenshot dataclass."""

    def test_create_screenshot(self):
        """Test creating a screenshot."""
        from login_autofill.reporting.screenshot_manager import Screenshot
        screenshot = Screenshot(
            path=Path("/tmp/screenshot.png"),
            label="EnterUsername",
            timestamp=datetime.now()
        )
        assert screenshot.label == "EnterUsername"
        assert screenshot.path == Path("/tmp/screenshot.png")
        assert screenshot.is_error is False


class TestScreenshotManager:
    """Test the ScreenshotManager class."""

    @pytest.fixture
    def manager(self, tmp_path):
        """Create a ScreenshotManager instance."""
        from login_autofill.reporting.screenshot_manager import ScreenshotManager
        return ScreenshotManager(output_dir=str(tmp_path), run_id="test123")

    @pytest.fixture
    def mock_page(self):
        """Create a mock page."""
        page = MagicMock()
        page.screenshot = AsyncMock(return_value=b"fake_image_data")
        return page

    def test_output_dir_created_lazily(self, tmp_path):
        """The run directory only appears once something is captured."""
        from login_autofill.reporting.screenshot_manager import ScreenshotManager
        manager = ScreenshotManager(output_dir=str(tmp_path), run_id="newrun")
        assert manager.output_dir == tmp_path / "newrun"
        assert not manager.output_dir.exists()

    @pytest.mark.asyncio
    async def test_capture_screenshot(self, manager, mock_page):
        """Test capturing a screenshot."""
        result = await manager.capture(mock_page, "Submit", description="Before click")
        assert result is not None
        assert result.description == "Before click"
        assert result.path.parent == manager.output_dir
        assert result.path.name.startswith("submit_")
        assert manager.output_dir.exists()
        mock_page.screenshot.assert_called_once()

    @pytest.mark.asyncio
    async def test_capture_on_error(self, manager, mock_page):
        """Test capturing screenshot on error."""
        result = await manager.capture_on_error(mock_page, "EnterUsername", error="Password field did not appear")
        assert result.is_error is True
        assert "Error" in result.description
        assert result.path.name.startswith("error_enterusername_")
        assert mock_page.screenshot.call_args.kwargs["full_page"] is True

    @pytest.mark.asyncio
    async def test_capture_failure_returns_none(self, manager, mock_page):
        """A page that cannot be captured is not an error."""
        mock_page.screenshot = AsyncMock(side_effect=RuntimeError("Target closed"))
        assert await manager.capture(mock_page, "Submit") is None
        assert manager.get_screenshots() == []

    @pytest.mark.asyncio
    async def test_get_screenshots(self, manager, mock_page):
        """Test getting all screenshots."""
        await manager.capture(mock_page, "EnterUsername")
        await manager.capture(mock_page, "Submit")
        assert len(manager.get_screenshots()) == 2

    @pytest.mark.asyncio
    async def test_get_screenshots_for_label(self, manager, mock_page):
        """Test getting screenshots for a specific step."""
        await manager.capture(mock_page, "EnterUsername")
        await manager.capture(mock_page, "Submit")
        shots = manager.get_screenshots_for("Submit")
        assert len(shots) == 1
        assert shots[0].label == "Submit"
