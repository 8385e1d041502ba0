"""
Reporting - Diagnostic artifacts for failed runs.
"""

from login_autofill.reporting.screenshot_manager import Screenshot, ScreenshotManager

__all__ = [
    "Screenshot",
    "ScreenshotManager",
]
