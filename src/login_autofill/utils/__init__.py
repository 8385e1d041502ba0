"""
Utilities module - Common utility functions.
"""

from login_autofill.utils.logging import setup_logging
from login_autofill.utils.retry import retry_async, RetryConfig
from login_autofill.utils.clock import Clock, get_clock

__all__ = [
    "setup_logging",
    "retry_async",
    "RetryConfig",
    "Clock",
    "get_clock",
]
