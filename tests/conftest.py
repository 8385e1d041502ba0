"""
Pytest configuration and fixtures.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Drop global settings and metrics between tests."""
    from login_autofill.config import reset_settings
    from login_autofill.engine.detection_metrics import reset_metrics

    yield
    reset_settings()
    reset_metrics()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo handlers installed by setup_logging()."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
