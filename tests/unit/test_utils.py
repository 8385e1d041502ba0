"""
Tests for retry, clock and logging utilities.
"""

import asyncio
import json
import logging

import pytest
from rich.logging import RichHandler

from login_autofill.exceptions import InteractionError, NotFoundError
from login_autofill.utils import Clock, RetryConfig, get_clock, retry_async, setup_logging


class RecordingClock(Clock):
    """Clock that records delays without sleeping."""

    def __init__(self):
        self.sleeps = []

    async def sleep(self, ms):
        self.sleeps.append(ms)


class TestRetryAsync:
    """Tests for retry_async."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        """A passing call runs once."""
        calls = []

        async def func():
            calls.append(1)
            return "ok"

        assert await retry_async(func, RetryConfig(), clock=RecordingClock()) == "ok"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_retries_with_backoff(self):
        """Retryable errors are retried with growing, capped delays."""
        clock = RecordingClock()
        calls = []

        async def func():
            calls.append(1)
            if len(calls) < 4:
                raise InteractionError("click failed", action="click")
            return "done"

        config = RetryConfig(
            max_attempts=4,
            initial_delay_ms=100,
            max_delay_ms=300,
            retry_on=(InteractionError,),
        )
        assert await retry_async(func, config, clock=clock) == "done"
        assert clock.sleeps == [100, 200, 300]

    @pytest.mark.asyncio
    async def test_last_error_raised(self):
        """When every attempt fails the last error propagates."""
        async def func():
            raise InteractionError("click failed", action="click")

        config = RetryConfig(max_attempts=2, retry_on=(InteractionError,))
        with pytest.raises(InteractionError):
            await retry_async(func, config, clock=RecordingClock())

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_at_once(self):
        """Errors outside retry_on are not retried."""
        calls = []

        async def func():
            calls.append(1)
            raise NotFoundError("no password field")

        config = RetryConfig(max_attempts=3, retry_on=(InteractionError,))
        with pytest.raises(NotFoundError):
            await retry_async(func, config, clock=RecordingClock())
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_attempt_timeout(self):
        """A hanging attempt times out and counts as a retryable failure."""
        calls = []

        async def func():
            calls.append(1)
            await asyncio.sleep(10)

        config = RetryConfig(max_attempts=2, attempt_timeout_ms=10)
        with pytest.raises(asyncio.TimeoutError):
            await retry_async(func, config, clock=RecordingClock())
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_on_retry_callback(self):
        """on_retry sees the attempt number and the error."""
        seen = []

        async def func():
            if not seen:
                raise asyncio.TimeoutError()
            return 1

        config = RetryConfig(max_attempts=2, on_retry=lambda n, e: seen.append(n))
        await retry_async(func, config, clock=RecordingClock())
        assert seen == [1]


class TestClock:
    """Tests for the real clock."""

    def test_singleton(self):
        """get_clock() returns one shared clock."""
        assert get_clock() is get_clock()

    @pytest.mark.asyncio
    async def test_monotonic(self):
        """Time never goes backwards."""
        clock = Clock()
        before = clock.monotonic_ms()
        await clock.sleep(0)
        assert clock.monotonic_ms() >= before


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_rich_console_handler(self):
        """A RichHandler is installed at the requested level."""
        setup_logging(level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in root.handlers)

    def test_file_handler(self, tmp_path):
        """A log file receives formatted records."""
        log_file = tmp_path / "autofill.log"
        setup_logging(level="INFO", log_file=str(log_file), json_format=True)
        logging.getLogger("login_autofill.test").info("detected form")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text()
        assert '"message": "detected form"' in content

    def test_json_lines_escape_messages(self, tmp_path):
        """Quotes and newlines in a message still give one valid JSON object per line."""
        log_file = tmp_path / "autofill.log"
        setup_logging(level="INFO", log_file=str(log_file), json_format=True)
        logging.getLogger("login_autofill.test").warning('No login form on "portal"\n  inputs: 0')
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["message"] == 'No login form on "portal"\n  inputs: 0'
        assert record["level"] == "WARNING"
