"""
Integration tests for the CLI commands.
"""

import pytest
from typer.testing import CliRunner

from login_autofill.engine.detection_metrics import DetectionMetrics
from login_autofill.engine.models import DetectedForm, DetectionMethod


@pytest.fixture
def runner():
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def metrics_path(tmp_path, monkeypatch):
    """Point the metrics store at a temporary file."""
    path = tmp_path / "metrics.json"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOGIN_AUTOFILL__METRICS__CACHE_PATH", str(path))
    return path


class TestCLIDetect:
    """Test the 'detect' CLI command."""

    def test_detect_help(self, runner):
        """Test help for detect command."""
        from login_autofill.main import app
        result = runner.invoke(app, ["detect", "--help"])
        assert result.exit_code == 0
        assert "Detect the login form" in result.stdout
        assert "--visible" in result.stdout

    def test_detect_missing_config(self, runner, tmp_path):
        """A config file that does not exist exits with an error."""
        from login_autofill.main import app
        result = runner.invoke(app, ["detect", "https://portal.example.com", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Configuration error" in result.stdout


class TestCLILogin:
    """Test the 'login' CLI command."""

    def test_login_help(self, runner):
        """Test help for login command."""
        from login_autofill.main import app
        result = runner.invoke(app, ["login", "--help"])
        assert result.exit_code == 0
        assert "--username" in result.stdout
        assert "--domain" in result.stdout
        assert "--typing-mode" in result.stdout

    def test_login_requires_username(self, runner):
        """The username option is mandatory."""
        from login_autofill.main import app
        result = runner.invoke(app, ["login", "https://portal.example.com"])
        assert result.exit_code != 0

    def test_login_rejects_unknown_typing_mode(self, runner):
        """Only the three typing modes are accepted."""
        from login_autofill.main import app
        result = runner.invoke(
            app, ["login", "https://portal.example.com", "-u", "alice", "-p", "x", "-t", "telepathic"],
        )
        assert result.exit_code == 2


class TestCLIStats:
    """Test the 'stats' CLI command."""

    def test_stats_empty(self, runner, metrics_path):
        """An empty store prints a hint."""
        from login_autofill.main import app
        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "No detection statistics" in result.stdout

    def test_stats_for_host(self, runner, metrics_path):
        """Recorded attempts are shown with a recommendation."""
        from login_autofill.main import app
        metrics = DetectionMetrics(cache_path=str(metrics_path))
        attempt = metrics.start_attempt("https://portal.example.com/login", DetectionMethod.XPATH)
        metrics.record_success(attempt, DetectedForm(), confidence=80)
        metrics.flush()

        result = runner.invoke(app, ["stats", "portal.example.com"])
        assert result.exit_code == 0
        assert "xpath" in result.stdout
        assert "Recommended first" in result.stdout

    def test_stats_clear(self, runner, metrics_path):
        """--clear empties the store."""
        from login_autofill.main import app
        metrics = DetectionMetrics(cache_path=str(metrics_path))
        attempt = metrics.start_attempt("https://portal.example.com/login", DetectionMethod.XPATH)
        metrics.record_success(attempt, DetectedForm(), confidence=80)
        metrics.flush()

        result = runner.invoke(app, ["stats", "--clear"])
        assert result.exit_code == 0
        assert DetectionMetrics(cache_path=str(metrics_path)).hosts() == []


class TestCLIApp:
    """Test general CLI app behavior."""

    def test_version(self, runner):
        """Test version output."""
        from login_autofill import __version__
        from login_autofill.main import app
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_main_help(self, runner):
        """Test main app help."""
        from login_autofill.main import app
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "login form" in result.stdout.lower()

    def test_invalid_command(self, runner):
        """Test invalid command shows error."""
        from login_autofill.main import app
        result = runner.invoke(app, ["invalid-command"])
        assert result.exit_code != 0
