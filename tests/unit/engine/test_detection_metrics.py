"""
Tests for detection metrics and adaptive method ordering.
"""

import json

import pytest

from login_autofill.engine.detection_metrics import DetectionMetrics, MethodStats, host_of
from login_autofill.engine.models import DetectedForm, DetectionMethod

from .fakes import handle_of, password_input, text_input


@pytest.fixture
def form():
    return DetectedForm(
        username_field=handle_of(text_input(id="user")),
        password_field=handle_of(password_input(name="pw")),
    )


def test_host_of():
    """Hostnames are lowercased; bare strings pass through."""
    assert host_of("https://Portal.Example.com:8443/login") == "portal.example.com"
    assert host_of("about:blank") == "about:blank"


class TestMethodStats:
    """Tests for MethodStats."""

    def test_recommendation_score(self):
        """Success rate weighs 70%, confidence 30%."""
        stats = MethodStats(attempts=4, successes=2, total_confidence=160, total_time_ms=400)
        assert stats.success_rate == 0.5
        assert stats.avg_confidence == 80
        assert stats.avg_time_ms == 100
        assert stats.recommendation_score == pytest.approx(0.5 * 100 * 0.7 + 80 * 0.3)

    def test_empty(self):
        """No attempts means zero everywhere."""
        assert MethodStats().recommendation_score == 0


class TestDetectionMetrics:
    """Tests for DetectionMetrics."""

    def test_default_recommendation(self):
        """Without history the site-specific method goes first."""
        metrics = DetectionMetrics(cache_path=None)
        assert metrics.recommend("https://new.example.com").method == DetectionMethod.URL_SPECIFIC
        assert metrics.method_order("https://new.example.com") == list(DetectionMethod)

    def test_successful_method_moves_first(self, form):
        """The best-scoring method is recommended and ordered first."""
        metrics = DetectionMetrics(cache_path=None)
        url = "https://portal.example.com/login"

        failed = metrics.start_attempt(url, DetectionMethod.URL_SPECIFIC)
        metrics.record_failure(failed, "username or password field not found")
        succeeded = metrics.start_attempt(url, DetectionMethod.XPATH)
        metrics.record_success(succeeded, form, confidence=80)

        order = metrics.method_order(url)
        assert order[0] == DetectionMethod.XPATH
        assert sorted(order, key=lambda m: m.value) == sorted(DetectionMethod, key=lambda m: m.value)
        assert succeeded.selector_details == {"username": "#user", "password": "input[name='pw']"}
        assert succeeded.elements_found == 2

    def test_stats_are_per_host(self, form):
        """History on one host does not reorder another."""
        metrics = DetectionMetrics(cache_path=None)
        attempt = metrics.start_attempt("https://a.example.com", DetectionMethod.SHADOW_DOM)
        metrics.record_success(attempt, form, confidence=90)
        assert metrics.recommend("https://b.example.com").method == DetectionMethod.URL_SPECIFIC
        assert metrics.hosts() == ["a.example.com"]

    def test_persistence_round_trip(self, tmp_path, form):
        """Statistics survive a reload from disk."""
        path = tmp_path / "metrics.json"
        metrics = DetectionMetrics(cache_path=str(path))
        attempt = metrics.start_attempt("https://portal.example.com", DetectionMethod.COMMON_ATTRIBUTES)
        metrics.record_success(attempt, form, confidence=85)
        metrics.flush()

        data = json.loads(path.read_text())
        assert data["portal.example.com"]["common_attributes"]["successes"] == 1

        reloaded = DetectionMetrics(cache_path=str(path))
        assert reloaded.recommend("https://portal.example.com").method == DetectionMethod.COMMON_ATTRIBUTES
        assert reloaded.get_stats("portal.example.com")["common_attributes"]["attempts"] == 1

    def test_corrupt_file_ignored(self, tmp_path):
        """A corrupt cache file starts an empty store."""
        path = tmp_path / "metrics.json"
        path.write_text("{not json")
        metrics = DetectionMetrics(cache_path=str(path))
        assert metrics.hosts() == []

    def test_clear_host(self, form):
        """Clearing one host keeps the others."""
        metrics = DetectionMetrics(cache_path=None)
        for host in ("a.example.com", "b.example.com"):
            attempt = metrics.start_attempt(f"https://{host}/", DetectionMethod.XPATH)
            metrics.record_success(attempt, form, confidence=70)
        metrics.clear("a.example.com")
        assert metrics.hosts() == ["b.example.com"]

    def test_recent_attempts_bounded(self):
        """Only max_attempts recent attempts are kept."""
        metrics = DetectionMetrics(cache_path=None, max_attempts=3)
        for _ in range(5):
            metrics.record_failure(metrics.start_attempt("https://x.test", DetectionMethod.XPATH), "nope")
        assert len(metrics.recent_attempts()) == 3
        assert metrics.recent_attempts("x.test")[0].reason == "nope"
