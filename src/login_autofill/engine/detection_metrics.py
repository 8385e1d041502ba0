"""
Detection Metrics - Learn which detection method works best per host.

Every strategy run is recorded as a DetectionAttempt. Per-host, per-method
statistics are persisted across sessions and used to put the most
promising method first on the next visit.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Deque, Dict, List, Optional, TYPE_CHECKING
from urllib.parse import urlparse
import json
import logging
import uuid

from login_autofill.engine.models import DetectionAttempt, DetectionMethod
from login_autofill.engine.scoring import selector_for

if TYPE_CHECKING:
    from login_autofill.engine.models import DetectedForm

logger = logging.getLogger(__name__)


def host_of(url: str) -> str:
    """Hostname of a URL, or the URL itself when it has none."""
    parsed = urlparse(url)
    return (parsed.hostname or url).lower()


@dataclass
class MethodStats:
    """Statistics for one detection method on one host."""
    attempts: int = 0
    successes: int = 0
    total_confidence: float = 0
    total_time_ms: float = 0

    @property
    def success_rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.successes / self.attempts

    @property
    def avg_confidence(self) -> float:
        if self.successes == 0:
            return 0.0
        return self.total_confidence / self.successes

    @property
    def avg_time_ms(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.total_time_ms / self.attempts

    @property
    def recommendation_score(self) -> float:
        """Success rate dominates; confidence breaks ties."""
        return self.success_rate * 100 * 0.7 + self.avg_confidence * 0.3


@dataclass
class MethodRecommendation:
    """Method to try first on a host."""
    method: DetectionMethod
    confidence: float
    reasoning: str


class DetectionMetrics:
    """
    Record detection attempts and recommend a method order.

    Usage:
        metrics = DetectionMetrics()

        attempt = metrics.start_attempt(url, DetectionMethod.XPATH)
        metrics.record_success(attempt, form, confidence=80)

        order = metrics.method_order(url)
    """

    DEFAULT_METHOD = DetectionMethod.URL_SPECIFIC

    def __init__(
        self,
        cache_path: Optional[str] = "~/.login-autofill/detection_metrics.json",
        max_attempts: int = 1000,
        min_samples: int = 1,
    ):
        self.cache_path = Path(cache_path).expanduser() if cache_path else None
        self.min_samples = min_samples
        self._stats: Dict[str, Dict[str, MethodStats]] = defaultdict(lambda: defaultdict(MethodStats))
        self._recent: Deque[DetectionAttempt] = deque(maxlen=max_attempts)
        self._dirty = False
        self._records = 0
        self._load()

    def _load(self) -> None:
        """Load cached statistics from disk."""
        if self.cache_path is None or not self.cache_path.exists():
            return

        try:
            data = json.loads(self.cache_path.read_text())
            for host, methods in data.items():
                for method, stats_dict in methods.items():
                    self._stats[host][method] = MethodStats(**stats_dict)
            logger.debug(f"Loaded detection metrics for {len(data)} hosts")
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Failed to load detection metrics: {e}")

    def _save(self) -> None:
        """Persist statistics to disk."""
        if not self._dirty or self.cache_path is None:
            return

        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            data = {
                host: {method: asdict(stats) for method, stats in methods.items()}
                for host, methods in self._stats.items()
            }
            self.cache_path.write_text(json.dumps(data, indent=2))
            self._dirty = False
            logger.debug(f"Saved detection metrics for {len(data)} hosts")
        except OSError as e:
            logger.warning(f"Failed to save detection metrics: {e}")

    def start_attempt(self, url: str, method: DetectionMethod) -> DetectionAttempt:
        """Open an attempt; close it with record_success or record_failure."""
        return DetectionAttempt(
            attempt_id=uuid.uuid4().hex[:12],
            url=url,
            host=host_of(url),
            method=method,
            started_at=datetime.now(),
        )

    def record_success(
        self,
        attempt: DetectionAttempt,
        form: "DetectedForm",
        confidence: int,
    ) -> None:
        """
        Close an attempt as successful.

        Args:
            attempt: Attempt returned by start_attempt
            form: Detected form
            confidence: Strategy confidence (0-100)
        """
        attempt.success = True
        attempt.confidence = confidence
        attempt.elements_found = form.element_count
        attempt.selector_details = {
            role.value: selector_for(handle)
            for role, handle in form.fields().items()
            if handle is not None
        }
        self._finish(attempt)

    def record_failure(self, attempt: DetectionAttempt, reason: str) -> None:
        """Close an attempt as failed."""
        attempt.success = False
        attempt.reason = reason
        self._finish(attempt)

    def _finish(self, attempt: DetectionAttempt) -> None:
        attempt.ended_at = datetime.now()
        self._recent.append(attempt)

        stats = self._stats[attempt.host][attempt.method.value]
        stats.attempts += 1
        stats.total_time_ms += attempt.duration_ms
        if attempt.success:
            stats.successes += 1
            stats.total_confidence += attempt.confidence
        self._dirty = True

        # Batch saves: save every 10 records
        self._records += 1
        if self._records % 10 == 0:
            self._save()

    def recommend(self, url: str) -> MethodRecommendation:
        """Best method for the URL's host (URL_SPECIFIC without history)."""
        host = host_of(url)
        host_stats = self._stats.get(host, {})
        total = sum(s.attempts for s in host_stats.values())
        if total < self.min_samples:
            return MethodRecommendation(
                method=self.DEFAULT_METHOD,
                confidence=50.0,
                reasoning=f"No detection history for {host}",
            )

        best_name, best_stats = max(host_stats.items(), key=lambda item: item[1].recommendation_score)
        return MethodRecommendation(
            method=DetectionMethod(best_name),
            confidence=round(best_stats.recommendation_score, 1),
            reasoning=(
                f"{best_name} succeeded {best_stats.successes}/{best_stats.attempts} times on {host} "
                f"(avg confidence {best_stats.avg_confidence:.0f})"
            ),
        )

    def method_order(self, url: str) -> List[DetectionMethod]:
        """Recommended method first, then the rest in declaration order."""
        recommended = self.recommend(url).method
        return [recommended] + [m for m in DetectionMethod if m != recommended]

    def recent_attempts(self, host: Optional[str] = None) -> List[DetectionAttempt]:
        if host is None:
            return list(self._recent)
        return [a for a in self._recent if a.host == host]

    def hosts(self) -> List[str]:
        return sorted(self._stats)

    def get_stats(self, host: str) -> Dict[str, dict]:
        """Get human-readable stats for a host."""
        return {
            method: {
                "success_rate": f"{stats.success_rate:.1%}",
                "avg_confidence": f"{stats.avg_confidence:.0f}",
                "avg_time_ms": f"{stats.avg_time_ms:.0f}",
                "attempts": stats.attempts,
            }
            for method, stats in self._stats.get(host, {}).items()
        }

    def flush(self) -> None:
        """Force save to disk."""
        self._dirty = True
        self._save()

    def clear(self, host: Optional[str] = None) -> None:
        """Clear statistics for a host or all hosts."""
        if host:
            self._stats.pop(host, None)
        else:
            self._stats.clear()
            self._recent.clear()
        self._dirty = True
        self._save()


# Global singleton instance
_metrics: Optional[DetectionMetrics] = None


def get_metrics() -> DetectionMetrics:
    """Get or create the global detection metrics store."""
    global _metrics
    if _metrics is None:
        from login_autofill.config import get_settings

        settings = get_settings().metrics
        _metrics = DetectionMetrics(
            cache_path=settings.cache_path,
            max_attempts=settings.max_attempts,
            min_samples=settings.min_samples,
        )
    return _metrics


def reset_metrics() -> None:
    """Drop the global store (next get_metrics() reloads from disk)."""
    global _metrics
    _metrics = None
