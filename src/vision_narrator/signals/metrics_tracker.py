"""
Metrics Tracker
===============

Exponentially-smoothed performance estimates of description calls.

    avg_processing_time_ms = (1 - α_t) * avg + α_t * sample     (α_t = 0.2)
    success_rate           = (1 - α_s) * rate + α_s * success   (α_s = 0.1)

Seeds are 2000 ms and 1.0. Estimates run for the process lifetime;
there is no windowing and no reset.
"""

import logging

from vision_narrator.models.state import PerformanceMetrics


logger = logging.getLogger(__name__)


class MetricsTracker:
    """
    EMA tracker for call latency and success rate.

    Example:
        tracker = MetricsTracker()
        tracker.record(1000.0, success=True)
        tracker.snapshot().avg_processing_time_ms  # 1800.0
    """

    def __init__(
        self,
        initial_processing_time_ms: float = 2000.0,
        initial_success_rate: float = 1.0,
        processing_time_alpha: float = 0.2,
        success_rate_alpha: float = 0.1,
    ) -> None:
        if not 0 < processing_time_alpha <= 1:
            raise ValueError("processing_time_alpha must be in (0, 1]")
        if not 0 < success_rate_alpha <= 1:
            raise ValueError("success_rate_alpha must be in (0, 1]")
        if not 0 <= initial_success_rate <= 1:
            raise ValueError("initial_success_rate must be in [0, 1]")

        self.processing_time_alpha = processing_time_alpha
        self.success_rate_alpha = success_rate_alpha

        self._avg_processing_time_ms = float(initial_processing_time_ms)
        self._success_rate = float(initial_success_rate)
        self._sample_count: int = 0
        self._failure_count: int = 0

    def record(self, processing_time_ms: float, success: bool) -> None:
        """
        Fold one completed call into the estimates.

        Args:
            processing_time_ms: Wall-clock duration of the call
            success: Whether the call produced a description
        """
        self._sample_count += 1
        if not success:
            self._failure_count += 1

        self._avg_processing_time_ms = (
            self._avg_processing_time_ms * (1 - self.processing_time_alpha)
            + processing_time_ms * self.processing_time_alpha
        )
        self._success_rate = (
            self._success_rate * (1 - self.success_rate_alpha)
            + (1.0 if success else 0.0) * self.success_rate_alpha
        )

    @property
    def avg_processing_time_ms(self) -> float:
        return self._avg_processing_time_ms

    @property
    def success_rate(self) -> float:
        return self._success_rate

    @property
    def sample_count(self) -> int:
        """Number of recorded calls."""
        return self._sample_count

    def snapshot(self) -> PerformanceMetrics:
        """Current estimates as an immutable value."""
        return PerformanceMetrics(
            avg_processing_time_ms=self._avg_processing_time_ms,
            success_rate=self._success_rate,
        )

    def get_metrics(self) -> dict:
        """Get tracker metrics for observability."""
        return {
            "avg_processing_time_ms": round(self._avg_processing_time_ms, 1),
            "success_rate": round(self._success_rate, 4),
            "sample_count": self._sample_count,
            "failure_count": self._failure_count,
        }
