"""
Signal Tests
============

Change detection and EMA performance metrics.
"""

import pytest

from vision_narrator.models import PerformanceMetrics
from vision_narrator.signals import ChangeDetector, MetricsTracker


class TestChangeDetector:
    """Tests for word-overlap change detection."""

    def test_first_description_is_significant(self):
        assert ChangeDetector().is_significant("", "A cat on a mat") is True

    def test_identical_ignoring_case_is_not_significant(self):
        detector = ChangeDetector()
        assert detector.is_significant("A cat on a mat", "a CAT on a mat") is False

    def test_different_scene_is_significant(self):
        detector = ChangeDetector()
        assert detector.similarity("a cat on a mat", "a dog in the yard") == pytest.approx(0.2)
        assert detector.is_significant("a cat on a mat", "a dog in the yard") is True

    def test_similarity_uses_larger_word_set(self):
        detector = ChangeDetector()
        # 3 shared words out of 6 in the longer description
        assert detector.similarity("red car parked", "red car parked near the house") == 0.5

    def test_similarity_at_threshold_is_not_significant(self):
        detector = ChangeDetector(threshold=0.5)
        assert detector.is_significant("red car parked", "red car parked near the house") is False

    def test_empty_both_sides(self):
        assert ChangeDetector().similarity("", "") == 1.0

    @pytest.mark.parametrize("threshold", [0, -0.1, 1.5])
    def test_invalid_threshold_rejected(self, threshold):
        with pytest.raises(ValueError):
            ChangeDetector(threshold=threshold)


class TestMetricsTracker:
    """Tests for EMA smoothing."""

    def test_seeds(self):
        snapshot = MetricsTracker().snapshot()
        assert snapshot.avg_processing_time_ms == 2000.0
        assert snapshot.success_rate == 1.0

    def test_latency_ema(self):
        tracker = MetricsTracker()
        tracker.record(1000.0, success=True)
        assert tracker.avg_processing_time_ms == pytest.approx(1800.0)

    def test_failure_lowers_success_rate(self):
        tracker = MetricsTracker()
        tracker.record(2000.0, success=False)
        assert tracker.success_rate == pytest.approx(0.9)
        tracker.record(2000.0, success=True)
        assert tracker.success_rate == pytest.approx(0.91)

    def test_metrics_counts(self):
        tracker = MetricsTracker()
        tracker.record(100.0, success=True)
        tracker.record(100.0, success=False)

        metrics = tracker.get_metrics()
        assert metrics["sample_count"] == 2
        assert metrics["failure_count"] == 1

    def test_invalid_alpha_rejected(self):
        with pytest.raises(ValueError):
            MetricsTracker(processing_time_alpha=0)


class TestPerformanceMetrics:
    """Tests for the exported display form."""

    def test_to_dict_rounds(self):
        metrics = PerformanceMetrics(avg_processing_time_ms=1799.6, success_rate=0.876)
        exported = metrics.to_dict(queue_length=3, last_update=12.5)

        assert exported == {
            "avg_processing_time_ms": 1800,
            "success_rate": 88,
            "queue_length": 3,
            "last_update": 12.5,
        }
