"""
Signals Module
==============

Signal processing over completed description calls.

This module provides:
    - ChangeDetector: Decides whether a description is a significant change
    - MetricsTracker: EMA-smoothed latency and success rate
"""

from vision_narrator.signals.change_detector import ChangeDetector
from vision_narrator.signals.metrics_tracker import MetricsTracker

__all__ = ["ChangeDetector", "MetricsTracker"]
