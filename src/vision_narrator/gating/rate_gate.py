"""
Rate Gate
=========

Shared admission control for the external description endpoint.

One RateGate instance is injected into every caller that may start a
description call (processor, samplers, manual trigger). The endpoint
runs its own, independent instance.

Design Rules:
    - Admission is recorded at grant time, not at call completion
    - Denied requests are dropped, never queued or awaited
    - Retry hints are rounded up to whole seconds
    - Not thread-safe: callers share one event loop
"""

import logging
import math
import time
from typing import Callable, Optional

from vision_narrator.models.state import GateDecision


logger = logging.getLogger(__name__)


class RateGate:
    """
    Minimum-interval gate between call starts.

    A call is admitted only if at least `min_interval_ms` elapsed since the
    previous admission. Because the admission instant is recorded before the
    caller awaits anything, two near-simultaneous callers cannot both pass.

    Attributes:
        min_interval_ms: Minimum spacing between admissions

    Example:
        gate = RateGate(min_interval_ms=4500)

        decision = gate.try_acquire()
        if not decision.granted:
            logger.info(f"Retry in {decision.retry_after_ms}ms")
    """

    def __init__(
        self,
        min_interval_ms: int = 4500,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize rate gate.

        Args:
            min_interval_ms: Minimum milliseconds between call starts
            clock: Source of the current UNIX time in seconds
        """
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must be >= 0")

        self.min_interval_ms = min_interval_ms
        self._clock = clock
        self._last_call_at: Optional[float] = None
        self._granted_count: int = 0
        self._denied_count: int = 0

    @property
    def last_call_at(self) -> Optional[float]:
        """UNIX time of the last admitted call, or None."""
        return self._last_call_at

    def peek(self, now: Optional[float] = None) -> GateDecision:
        """
        Report what try_acquire would answer, without recording anything.

        Args:
            now: Current UNIX time in seconds (defaults to the clock)
        """
        if now is None:
            now = self._clock()

        if self._last_call_at is None:
            return GateDecision(granted=True)

        elapsed_ms = (now - self._last_call_at) * 1000.0
        if elapsed_ms >= self.min_interval_ms:
            return GateDecision(granted=True)

        remaining_ms = self.min_interval_ms - elapsed_ms
        return GateDecision(
            granted=False,
            retry_after_ms=math.ceil(remaining_ms / 1000.0) * 1000,
        )

    def try_acquire(self, now: Optional[float] = None) -> GateDecision:
        """
        Attempt to admit a call.

        On grant, `now` becomes the new last-call instant.

        Args:
            now: Current UNIX time in seconds (defaults to the clock)

        Returns:
            GateDecision with the grant flag and retry hint
        """
        if now is None:
            now = self._clock()

        decision = self.peek(now)
        if decision.granted:
            self._last_call_at = now
            self._granted_count += 1
        else:
            self._denied_count += 1
            logger.debug(f"Rate gate denied admission, retry in {decision.retry_after_ms}ms")
        return decision

    def reset(self) -> None:
        """Forget the last admission."""
        self._last_call_at = None

    def get_metrics(self) -> dict:
        """Get gate metrics for observability."""
        return {
            "min_interval_ms": self.min_interval_ms,
            "last_call_at": self._last_call_at,
            "granted_count": self._granted_count,
            "denied_count": self._denied_count,
        }
