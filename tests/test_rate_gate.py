"""
Rate Gate Tests
===============

Admission spacing, retry hints and bookkeeping of the RateGate.
"""

import pytest

from vision_narrator.gating import RateGate


class TestRateGate:
    """Tests for minimum-interval admission."""

    def test_first_call_is_granted(self, gate):
        decision = gate.try_acquire()
        assert decision.granted is True
        assert decision.retry_after_ms == 0

    def test_second_call_inside_interval_is_denied(self, gate, fake_clock):
        gate.try_acquire()
        fake_clock.advance(0.8)

        decision = gate.try_acquire()
        assert decision.granted is False
        assert decision.retry_after_ms == 4000

    def test_endpoint_interval_retry_hint(self, fake_clock):
        gate = RateGate(min_interval_ms=5000, clock=fake_clock)
        gate.try_acquire()
        fake_clock.advance(1.0)

        assert gate.try_acquire().retry_after_ms == 4000

    def test_retry_hint_rounds_up_to_whole_seconds(self, gate, fake_clock):
        gate.try_acquire()
        fake_clock.advance(0.1)

        assert gate.peek().retry_after_ms == 5000

    def test_granted_exactly_at_interval(self, gate, fake_clock):
        gate.try_acquire()
        fake_clock.advance(4.5)

        assert gate.try_acquire().granted is True

    def test_denial_does_not_move_last_call(self, gate, fake_clock):
        gate.try_acquire()
        first_call_at = gate.last_call_at
        fake_clock.advance(2.0)
        gate.try_acquire()

        assert gate.last_call_at == first_call_at
        fake_clock.advance(2.5)
        assert gate.try_acquire().granted is True

    def test_peek_does_not_record(self, gate):
        assert gate.peek().granted is True
        assert gate.last_call_at is None
        assert gate.peek().granted is True

    def test_explicit_now_overrides_clock(self):
        gate = RateGate(min_interval_ms=1000)
        assert gate.try_acquire(now=100.0).granted is True
        assert gate.try_acquire(now=100.5).granted is False
        assert gate.try_acquire(now=101.0).granted is True

    def test_reset_reopens_gate(self, gate):
        gate.try_acquire()
        gate.reset()
        assert gate.try_acquire().granted is True

    def test_metrics_count_grants_and_denials(self, gate):
        gate.try_acquire()
        gate.try_acquire()
        gate.try_acquire()

        metrics = gate.get_metrics()
        assert metrics["granted_count"] == 1
        assert metrics["denied_count"] == 2
        assert metrics["min_interval_ms"] == 4500

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            RateGate(min_interval_ms=-1)
