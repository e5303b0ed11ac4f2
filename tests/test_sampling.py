"""
Sampling Tests
==============

Periodic samplers and the call lifecycle controller.
"""

import asyncio

import pytest

from vision_narrator.models import AdmissionMode, AnalysisOutcome
from vision_narrator.processor import VisionProcessor
from vision_narrator.sampling import AutoSampler, DisplaySampler, PeriodicSampler, SamplingController
from vision_narrator.session import LoggingSessionTransport, SessionForwarder
from vision_narrator.stream import StaticFrameSource


class CountingSampler(PeriodicSampler):
    name = "counting_sampler"

    async def tick(self):
        if self.tick_count == 1:
            raise RuntimeError("first tick fails")


@pytest.fixture
def source():
    return StaticFrameSource(["still-a", "still-b"])


@pytest.fixture
def transport():
    return LoggingSessionTransport()


@pytest.fixture
def controller(processor, source, transport):
    return SamplingController(
        processor=processor,
        source=source,
        forwarder=SessionForwarder(transport),
    )


class TestPeriodicSampler:
    """Tests for the interval loop."""

    @pytest.mark.asyncio
    async def test_ticks_until_stopped_and_survives_errors(self):
        sampler = CountingSampler(interval_seconds=0.01)
        sampler.start()
        for _ in range(200):
            if sampler.tick_count >= 3:
                break
            await asyncio.sleep(0.01)
        await sampler.stop()

        assert sampler.tick_count >= 3
        assert sampler.error_count == 1
        assert sampler.running is False

    @pytest.mark.asyncio
    async def test_stop_right_after_start(self):
        sampler = CountingSampler(interval_seconds=10)
        sampler.start()
        await asyncio.wait_for(sampler.stop(), timeout=1)

        assert sampler.tick_count == 0

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            CountingSampler(interval_seconds=0)


class TestAutoSampler:
    """Tests for automatic analysis ticks."""

    @pytest.mark.asyncio
    async def test_inactive_does_nothing(self, source, processor, gate, service):
        sampler = AutoSampler(source, processor, gate, is_active=lambda: False)
        await sampler.tick()

        assert service.call_count == 0

    @pytest.mark.asyncio
    async def test_analyses_when_active(self, source, processor, gate, service):
        captured = []
        sampler = AutoSampler(
            source, processor, gate, is_active=lambda: True, on_capture=captured.append
        )
        await sampler.tick()

        assert captured == ["still-a"]
        assert service.call_count == 1
        assert service.requests[0].image_base64 == "still-a"
        assert service.requests[0].user_prompt is None
        assert sampler.analysed_count == 1

    @pytest.mark.asyncio
    async def test_queued_processor_receives_frame_in_queue(self, source, service, gate, fake_clock):
        processor = VisionProcessor(
            service=service,
            gate=gate,
            admission_mode=AdmissionMode.QUEUED,
            clock=fake_clock,
        )
        sampler = AutoSampler(source, processor, gate, is_active=lambda: True)

        await sampler.tick()

        assert service.call_count == 0
        assert processor.get_queue_length() == 1
        assert processor.get_metrics()["queue"]["total_enqueued"] == 1
        assert processor.get_metrics()["outcomes"] == {"QUEUED": 1}

    @pytest.mark.asyncio
    async def test_skips_capture_when_gate_closed(self, source, processor, gate, service):
        gate.try_acquire()
        captured = []
        sampler = AutoSampler(
            source, processor, gate, is_active=lambda: True, on_capture=captured.append
        )
        await sampler.tick()

        assert captured == []
        assert service.call_count == 0
        assert sampler.skipped_count == 1


class TestDisplaySampler:
    """Tests for display-only capture."""

    @pytest.mark.asyncio
    async def test_captures_only_outside_call(self, source):
        active = False
        captured = []
        sampler = DisplaySampler(source, is_active=lambda: active, on_capture=captured.append)

        await sampler.tick()
        active = True
        await sampler.tick()

        assert captured == ["still-a"]


class TestSamplingController:
    """Tests for the call lifecycle and manual analysis."""

    @pytest.mark.asyncio
    async def test_manual_analysis_requires_active_call(self, controller, service):
        result = await controller.analyze_now()

        assert result.outcome == AnalysisOutcome.SKIPPED
        assert service.call_count == 0

    @pytest.mark.asyncio
    async def test_manual_analysis_during_call(self, controller, service, transport):
        controller.start_call()

        result = await controller.analyze_now("what is on the desk?")
        await controller._forwarder.drain()

        assert result.outcome == AnalysisOutcome.SUCCEEDED
        assert result.description == "A cat on a mat"
        assert service.requests[0].user_prompt == "what is on the desk?"
        assert controller.latest_still == "still-a"
        assert transport.sent[0]["message"]["content"] == (
            'Visual context: A cat on a mat (User asked: "what is on the desk?")'
        )

    @pytest.mark.asyncio
    async def test_manual_analysis_blocked_by_shared_gate(self, controller, service, fake_clock):
        controller.start_call()
        await controller.analyze_now()
        fake_clock.advance(1)

        result = await controller.analyze_now()

        assert result.outcome == AnalysisOutcome.RATE_DENIED
        assert result.retry_after_ms == 4000
        assert service.call_count == 1

    @pytest.mark.asyncio
    async def test_manual_analysis_without_frame(self, processor, transport, service):
        controller = SamplingController(
            processor=processor,
            source=StaticFrameSource([]),
            forwarder=SessionForwarder(transport),
        )
        controller.start_call()

        result = await controller.analyze_now()

        assert result.outcome == AnalysisOutcome.SKIPPED
        assert service.call_count == 0

    @pytest.mark.asyncio
    async def test_end_call_stops_forwarding(self, controller, transport, fake_clock):
        controller.start_call()
        controller.end_call()

        assert controller.call_active is False
        assert (await controller.analyze_now()).outcome == AnalysisOutcome.SKIPPED

    @pytest.mark.asyncio
    async def test_automatic_change_reaches_session(self, controller, processor, transport):
        controller.start_call()

        await controller.auto_sampler.tick()
        await controller._forwarder.drain()

        assert processor.get_current_description() == "A cat on a mat"
        assert [m["message"]["content"] for m in transport.sent] == [
            "Visual context: A cat on a mat"
        ]

    @pytest.mark.asyncio
    async def test_start_and_stop(self, controller, processor, transport, fake_clock):
        controller.start()
        status = controller.get_status()
        await controller.stop()

        assert status["call_active"] is False
        assert controller.auto_sampler.running is False

        # the forwarder is detached on stop
        controller._forwarder.active = True
        await processor.force_analysis("img")
        await controller._forwarder.drain()
        assert transport.sent == []
