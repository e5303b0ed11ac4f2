"""
Sampling Controller
===================

Owns the session call lifecycle and both samplers, subscribes the session
forwarder to the processor, and serves manual analysis requests.

Call lifecycle:
    start_call() -> AutoSampler analyses, forwarder sends to the session
    end_call()   -> DisplaySampler refreshes the still for display only

Manual analysis is allowed only during a call and only while the
processor is idle; the shared RateGate is consulted before capturing.
"""

import asyncio
import logging
import time
from typing import Optional

from vision_narrator.models.state import AnalysisOutcome, SubmitResult
from vision_narrator.processor.vision_processor import VisionProcessor
from vision_narrator.sampling.scheduler import AutoSampler, DisplaySampler
from vision_narrator.session.forwarder import SessionForwarder
from vision_narrator.stream.capture import FrameSource
from vision_narrator.stream.frame import FramePriority, new_frame


logger = logging.getLogger(__name__)


DEFAULT_MANUAL_PROMPT = "What do you see?"


class SamplingController:
    """
    Call lifecycle and sampler coordination.

    Attributes:
        call_active: Whether a session call is in progress
        latest_still: Most recently captured still (base64 JPEG)
        latest_still_at: UNIX time of that capture
    """

    def __init__(
        self,
        processor: VisionProcessor,
        source: FrameSource,
        forwarder: SessionForwarder,
        auto_interval_seconds: float = 6.0,
        display_interval_seconds: float = 1.0,
    ) -> None:
        self._processor = processor
        self._source = source
        self._forwarder = forwarder
        self._unsubscribe_forwarder = processor.subscribe(forwarder)

        self.call_active: bool = False
        self.latest_still: Optional[str] = None
        self.latest_still_at: Optional[float] = None

        self.auto_sampler = AutoSampler(
            source=source,
            processor=processor,
            gate=processor.gate,
            is_active=lambda: self.call_active,
            on_capture=self._store_still,
            interval_seconds=auto_interval_seconds,
        )
        self.display_sampler = DisplaySampler(
            source=source,
            is_active=lambda: self.call_active,
            on_capture=self._store_still,
            interval_seconds=display_interval_seconds,
        )

    def _store_still(self, still: str) -> None:
        self.latest_still = still
        self.latest_still_at = time.time()

    def start(self) -> None:
        """Start both samplers."""
        self.auto_sampler.start()
        self.display_sampler.start()

    async def stop(self) -> None:
        """Stop both samplers, detach the forwarder and release the capture source."""
        await self.auto_sampler.stop()
        await self.display_sampler.stop()
        self._unsubscribe_forwarder()
        self._source.close()

    def start_call(self) -> None:
        if self.call_active:
            return
        self.call_active = True
        self._forwarder.active = True
        logger.info("Session call started")

    def end_call(self) -> None:
        if not self.call_active:
            return
        self.call_active = False
        self._forwarder.active = False
        logger.info("Session call ended")

    async def analyze_now(self, user_prompt: str = DEFAULT_MANUAL_PROMPT) -> SubmitResult:
        """
        Manually analyse the current frame.

        Returns:
            SubmitResult; SKIPPED when no call is active or no frame is
            available, BUSY while a call is in flight, RATE_DENIED when
            the shared gate is closed.
        """
        current = self._processor.get_current_description()

        if not self.call_active:
            logger.info("Manual analysis ignored - no active call")
            return SubmitResult(outcome=AnalysisOutcome.SKIPPED, description=current)

        if self._processor.is_processing():
            return SubmitResult(outcome=AnalysisOutcome.BUSY, description=current)

        decision = self._processor.gate.peek()
        if not decision.granted:
            logger.info(
                f"Manual analysis blocked - please wait "
                f"{decision.retry_after_ms // 1000} more seconds"
            )
            return SubmitResult(
                outcome=AnalysisOutcome.RATE_DENIED,
                description=current,
                retry_after_ms=decision.retry_after_ms,
            )

        still = await asyncio.to_thread(self._source.capture)
        if still is None:
            logger.warning("Manual analysis failed - no frame available")
            return SubmitResult(outcome=AnalysisOutcome.SKIPPED, description=current)

        self._store_still(still)
        frame = new_frame(
            still,
            priority=FramePriority.HIGH,
            user_prompt=user_prompt,
            origin="manual",
        )
        return await self._processor.submit(frame, forced=True)

    def get_status(self) -> dict:
        return {
            "call_active": self.call_active,
            "latest_still_at": self.latest_still_at,
            "auto_sampler": self.auto_sampler.get_metrics(),
            "display_sampler": self.display_sampler.get_metrics(),
        }
