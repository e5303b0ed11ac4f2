"""
Vision Processor
================

Orchestrates rate-gated description calls and scene change detection.

This processor:
    - Accepts frame submissions (automatic or forced/manual)
    - Admits calls through the shared RateGate
    - Calls the description service with the current description as context
    - Updates performance metrics after every completed call
    - Runs change detection and publishes significant changes
    - Publishes busy/idle transitions

Admission Modes:
    DIRECT: every submission is processed immediately (default)
    QUEUED: non-forced submissions go through the FrameQueue and are
            drained by a background loop started with start()
    Forced submissions always bypass the queue.

Error Policy:
    RateLimitedError      -> soft skip, no metric record
    any other failure     -> recorded as failed call, logged, swallowed
    Nothing a single frame does is ever raised to the submitter.

Concurrency:
    All state lives on one event loop. The only suspension point is the
    awaited description call. At most one call is in flight; a submission
    arriving meanwhile is refused as BUSY without touching the gate.
"""

import asyncio
import logging
import time
from collections import Counter
from typing import Callable, Optional

from vision_narrator.describer.client import DescriptionService
from vision_narrator.errors import MalformedResponseError, RateLimitedError
from vision_narrator.gating.rate_gate import RateGate
from vision_narrator.models.events import DescriptionUpdate, ProcessingStateChange
from vision_narrator.models.state import (
    AdmissionMode,
    AnalysisOutcome,
    DescriptionState,
    PerformanceMetrics,
    ProcessingState,
    SubmitResult,
)
from vision_narrator.models.wire import DescriptionRequest
from vision_narrator.processor.observers import ObserverRegistry, VisionObserver
from vision_narrator.signals.change_detector import ChangeDetector
from vision_narrator.signals.metrics_tracker import MetricsTracker
from vision_narrator.stream.frame import Frame, FramePriority, new_frame
from vision_narrator.stream.queue import FrameQueue


logger = logging.getLogger(__name__)


class VisionProcessor:
    """
    Frame analysis orchestrator.

    Attributes:
        admission_mode: DIRECT or QUEUED
        gate: Shared rate gate (injected, never owned)

    Example:
        gate = RateGate(min_interval_ms=4500)
        processor = VisionProcessor(service=client, gate=gate)
        processor.subscribe(CallbackObserver(on_description=print))

        description = await processor.force_analysis(image_b64, "what is this?")
    """

    def __init__(
        self,
        service: DescriptionService,
        gate: RateGate,
        change_detector: Optional[ChangeDetector] = None,
        metrics: Optional[MetricsTracker] = None,
        queue: Optional[FrameQueue] = None,
        admission_mode: AdmissionMode = AdmissionMode.DIRECT,
        clock: Callable[[], float] = time.time,
        idle_poll_seconds: float = 1.0,
        busy_poll_seconds: float = 0.5,
        post_call_delay_seconds: float = 2.0,
    ) -> None:
        """
        Initialize vision processor.

        Args:
            service: Description service (HTTP client in production)
            gate: Rate gate shared with every other caller of the service
            change_detector: Significance test (default threshold 0.7)
            metrics: Performance tracker (default seeds 2000 ms / 1.0)
            queue: Frame queue used in QUEUED mode
            admission_mode: Admission policy for non-forced submissions
            clock: Source of the current UNIX time in seconds
            idle_poll_seconds: Queue loop wait when the queue is empty
            busy_poll_seconds: Queue loop wait while a call is in flight
            post_call_delay_seconds: Queue loop pause after each frame
        """
        self.admission_mode = AdmissionMode(admission_mode)
        self.gate = gate
        self._service = service
        self._detector = change_detector or ChangeDetector()
        self._metrics = metrics or MetricsTracker()
        self._queue = queue or FrameQueue()
        self._clock = clock

        self.idle_poll_seconds = idle_poll_seconds
        self.busy_poll_seconds = busy_poll_seconds
        self.post_call_delay_seconds = post_call_delay_seconds

        self._observers = ObserverRegistry()
        self._state = ProcessingState.IDLE
        self._description = DescriptionState()
        self._frame_counter: int = 0
        self._outcomes: Counter = Counter()

        self._stop_event = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None

        logger.info(
            f"VisionProcessor initialized: mode={self.admission_mode.value}, "
            f"min_interval={gate.min_interval_ms}ms, "
            f"threshold={self._detector.threshold}"
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, observer: VisionObserver) -> Callable[[], None]:
        """Register an observer; returns its unsubscribe function."""
        return self._observers.subscribe(observer)

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit(self, frame: Frame, forced: bool = False) -> SubmitResult:
        """
        Submit a frame for analysis.

        Args:
            frame: Frame to analyse
            forced: Bypass the queue and process immediately

        Returns:
            SubmitResult carrying the outcome and the current description
        """
        if not forced and self.admission_mode == AdmissionMode.QUEUED:
            self._queue.enqueue(frame, now=self._clock())
            return self._result(AnalysisOutcome.QUEUED)

        return await self._process(frame)

    async def force_analysis(self, image_b64: str, user_prompt: str = "") -> str:
        """
        Analyse a still immediately, bypassing the queue.

        Returns:
            The current description after this attempt
        """
        frame = new_frame(
            image_b64,
            priority=FramePriority.HIGH,
            user_prompt=user_prompt,
            origin="force",
            timestamp=self._clock(),
        )
        result = await self.submit(frame, forced=True)
        return result.description

    async def add_frame(self, image_b64: str, user_prompt: Optional[str] = None) -> str:
        """
        Offer a still from a continuous feed.

        Only every Nth still is sampled: N=2 while the scene changed in the
        last 5 seconds, N=4 within 15 seconds, N=8 otherwise. Sampled stills
        are queued in QUEUED mode and processed directly in DIRECT mode.

        Returns:
            The current description
        """
        self._frame_counter += 1
        if not self._should_sample():
            self._outcomes[AnalysisOutcome.SKIPPED] += 1
            return self._description.current_description

        frame = new_frame(
            image_b64,
            priority=FramePriority.HIGH if user_prompt else FramePriority.LOW,
            user_prompt=user_prompt,
            origin="auto",
            timestamp=self._clock(),
        )
        await self.submit(frame)
        return self._description.current_description

    def _should_sample(self) -> bool:
        since_change = self._clock() - self._description.last_significant_change_at
        if since_change < 5.0:
            return self._frame_counter % 2 == 0
        if since_change < 15.0:
            return self._frame_counter % 4 == 0
        return self._frame_counter % 8 == 0

    # =========================================================================
    # Processing
    # =========================================================================

    async def _process(self, frame: Frame) -> SubmitResult:
        """Run one frame through admission, call and change detection."""
        if self._state != ProcessingState.IDLE:
            logger.info(f"Frame {frame.id} refused: a description call is already in flight")
            return self._result(AnalysisOutcome.BUSY)

        self._state = ProcessingState.ADMITTING
        decision = self.gate.try_acquire(self._clock())
        if not decision.granted:
            self._state = ProcessingState.IDLE
            logger.info(
                f"Frame {frame.id} skipped: too soon since last call, "
                f"retry in {decision.retry_after_ms // 1000}s"
            )
            return self._result(AnalysisOutcome.RATE_DENIED, decision.retry_after_ms)

        self._state = ProcessingState.CALLING
        self._notify_processing(True, frame)
        start_time = self._clock()

        try:
            response = await self._service.describe(
                DescriptionRequest(
                    image_base64=frame.image_b64,
                    user_prompt=frame.user_prompt,
                    context=self._description.current_description or None,
                )
            )
            if not response.description.strip():
                raise MalformedResponseError("Empty description")

            self._metrics.record(self._elapsed_ms(start_time), True)
            outcome = self._apply_description(response.description, frame)

        except RateLimitedError as e:
            # Endpoint-side limit: not a failure, just drop this frame
            logger.warning(f"Rate limited: {e.message}")
            outcome = AnalysisOutcome.RATE_LIMITED

        except Exception as e:
            logger.error(f"Vision processing error (frame={frame.id}): {e}")
            self._metrics.record(self._elapsed_ms(start_time), False)
            outcome = AnalysisOutcome.FAILED

        finally:
            self._state = ProcessingState.IDLE
            self._notify_processing(False, frame)

        return self._result(outcome)

    def _apply_description(self, description: str, frame: Frame) -> AnalysisOutcome:
        """Update DescriptionState if the change is significant."""
        current = self._description.current_description
        if not self._detector.is_significant(current, description):
            logger.debug(f"Frame {frame.id}: description unchanged")
            return AnalysisOutcome.UNCHANGED

        now = self._clock()
        self._description = DescriptionState(
            current_description=description,
            last_significant_change_at=now,
        )
        logger.info(f"Scene changed (frame={frame.id}): {description[:80]}")
        self._observers.publish_description(
            DescriptionUpdate(
                description=description,
                timestamp=now,
                frame_id=frame.id,
                user_prompt=frame.user_prompt,
            )
        )
        return AnalysisOutcome.SUCCEEDED

    def _notify_processing(self, is_processing: bool, frame: Frame) -> None:
        self._observers.publish_processing(
            ProcessingStateChange(
                is_processing=is_processing,
                timestamp=self._clock(),
                frame_id=frame.id,
            )
        )

    def _elapsed_ms(self, start_time: float) -> float:
        return (self._clock() - start_time) * 1000.0

    def _result(self, outcome: AnalysisOutcome, retry_after_ms: int = 0) -> SubmitResult:
        self._outcomes[outcome] += 1
        return SubmitResult(
            outcome=outcome,
            description=self._description.current_description,
            retry_after_ms=retry_after_ms,
        )

    # =========================================================================
    # Queued Mode
    # =========================================================================

    def start(self) -> None:
        """Start the background queue loop (QUEUED mode only)."""
        if self.admission_mode != AdmissionMode.QUEUED:
            logger.info("Direct admission mode, background queue loop not started")
            return
        if self._loop_task is not None and not self._loop_task.done():
            return

        self._stop_event.clear()
        self._loop_task = asyncio.create_task(self._run_queue(), name="vision_queue")
        logger.info("Background queue loop started")

    async def _run_queue(self) -> None:
        while not self._stop_event.is_set():
            try:
                if len(self._queue) == 0:
                    await self._wait(self.idle_poll_seconds)
                    continue

                if self.is_processing():
                    await self._wait(self.busy_poll_seconds)
                    continue

                frame = self._queue.dequeue_next()
                if frame is not None:
                    await self._process(frame)

                await self._wait(self.post_call_delay_seconds)

            except asyncio.CancelledError:
                logger.info("Background queue loop cancelled")
                raise
            except Exception as e:
                logger.error(f"Background queue loop error: {e}")
                await self._wait(self.busy_poll_seconds)

        logger.info("Background queue loop stopped")

    async def _wait(self, seconds: float) -> None:
        """Sleep for `seconds`, waking early when stopped."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def destroy(self) -> None:
        """
        Clear queued frames and stop the background loop.

        An in-flight call is NOT cancelled; its result is still applied.
        """
        cleared = self._queue.clear()
        self._stop_event.set()
        logger.info(f"VisionProcessor destroyed, {cleared} queued frame(s) cleared")

    async def shutdown(self) -> None:
        """destroy() and wait for the background loop to finish."""
        self.destroy()
        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_current_description(self) -> str:
        return self._description.current_description

    def get_description_state(self) -> DescriptionState:
        return self._description

    def is_processing(self) -> bool:
        return self._state == ProcessingState.CALLING

    @property
    def state(self) -> ProcessingState:
        return self._state

    def get_queue_length(self) -> int:
        return len(self._queue)

    def get_performance_metrics(self) -> PerformanceMetrics:
        return self._metrics.snapshot()

    def get_metrics(self) -> dict:
        """Get processor metrics for observability."""
        return {
            "state": self._state.value,
            "admission_mode": self.admission_mode.value,
            "performance": self._metrics.snapshot().to_dict(
                queue_length=len(self._queue),
                last_update=self._description.last_significant_change_at or None,
            ),
            "tracker": self._metrics.get_metrics(),
            "gate": self.gate.get_metrics(),
            "queue": self._queue.metrics(),
            "outcomes": {outcome.value: count for outcome, count in self._outcomes.items()},
            "observers": len(self._observers),
        }
