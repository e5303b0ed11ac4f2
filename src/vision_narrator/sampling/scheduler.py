"""
Periodic Samplers
=================

Two independent producers that drive capture cadence from outside the
processor:

    AutoSampler:    while a call is active, capture a still every auto
                    interval (default 6 s) and submit it non-forced, so the
                    processor's admission mode decides whether it is
                    processed directly or queued
    DisplaySampler: while no call is active, capture a still every display
                    interval (default 1 s) for display only

Design Rules:
    - Each sampler waits one interval before its first tick
    - A failing tick is logged and the loop continues
    - AutoSampler peeks the shared RateGate before capturing so capture
      work is skipped when the call would be denied anyway
    - stop() wakes the loop immediately and waits for it to exit
"""

import asyncio
import logging
from typing import Callable, Optional

from vision_narrator.gating.rate_gate import RateGate
from vision_narrator.processor.vision_processor import VisionProcessor
from vision_narrator.stream.capture import FrameSource
from vision_narrator.stream.frame import FramePriority, new_frame


logger = logging.getLogger(__name__)


class PeriodicSampler:
    """
    Base class for interval-driven samplers.

    Subclasses implement tick().
    """

    name = "sampler"

    def __init__(self, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.interval_seconds = interval_seconds
        self._running: bool = False
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.tick_count: int = 0
        self.error_count: int = 0

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Tick every interval until stop() is called."""
        self._running = True
        logger.info(f"{self.name} started (interval={self.interval_seconds}s)")

        while self._running:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass

            self.tick_count += 1
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.error_count += 1
                logger.error(f"{self.name} tick failed: {e}")

        self._running = False
        logger.info(f"{self.name} stopped")

    def start(self) -> None:
        """Run the sampler as a background task."""
        if self._task is not None and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name=self.name)

    async def stop(self) -> None:
        """Stop the loop and wait for the current tick to finish."""
        self._running = False
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def tick(self) -> None:
        raise NotImplementedError

    def get_metrics(self) -> dict:
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "tick_count": self.tick_count,
            "error_count": self.error_count,
        }


class AutoSampler(PeriodicSampler):
    """
    Automatic analysis while a call is active.

    Attributes:
        skipped_count: Ticks skipped because the gate was closed
        analysed_count: Stills handed to the processor
    """

    name = "auto_sampler"

    def __init__(
        self,
        source: FrameSource,
        processor: VisionProcessor,
        gate: RateGate,
        is_active: Callable[[], bool],
        on_capture: Optional[Callable[[str], None]] = None,
        interval_seconds: float = 6.0,
    ) -> None:
        super().__init__(interval_seconds)
        self._source = source
        self._processor = processor
        self._gate = gate
        self._is_active = is_active
        self._on_capture = on_capture
        self.skipped_count: int = 0
        self.analysed_count: int = 0

    async def tick(self) -> None:
        if not self._is_active():
            return

        decision = self._gate.peek()
        if not decision.granted:
            self.skipped_count += 1
            logger.info("Skipping automatic frame - too soon since last API call")
            return

        still = await asyncio.to_thread(self._source.capture)
        if still is None:
            logger.debug("No frame available from capture source")
            return

        if self._on_capture is not None:
            self._on_capture(still)

        self.analysed_count += 1
        frame = new_frame(still, priority=FramePriority.LOW, origin="auto")
        await self._processor.submit(frame)

    def get_metrics(self) -> dict:
        metrics = super().get_metrics()
        metrics.update(
            skipped_count=self.skipped_count,
            analysed_count=self.analysed_count,
        )
        return metrics


class DisplaySampler(PeriodicSampler):
    """Display-only capture while no call is active. Never calls the endpoint."""

    name = "display_sampler"

    def __init__(
        self,
        source: FrameSource,
        is_active: Callable[[], bool],
        on_capture: Callable[[str], None],
        interval_seconds: float = 1.0,
    ) -> None:
        super().__init__(interval_seconds)
        self._source = source
        self._is_active = is_active
        self._on_capture = on_capture

    async def tick(self) -> None:
        if self._is_active():
            return

        still = await asyncio.to_thread(self._source.capture)
        if still is not None:
            self._on_capture(still)
