"""
Test Configuration
==================

Pytest fixtures and test doubles for VisionNarrator.
"""

import asyncio
import base64
from typing import List, Optional, Sequence, Union

import pytest

from vision_narrator.gating import RateGate
from vision_narrator.models import DescriptionRequest, DescriptionResponse
from vision_narrator.processor import VisionProcessor


class FakeClock:
    """Manually advanced clock returning UNIX seconds."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDescriptionService:
    """
    Scripted description service.

    Each call consumes the next scripted item: a string is returned as the
    description, an exception instance is raised. When the script runs out
    the last item is repeated.

    If `gate_event` is set, every call waits on it before answering.
    """

    def __init__(self, script: Sequence[Union[str, Exception]] = ("A cat on a mat",)) -> None:
        self.script: List[Union[str, Exception]] = list(script)
        self.requests: List[DescriptionRequest] = []
        self.gate_event: Optional[asyncio.Event] = None
        self._index = 0

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def describe(self, request: DescriptionRequest) -> DescriptionResponse:
        self.requests.append(request)
        if self.gate_event is not None:
            await self.gate_event.wait()

        item = self.script[min(self._index, len(self.script) - 1)]
        self._index += 1
        if isinstance(item, Exception):
            raise item
        return DescriptionResponse(description=item, timestamp=1707321234567)


@pytest.fixture
def fake_clock():
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def service():
    """Provide a scripted description service."""
    return FakeDescriptionService()


@pytest.fixture
def gate(fake_clock):
    """Provide a rate gate driven by the fake clock."""
    return RateGate(min_interval_ms=4500, clock=fake_clock)


@pytest.fixture
def processor(service, gate, fake_clock):
    """Provide a direct-mode processor wired to the fakes."""
    return VisionProcessor(service=service, gate=gate, clock=fake_clock)


@pytest.fixture
def sample_image_b64():
    """Provide a small base64 payload (JPEG magic plus filler)."""
    return base64.b64encode(b"\xff\xd8\xff\xe0fakejpegdata").decode("ascii")
