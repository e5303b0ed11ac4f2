"""
Description Generators
======================

Model backends behind the description endpoint.

This module provides a black-box abstraction for description generation.
The endpoint consumes ONLY the returned text, never model internals.

Components:
    - DescriptionGenerator: Protocol for generation backends
    - MockDescriptionGenerator: Deterministic mock for testing
    - QuotaExceededError: Upstream model quota exhausted
"""

import hashlib
import logging
from typing import Protocol, Sequence


logger = logging.getLogger(__name__)


class QuotaExceededError(Exception):
    """Raised when the upstream model rejects a call for quota reasons."""
    pass


class DescriptionGenerator(Protocol):
    """
    Protocol for generation backends.

    All implementations must provide an async `generate` method that takes
    raw JPEG bytes and an instruction and returns description text.
    """

    async def generate(self, image_bytes: bytes, prompt: str) -> str:
        ...


DEFAULT_SCENES = (
    "A person sitting at a desk looking at a laptop screen.",
    "An empty room with a chair and a window in the background.",
    "A person holding a coffee mug and smiling at the camera.",
    "A printed document with several paragraphs of text on a table.",
    "A cat walking across a wooden floor near a sofa.",
)


class MockDescriptionGenerator:
    """
    Deterministic mock generation backend.

    The same image always yields the same description, so a static
    capture source produces a stable scene and changing stills produce
    scene changes.

    Attributes:
        scenes: Candidate descriptions, selected by image digest
    """

    def __init__(self, scenes: Sequence[str] = DEFAULT_SCENES) -> None:
        if not scenes:
            raise ValueError("scenes must not be empty")
        self.scenes = tuple(scenes)
        self._call_count: int = 0

        logger.info(f"MockDescriptionGenerator initialized: {len(self.scenes)} scenes")

    async def generate(self, image_bytes: bytes, prompt: str) -> str:
        self._call_count += 1
        digest = hashlib.sha1(image_bytes).digest()
        scene = self.scenes[digest[0] % len(self.scenes)]
        if prompt.startswith("User asks:"):
            return f"Answering your question: {scene}"
        return scene

    @property
    def call_count(self) -> int:
        return self._call_count
