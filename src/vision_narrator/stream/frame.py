"""
Frame Data Model
=================

Internal frame representation for the analysis pipeline.

Design Rules:
    - Frames are created at submission time and never modified
    - Does NOT decode or manipulate image data
    - Discarded after processing or eviction
"""

import itertools
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional


_sequence = itertools.count(1)


class FramePriority(str, Enum):
    """
    Queue priority of a frame.

    HIGH frames jump to the front of the queue.
    LOW frames are evicted once they go stale.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Frame submitted for description.

    Attributes:
        id: Unique identifier for this submission
        image_b64: Base64-encoded JPEG still (NOT decoded)
        timestamp: UNIX timestamp when the frame was submitted
        priority: Queue priority
        user_prompt: Optional user question about the scene
    """

    id: str
    image_b64: str
    timestamp: float
    priority: FramePriority = FramePriority.MEDIUM
    user_prompt: Optional[str] = None

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the full image."""
        return (
            f"Frame(id={self.id}, "
            f"timestamp={self.timestamp:.3f}, "
            f"priority={self.priority.value})"
        )


def new_frame(
    image_b64: str,
    priority: FramePriority = FramePriority.MEDIUM,
    user_prompt: Optional[str] = None,
    origin: str = "frame",
    timestamp: Optional[float] = None,
) -> Frame:
    """
    Create a frame with a process-unique id.

    Args:
        image_b64: Base64-encoded JPEG still
        priority: Queue priority
        user_prompt: Optional user question (empty string is treated as none)
        origin: Id prefix naming the submitter, e.g. "force" or "auto"
        timestamp: Submission time (defaults to time.time())

    Returns:
        Frame with id "<origin>_<timestamp_ms>_<seq>"
    """
    if timestamp is None:
        timestamp = time.time()
    return Frame(
        id=f"{origin}_{int(timestamp * 1000)}_{next(_sequence)}",
        image_b64=image_b64,
        timestamp=timestamp,
        priority=priority,
        user_prompt=user_prompt or None,
    )
