"""
Stream Module
=============

Frame representation, queueing and capture components.

This module provides the ingestion layer for VisionNarrator:
    - Frame: Immutable frame submitted for description
    - FrameQueue: Bounded priority queue (queued admission mode)
    - FrameSource: Protocol for capture surfaces, with static and camera sources

Example:
    from vision_narrator.stream import FramePriority, FrameQueue, new_frame

    queue = FrameQueue(capacity=10)
    queue.enqueue(new_frame(image_b64, priority=FramePriority.HIGH))
    frame = queue.dequeue_next()
"""

from vision_narrator.stream.frame import Frame, FramePriority, new_frame
from vision_narrator.stream.queue import FrameQueue
from vision_narrator.stream.capture import (
    CameraFrameSource,
    CaptureError,
    FrameSource,
    StaticFrameSource,
    synthetic_still,
)


__all__ = [
    "Frame",
    "FramePriority",
    "new_frame",
    "FrameQueue",
    "FrameSource",
    "StaticFrameSource",
    "CameraFrameSource",
    "CaptureError",
    "synthetic_still",
]
