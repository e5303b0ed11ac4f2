"""
Frame Queue
===========

Priority-ordered holding area for pending analysis requests.

Used only when the processor runs in queued admission mode. All access
happens on the event loop thread, so no locking is needed.

Design Rules:
    - Fixed maximum size (drops oldest-inserted on overflow)
    - Stale low-priority frames are evicted before each insert
    - HIGH frames go to the front, everything else is FIFO
    - Exposes minimal metrics for observability
"""

import logging
import time
from typing import List, Optional, Tuple

from vision_narrator.stream.frame import Frame, FramePriority


logger = logging.getLogger(__name__)


class FrameQueue:
    """
    Bounded priority queue for frames.

    Each entry remembers its insertion sequence so overflow can drop
    the oldest insertions without disturbing the priority order.

    Attributes:
        capacity: Maximum number of frames held
        stale_after_ms: Age at which LOW frames are evicted

    Example:
        queue = FrameQueue(capacity=10, stale_after_ms=5000)
        queue.enqueue(frame)
        next_frame = queue.dequeue_next()
    """

    def __init__(self, capacity: int = 10, stale_after_ms: int = 5000) -> None:
        """
        Initialize frame queue.

        Args:
            capacity: Maximum frames to hold. Must be >= 1.
            stale_after_ms: Staleness window for LOW frames in milliseconds
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if stale_after_ms < 0:
            raise ValueError("stale_after_ms must be >= 0")

        self._capacity = capacity
        self._stale_after_ms = stale_after_ms
        self._entries: List[Tuple[int, Frame]] = []
        self._insert_seq: int = 0

        self._total_enqueued: int = 0
        self._evicted_stale: int = 0
        self._dropped_overflow: int = 0

    @property
    def capacity(self) -> int:
        """Maximum queue size."""
        return self._capacity

    @property
    def stale_after_ms(self) -> int:
        """Staleness window for LOW frames."""
        return self._stale_after_ms

    def __len__(self) -> int:
        return len(self._entries)

    def length(self) -> int:
        """Current number of queued frames."""
        return len(self._entries)

    def enqueue(self, frame: Frame, now: Optional[float] = None) -> None:
        """
        Add a frame, evicting stale and overflowing entries.

        Args:
            frame: Frame to queue
            now: Current UNIX time (defaults to time.time())
        """
        if now is None:
            now = time.time()

        self._evict_stale(now)

        self._insert_seq += 1
        self._total_enqueued += 1
        entry = (self._insert_seq, frame)

        if frame.priority == FramePriority.HIGH:
            self._entries.insert(0, entry)
        else:
            self._entries.append(entry)

        overflow = len(self._entries) - self._capacity
        if overflow > 0:
            self._drop_oldest(overflow)

    def dequeue_next(self) -> Optional[Frame]:
        """
        Remove and return the head of the queue.

        Returns:
            Next frame, or None if the queue is empty.
        """
        if not self._entries:
            return None
        _, frame = self._entries.pop(0)
        return frame

    def clear(self) -> int:
        """
        Drop all queued frames.

        Returns:
            Number of frames cleared.
        """
        cleared = len(self._entries)
        self._entries = []
        return cleared

    def _evict_stale(self, now: float) -> None:
        """Drop LOW frames older than the staleness window."""
        window = self._stale_after_ms / 1000.0
        kept = [
            (seq, frame) for seq, frame in self._entries
            if frame.priority != FramePriority.LOW or now - frame.timestamp < window
        ]
        evicted = len(self._entries) - len(kept)
        if evicted:
            self._evicted_stale += evicted
            logger.debug(f"Evicted {evicted} stale low-priority frame(s)")
        self._entries = kept

    def _drop_oldest(self, count: int) -> None:
        """Drop the `count` earliest-inserted entries, keeping order."""
        oldest = set(sorted(seq for seq, _ in self._entries)[:count])
        self._entries = [entry for entry in self._entries if entry[0] not in oldest]
        self._dropped_overflow += count
        logger.warning(
            f"Frame queue full, dropped {count} oldest frame(s). "
            f"Total dropped: {self._dropped_overflow}"
        )

    def metrics(self) -> dict:
        """
        Get queue metrics for observability.

        Returns:
            Dict with size, capacity, evicted_stale, dropped_overflow, total_enqueued
        """
        return {
            "size": len(self._entries),
            "capacity": self._capacity,
            "evicted_stale": self._evicted_stale,
            "dropped_overflow": self._dropped_overflow,
            "total_enqueued": self._total_enqueued,
        }
