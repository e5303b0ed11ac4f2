"""
Notification Payloads
=====================

Typed payloads delivered to processor observers.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class DescriptionUpdate:
    """A description that was judged a significant change."""

    description: str
    timestamp: float
    frame_id: str
    user_prompt: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ProcessingStateChange:
    """Processor started or stopped a description call."""

    is_processing: bool
    timestamp: float
    frame_id: str
