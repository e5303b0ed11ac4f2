"""
Processor State Models
======================

Internal state representation for the vision processor.

Core Concepts:
    - ProcessingState: Per-request lifecycle (IDLE, ADMITTING, CALLING)
    - AnalysisOutcome: How a single submission ended
    - AdmissionMode: Direct processing vs queued background processing
    - DescriptionState: The current scene description (owned by the processor)
    - PerformanceMetrics: EMA-smoothed latency and success rate
    - GateDecision: Answer of the rate gate to one admission attempt
    - SubmitResult: What a caller of submit() receives

Lifecycle:
    IDLE -> ADMITTING -> RATE_DENIED -> IDLE
    IDLE -> ADMITTING -> CALLING -> SUCCEEDED | FAILED -> IDLE
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ProcessingState(str, Enum):
    """Lifecycle state of the processor."""

    IDLE = "IDLE"
    ADMITTING = "ADMITTING"
    CALLING = "CALLING"


class AnalysisOutcome(str, Enum):
    """
    Terminal outcome of one submission.

    Attributes:
        SUCCEEDED: Call completed and the description changed significantly
        UNCHANGED: Call completed but the change was not significant
        RATE_DENIED: Client-side rate gate refused admission
        RATE_LIMITED: Endpoint answered 429 (soft skip)
        FAILED: Network, parse or non-success payload
        BUSY: Another call was already in flight
        QUEUED: Frame was placed in the queue for background processing
        SKIPPED: Frame was not sampled by the adaptive sampler
    """

    SUCCEEDED = "SUCCEEDED"
    UNCHANGED = "UNCHANGED"
    RATE_DENIED = "RATE_DENIED"
    RATE_LIMITED = "RATE_LIMITED"
    FAILED = "FAILED"
    BUSY = "BUSY"
    QUEUED = "QUEUED"
    SKIPPED = "SKIPPED"


class AdmissionMode(str, Enum):
    """How non-forced submissions are admitted."""

    DIRECT = "direct"
    QUEUED = "queued"


@dataclass(frozen=True, slots=True)
class GateDecision:
    """
    Answer of the rate gate.

    Attributes:
        granted: Whether the call may start now
        retry_after_ms: Remaining wait rounded up to whole seconds (0 if granted)
    """

    granted: bool
    retry_after_ms: int = 0


@dataclass(frozen=True, slots=True)
class DescriptionState:
    """Current scene description and when it last changed significantly."""

    current_description: str = ""
    last_significant_change_at: float = 0.0


@dataclass(frozen=True, slots=True)
class PerformanceMetrics:
    """
    Smoothed performance estimates.

    Attributes:
        avg_processing_time_ms: EMA of call latency in milliseconds
        success_rate: EMA of call success in [0, 1]
    """

    avg_processing_time_ms: float
    success_rate: float

    def to_dict(
        self,
        queue_length: int = 0,
        last_update: Optional[float] = None,
    ) -> dict:
        """Export the rounded display form."""
        return {
            "avg_processing_time_ms": int(round(self.avg_processing_time_ms)),
            "success_rate": int(round(self.success_rate * 100)),
            "queue_length": queue_length,
            "last_update": last_update,
        }


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """
    Result of a single submission.

    The description is always the best-known current description,
    regardless of how this particular submission ended.
    """

    outcome: AnalysisOutcome
    description: str
    retry_after_ms: int = 0

    @property
    def changed(self) -> bool:
        """Whether this submission updated the current description."""
        return self.outcome == AnalysisOutcome.SUCCEEDED
