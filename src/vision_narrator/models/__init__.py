"""
Data Models
===========

Data models for VisionNarrator.

Models:
    Wire (POST /api/vision):
        - DescriptionRequest, DescriptionResponse
        - RateLimitedResponse, ErrorResponse

    State:
        - ProcessingState, AnalysisOutcome, AdmissionMode
        - GateDecision, DescriptionState, PerformanceMetrics, SubmitResult

    Events:
        - DescriptionUpdate, ProcessingStateChange
"""

from vision_narrator.models.wire import (
    AnalyzeRequest,
    DescriptionRequest,
    DescriptionResponse,
    ErrorResponse,
    RateLimitedResponse,
)
from vision_narrator.models.state import (
    AdmissionMode,
    AnalysisOutcome,
    DescriptionState,
    GateDecision,
    PerformanceMetrics,
    ProcessingState,
    SubmitResult,
)
from vision_narrator.models.events import DescriptionUpdate, ProcessingStateChange

__all__ = [
    # Wire
    "AnalyzeRequest",
    "DescriptionRequest",
    "DescriptionResponse",
    "RateLimitedResponse",
    "ErrorResponse",
    # State
    "ProcessingState",
    "AnalysisOutcome",
    "AdmissionMode",
    "GateDecision",
    "DescriptionState",
    "PerformanceMetrics",
    "SubmitResult",
    # Events
    "DescriptionUpdate",
    "ProcessingStateChange",
]
