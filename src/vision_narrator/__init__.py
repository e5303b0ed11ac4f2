"""
VisionNarrator
==============

Rate-limited live scene description for voice/chat sessions.

This package samples a live video feed, sends sampled stills to an external
image-description service without ever exceeding its call cadence, and
surfaces only descriptions that represent a significant scene change.

Components:
    - gating: Shared RateGate for every caller of the description service
    - stream: Frames, FrameQueue and capture sources
    - signals: ChangeDetector and MetricsTracker
    - describer: Description client, prompt policy, generators, endpoint
    - processor: VisionProcessor orchestration and observers
    - sampling: Automatic/display samplers and call lifecycle
    - session: Forwarding of descriptions into the live session

Example:
    from vision_narrator.gating import RateGate
    from vision_narrator.describer import HttpDescriptionClient
    from vision_narrator.processor import VisionProcessor

    processor = VisionProcessor(
        service=HttpDescriptionClient("http://localhost:8002/api/vision"),
        gate=RateGate(min_interval_ms=4500),
    )
    description = await processor.force_analysis(image_b64)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
