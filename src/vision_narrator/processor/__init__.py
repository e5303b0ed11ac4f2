"""
Processor Module
================

Frame analysis orchestration and its notification interface.

Components:
    - VisionProcessor: Admission, description calls, change detection
    - VisionObserver / CallbackObserver: Notification interface
"""

from vision_narrator.processor.observers import (
    CallbackObserver,
    ObserverRegistry,
    VisionObserver,
)
from vision_narrator.processor.vision_processor import VisionProcessor

__all__ = [
    "VisionProcessor",
    "VisionObserver",
    "CallbackObserver",
    "ObserverRegistry",
]
