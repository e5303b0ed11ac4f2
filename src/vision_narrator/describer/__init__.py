"""
Describer Module
================

Both sides of the image-description contract.

Components:
    - DescriptionService / HttpDescriptionClient: client side
    - build_prompt: instruction construction policy
    - DescriptionGenerator / MockDescriptionGenerator: generation backends
    - GeminiDescriptionGenerator: Google Gen AI backend (production)
    - create_vision_router: FastAPI router serving POST /api/vision

Design Philosophy:
    The processor treats description as a black box with a cost and a
    rate limit. It consumes ONLY the description text.
"""

from vision_narrator.describer.client import DescriptionService, HttpDescriptionClient
from vision_narrator.describer.prompts import build_prompt
from vision_narrator.describer.generator import (
    DescriptionGenerator,
    MockDescriptionGenerator,
    QuotaExceededError,
)
from vision_narrator.describer.gemini import GeminiDescriptionGenerator
from vision_narrator.describer.endpoint import create_vision_router

__all__ = [
    "DescriptionService",
    "HttpDescriptionClient",
    "build_prompt",
    "DescriptionGenerator",
    "MockDescriptionGenerator",
    "QuotaExceededError",
    "GeminiDescriptionGenerator",
    "create_vision_router",
]
