"""
Description Endpoint
====================

Server side of the POST /api/vision contract.

The endpoint:
    - Enforces its own minimum interval, independent of any client gate
    - Validates the request (image is required)
    - Builds the instruction from user prompt and context
    - Calls the configured DescriptionGenerator
    - Maps upstream quota errors to 429 and anything else to 500

Responses:
    200: DescriptionResponse
    400: ErrorResponse (missing or undecodable image)
    429: RateLimitedResponse
    500: ErrorResponse
"""

import base64
import binascii
import logging
import math
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from vision_narrator.describer.generator import DescriptionGenerator, QuotaExceededError
from vision_narrator.describer.prompts import build_prompt
from vision_narrator.gating.rate_gate import RateGate
from vision_narrator.models.wire import (
    DescriptionRequest,
    DescriptionResponse,
    ErrorResponse,
    RateLimitedResponse,
)


logger = logging.getLogger(__name__)


def _rate_limited(retry_after: int, message: str, error: str = "Rate limited", details=None) -> JSONResponse:
    body = RateLimitedResponse(
        error=error,
        retry_after=retry_after,
        message=message,
        details=details,
    )
    return JSONResponse(body.model_dump(by_alias=True, exclude_none=True), status_code=429)


def _error(status_code: int, error: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


def create_vision_router(
    generator: DescriptionGenerator,
    gate: RateGate,
    quota_retry_after_seconds: int = 60,
) -> APIRouter:
    """
    Build the router serving POST /api/vision.

    Args:
        generator: Backend producing description text
        gate: Server-side rate gate (independent of client gates)
        quota_retry_after_seconds: Retry hint when the upstream quota is exhausted

    Returns:
        APIRouter to include in the application
    """
    router = APIRouter()

    @router.post("/api/vision")
    async def describe(payload: DescriptionRequest) -> JSONResponse:
        now = time.time()

        decision = gate.peek(now)
        if not decision.granted:
            wait_seconds = math.ceil(decision.retry_after_ms / 1000)
            return _rate_limited(
                retry_after=wait_seconds,
                message=f"Please wait {wait_seconds} seconds before next request",
            )

        if not payload.image_base64:
            return _error(400, "Image data is required")

        try:
            image_bytes = base64.b64decode(payload.image_base64, validate=True)
        except (binascii.Error, ValueError):
            return _error(400, "Image data is not valid base64")

        gate.try_acquire(now)

        prompt = build_prompt(payload.user_prompt, payload.context)

        try:
            description = await generator.generate(image_bytes, prompt)
        except QuotaExceededError as e:
            logger.warning(f"Upstream quota exceeded: {e}")
            return _rate_limited(
                retry_after=quota_retry_after_seconds,
                message=f"Model API quota exceeded. Please wait {quota_retry_after_seconds} seconds.",
                error="API quota exceeded",
                details="Consider upgrading your API plan for higher limits",
            )
        except Exception as e:
            logger.error(f"Vision API error: {e}")
            return _error(500, "Failed to process image", details=str(e))

        body = DescriptionResponse(
            description=description,
            timestamp=int(time.time() * 1000),
            success=True,
        )
        return JSONResponse(body.model_dump())

    return router
