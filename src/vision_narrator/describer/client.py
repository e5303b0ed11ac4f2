"""
Description Client
==================

Client side of the POST /api/vision contract.

This client:
    - Posts a DescriptionRequest as camelCase JSON
    - Maps HTTP 429 to RateLimitedError (soft skip for the caller)
    - Maps every other failure to TransientCallFailure
    - Runs the blocking HTTP call in a worker thread

Design Rules:
    - Never retries; retry policy belongs to the caller
    - Never logs image data
"""

import asyncio
import logging
from typing import Optional, Protocol

import requests
from pydantic import ValidationError

from vision_narrator.errors import (
    MalformedResponseError,
    RateLimitedError,
    TransientCallFailure,
)
from vision_narrator.models.wire import (
    DescriptionRequest,
    DescriptionResponse,
    RateLimitedResponse,
)


logger = logging.getLogger(__name__)


class DescriptionService(Protocol):
    """
    Protocol for anything that turns a still into a description.

    Implementations raise RateLimitedError, TransientCallFailure or
    MalformedResponseError; they never return a non-success payload.
    """

    async def describe(self, request: DescriptionRequest) -> DescriptionResponse:
        ...


class HttpDescriptionClient:
    """
    HTTP client for the description endpoint.

    Attributes:
        url: Full URL of the endpoint (e.g. http://localhost:8002/api/vision)
        timeout_seconds: Per-request timeout

    Example:
        client = HttpDescriptionClient("http://localhost:8002/api/vision")
        response = await client.describe(DescriptionRequest(image_base64=b64))
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._call_count: int = 0

        logger.info(f"HttpDescriptionClient initialized: url={url}, timeout={timeout_seconds}s")

    async def describe(self, request: DescriptionRequest) -> DescriptionResponse:
        """
        Request a description of one still.

        Raises:
            RateLimitedError: Endpoint answered 429
            MalformedResponseError: Response body did not match the contract
            TransientCallFailure: Network error or non-success answer
        """
        self._call_count += 1
        payload = request.model_dump(by_alias=True, exclude_none=True)

        try:
            response = await asyncio.to_thread(
                self._session.post,
                self.url,
                json=payload,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise TransientCallFailure(f"Description request failed: {e}") from e

        if response.status_code == 429:
            raise self._rate_limited(response)

        if not response.ok:
            raise TransientCallFailure(f"API call failed: {response.status_code}")

        try:
            result = DescriptionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise MalformedResponseError(f"Invalid description response: {e}") from e

        if not result.success:
            raise TransientCallFailure("Vision processing failed")

        return result

    def _rate_limited(self, response: requests.Response) -> RateLimitedError:
        """Build a RateLimitedError from a 429 response."""
        try:
            body = RateLimitedResponse.model_validate(response.json())
            return RateLimitedError(body.retry_after, body.message)
        except (ValueError, ValidationError):
            retry_after = response.headers.get("Retry-After", "0")
            return RateLimitedError(int(retry_after) if retry_after.isdigit() else 0)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def get_metrics(self) -> dict:
        return {"url": self.url, "call_count": self._call_count}
