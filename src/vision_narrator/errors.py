"""
Error Taxonomy
==============

Exceptions raised at the seam between the processor and the external
description service.

Classes:
    - RateLimitedError: Endpoint refused the call (soft skip, not a failure)
    - TransientCallFailure: Network, parse or non-success payload
    - MalformedResponseError: Response did not match the endpoint contract
    - SetupError: Missing credentials or configuration (raised once at startup)

Rules:
    - Only SetupError is allowed to escape to callers
    - Per-frame errors are handled inside VisionProcessor
"""


class VisionNarratorError(Exception):
    """Base class for all service errors."""
    pass


class RateLimitedError(VisionNarratorError):
    """Raised when the description endpoint answers "too many requests"."""

    def __init__(self, retry_after_seconds: int, message: str = "") -> None:
        self.retry_after_seconds = retry_after_seconds
        self.message = message or f"Please wait {retry_after_seconds} seconds before next request"
        super().__init__(self.message)


class TransientCallFailure(VisionNarratorError):
    """Raised when a description call fails for any reason other than rate limiting."""
    pass


class MalformedResponseError(TransientCallFailure):
    """Raised when the endpoint response does not match the contract."""
    pass


class SetupError(VisionNarratorError):
    """Raised when required credentials or configuration are missing."""
    pass
