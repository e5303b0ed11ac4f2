"""
Description Endpoint Wire Schema
================================

Pydantic models for the JSON contract of POST /api/vision.

Request Contract:
    {
        "imageBase64": "<base64 JPEG>",
        "userPrompt": "what am I holding?",   # optional
        "context": "a person at a desk"       # optional
    }

Responses:
    200: {"description": "...", "timestamp": 1707321234567, "success": true}
    429: {"error": "Rate limited", "retryAfter": 4, "message": "..."}
    4xx/5xx: {"error": "...", "details": "..."}

Field names are camelCase on the wire and snake_case in Python.
Both spellings are accepted when parsing.
"""

from typing import Optional

from pydantic import BaseModel, Field


class DescriptionRequest(BaseModel):
    """
    Body of a description call.

    Attributes:
        image_base64: Base64-encoded JPEG still (no data-URL prefix)
        user_prompt: Optional free-text question from the user
        context: Current description, used to specialise the prompt
    """

    image_base64: str = Field(
        default="",
        alias="imageBase64",
        description="Base64-encoded JPEG still",
    )

    user_prompt: Optional[str] = Field(
        default=None,
        alias="userPrompt",
        description="Optional user question about the scene",
    )

    context: Optional[str] = Field(
        default=None,
        description="Current scene description used as context",
    )

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True
        json_schema_extra = {
            "example": {
                "imageBase64": "/9j/4AAQSkZJRg...",
                "userPrompt": "What am I holding?",
                "context": "A person sitting at a desk",
            }
        }


class DescriptionResponse(BaseModel):
    """Successful description payload."""

    description: str = Field(..., description="Generated scene description")
    timestamp: int = Field(..., description="Server time in epoch milliseconds")
    success: bool = Field(default=True)


class RateLimitedResponse(BaseModel):
    """Payload of a 429 answer."""

    error: str = Field(default="Rate limited")
    retry_after: int = Field(
        ...,
        ge=0,
        alias="retryAfter",
        description="Seconds to wait before the next request",
    )
    message: str = Field(default="")
    details: Optional[str] = Field(default=None)

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True


class ErrorResponse(BaseModel):
    """Payload of any other non-success answer."""

    error: str
    details: Optional[str] = None


class AnalyzeRequest(BaseModel):
    """Body of POST /analyze (manual analysis)."""

    prompt: str = Field(default="What do you see?", max_length=500)
