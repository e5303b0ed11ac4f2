"""
Gemini Description Generator
============================

Production generation backend using the Google Gen AI SDK.

Design Rules:
    - Fail fast on misconfiguration (missing API key or SDK)
    - Quota rejections surface as QuotaExceededError
    - Log every call, never the image payload
"""

import asyncio
import logging
from typing import Optional

from vision_narrator.describer.generator import QuotaExceededError
from vision_narrator.errors import SetupError


logger = logging.getLogger(__name__)


class GeminiDescriptionGenerator:
    """
    Gemini-backed description generator.

    Attributes:
        model: Gemini model name
        max_output_tokens: Output cap (descriptions are short)
        temperature: Sampling temperature
        top_p: Nucleus sampling cutoff
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash-lite",
        max_output_tokens: int = 80,
        temperature: float = 0.2,
        top_p: float = 0.8,
    ) -> None:
        """
        Initialize Gemini generator.

        Raises:
            SetupError: If the API key is missing or google-genai is not installed
        """
        if not api_key:
            raise SetupError(
                "GOOGLE_API_KEY (or GEMINI_API_KEY) is required for the gemini backend"
            )

        self.model = model
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.top_p = top_p
        self._call_count: int = 0
        self._error_count: int = 0

        try:
            from google import genai
            from google.genai import types
        except ImportError:
            raise SetupError(
                "google-genai is required for GeminiDescriptionGenerator. "
                "Install with: pip install google-genai"
            )

        self._types = types
        self._client = genai.Client(api_key=api_key)

        logger.info(
            f"GeminiDescriptionGenerator initialized: model={model}, "
            f"max_output_tokens={max_output_tokens}"
        )

    async def generate(self, image_bytes: bytes, prompt: str) -> str:
        """
        Describe one JPEG still.

        Raises:
            QuotaExceededError: Upstream answered 429 / RESOURCE_EXHAUSTED
        """
        types = self._types
        config = types.GenerateContentConfig(
            max_output_tokens=self.max_output_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
        )

        self._call_count += 1
        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=self.model,
                contents=[
                    prompt,
                    types.Part.from_bytes(data=image_bytes, mime_type="image/jpeg"),
                ],
                config=config,
            )
        except Exception as e:
            self._error_count += 1
            if getattr(e, "code", None) == 429:
                raise QuotaExceededError(str(e)) from e
            raise

        text = str(getattr(response, "text", "") or "").strip()
        logger.debug(f"Gemini call {self._call_count}: {len(text)} chars")
        return text

    def get_metrics(self) -> dict:
        return {
            "model": self.model,
            "call_count": self._call_count,
            "error_count": self._error_count,
        }
