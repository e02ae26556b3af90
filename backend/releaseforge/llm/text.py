"""
ReleaseForge — Text-generation port.

The pipeline only depends on the TextGenerator protocol: one prompt in,
free-form text out. Output is untrusted and must pass through the
feature validator (and later the auditor) before it reaches persistence.
"""

from __future__ import annotations

from typing import Protocol

import google.generativeai as genai

from releaseforge.errors import TextGenerationError
from releaseforge.utils.logging import logger


class TextGenerator(Protocol):
    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str: ...


class GeminiTextGenerator:
    """google-generativeai backed implementation of TextGenerator."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash"):
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.calls = 0

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        self.calls += 1
        model = genai.GenerativeModel(self.model_name, system_instruction=system)
        try:
            response = await model.generate_content_async(
                prompt,
                generation_config=genai.GenerationConfig(max_output_tokens=max_tokens),
            )
            text = response.text
        except Exception as exc:
            logger.error("  Gemini text generation failed: %s", exc)
            raise TextGenerationError(str(exc)) from exc

        if not text:
            raise TextGenerationError("empty response")
        return text
