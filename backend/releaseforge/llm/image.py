"""
ReleaseForge — Image-generation port and Gemini REST client.

Uses the synchronous generateContent endpoint with image output:
  POST {BASE}/models/{model}:generateContent

The response carries one inlineData part (base64 image + mimeType).
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Protocol

import httpx

from releaseforge.errors import ImageGenerationError
from releaseforge.utils.logging import logger, step_timer


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"

    @property
    def extension(self) -> str:
        return "png" if "png" in self.mime_type else "jpg"


class ImageGenerator(Protocol):
    async def generate(self, prompt: str, aspect_ratio: str) -> GeneratedImage: ...


class GeminiImageClient:
    """Thin async wrapper around the Gemini image model REST API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-3-pro-image-preview",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        image_size: str = "2K",
        timeout: float = 180.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.image_size = image_size
        self.timeout = timeout
        self.transport = transport

    def _payload(self, prompt: str, aspect_ratio: str) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
                "imageConfig": {
                    "aspectRatio": aspect_ratio,
                    "imageSize": self.image_size,
                },
            },
        }

    async def generate(self, prompt: str, aspect_ratio: str) -> GeneratedImage:
        endpoint = f"{self.base_url}/models/{self.model}:generateContent"
        with step_timer(f"Gemini image generation ({aspect_ratio})"):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    resp = await client.post(
                        endpoint,
                        headers={"x-goog-api-key": self.api_key},
                        json=self._payload(prompt, aspect_ratio),
                    )
            except httpx.HTTPError as exc:
                logger.error("  Image API request failed: %s", exc)
                raise ImageGenerationError(f"{type(exc).__name__}: {exc}") from exc

            if not resp.is_success:
                logger.error("  Image API returned %d: %s", resp.status_code, resp.text[:300])
                raise ImageGenerationError(f"HTTP {resp.status_code}", status=resp.status_code)
            try:
                result = resp.json()
            except ValueError as exc:
                raise ImageGenerationError("Image API returned invalid JSON") from exc

        return parse_image_response(result)


def parse_image_response(result: dict) -> GeneratedImage:
    """Return the first inline image part of a generateContent response."""
    candidates = result.get("candidates") or []
    parts = (candidates[0].get("content") or {}).get("parts", []) if candidates else []
    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            data = base64.b64decode(inline["data"])
            mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            logger.info("  Image API returned %d bytes (%s)", len(data), mime)
            return GeneratedImage(data=data, mime_type=mime)
    raise ImageGenerationError("No image data returned from Gemini API")
