"""
Gemini image generation client.

Calls the generateContent REST endpoint with a hard overall timeout and maps
upstream failures onto UpstreamError subclasses.
"""
import asyncio

import httpx

from imagestudio.exceptions import (
    UpstreamConfigError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from imagestudio.logging_config import get_logger

PLACEHOLDER_API_KEY = "your_api_key_here"

logger = get_logger(component="generation")


def build_prompt(prompt: str, style: str | None = None) -> str:
    """Prefix the prompt with the requested artistic style, if any."""
    final_prompt = prompt.strip()
    if style and style.strip():
        final_prompt = f"in {style.strip()} style: {final_prompt}"
    return final_prompt


def extract_image(data: dict) -> str:
    """Return the base64 image data from a generateContent response."""
    candidates = data.get("candidates") or []
    if not candidates:
        raise UpstreamError("No response generated from the model.")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        raise UpstreamError("Empty response from the model.")

    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            return inline["data"]

    raise UpstreamError("No image was generated. Try a different prompt.")


class ImageGenerationClient:
    """Client for the generative image backend."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        api_base: str,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/{self.model}:generateContent"

    async def generate(
        self,
        prompt: str,
        image: str | None = None,
        style: str | None = None
    ) -> str:
        """
        Generate an image.

        Args:
            prompt: Text prompt
            image: Base64 reference image (optional)
            style: Artistic style (optional)

        Returns:
            Base64 encoded image data

        Raises:
            UpstreamConfigError: API key missing or rejected
            UpstreamRateLimitError: Upstream returned 429
            UpstreamTimeoutError: No answer within the timeout
            UpstreamError: Any other upstream failure
        """
        if not self.is_configured:
            raise UpstreamConfigError("API key is not configured.")

        parts: list[dict] = [{"text": build_prompt(prompt, style)}]
        if image:
            parts.append({
                "inlineData": {
                    "mimeType": "image/png",
                    "data": image,
                }
            })

        body = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"],
            },
        }

        try:
            response = await asyncio.wait_for(
                self._client.post(
                    self.endpoint,
                    json=body,
                    headers={"x-goog-api-key": self.api_key},
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("generation_timeout", timeout=self.timeout)
            raise UpstreamTimeoutError("Request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            logger.error("generation_transport_error", error=str(e))
            raise UpstreamError("An unexpected error occurred.") from e

        if response.status_code == 429:
            raise UpstreamRateLimitError("Rate limit exceeded. Please try again later.")
        if response.status_code in (401, 403):
            raise UpstreamConfigError("Invalid API key.")
        if response.is_error:
            raise UpstreamError(_error_message(response))

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("Invalid response from the model.") from e

        return extract_image(data)

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        message = response.json().get("error", {}).get("message")
    except (ValueError, AttributeError):
        message = None
    return message or f"API error: {response.status_code}"
