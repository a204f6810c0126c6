"""Remote image generation through the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

import base64
from typing import Any, Dict, Optional

import httpx

from ..core.error_handling import retry_transient
from ..core.exceptions import (
    AuthorizationError,
    NoResultError,
    TransformError,
    TransientTransformError,
)
from ..core.logging_config import get_logger
from ..core.models import BatchConfig
from ..core.protocols import TransformStrategy
from ..core.settings import StudioSettings

AUTH_INVALID_MARKER = "Requested entity was not found."
DEFAULT_MIME_TYPE = "image/png"


def is_transient_status(status: Optional[int]) -> bool:
    return status is not None and (status == 429 or status >= 500)


def build_request_body(source: bytes, mime_type: str, config: BatchConfig) -> Dict[str, Any]:
    """Request payload: the source image inline, then the style prompt."""
    return {
        "contents": [
            {
                "parts": [
                    {
                        "inlineData": {
                            "mimeType": mime_type or DEFAULT_MIME_TYPE,
                            "data": base64.b64encode(source).decode("ascii"),
                        }
                    },
                    {"text": config.render_prompt()},
                ]
            }
        ],
        "generationConfig": {
            "responseModalities": ["IMAGE"],
            "imageConfig": {"aspectRatio": config.aspect_ratio},
        },
    }


def extract_image(payload: Dict[str, Any]) -> bytes:
    """
    Pull the first inline image out of the first candidate.

    Raises:
        NoResultError: If the first candidate holds no inline image
    """
    candidates = payload.get("candidates") or []
    parts = []
    if candidates:
        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []

    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            return base64.b64decode(inline["data"])

    raise NoResultError("No image data returned from model.")


def error_from_response(response: httpx.Response) -> TransformError:
    """Classify an error response into the transform error taxonomy."""
    message = ""
    try:
        body = response.json()
        message = (body.get("error") or {}).get("message", "")
    except (ValueError, AttributeError):
        message = response.text
    message = message or f"Request failed with status {response.status_code}"

    status = response.status_code
    if is_transient_status(status):
        return TransientTransformError(message, status)
    if AUTH_INVALID_MARKER in message:
        return AuthorizationError(message, status)
    return TransformError(message, status)


class GeminiImageTransform(TransformStrategy):
    """Send the source image and prompt to the generation service, return the image it produces."""

    name = "ai"
    retryable = True

    def __init__(
        self,
        settings: StudioSettings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    def endpoint(self, model: str) -> str:
        return f"{self._settings.api_base_url.rstrip('/')}/models/{model}:generateContent"

    async def transform(self, source: bytes, mime_type: str, config: BatchConfig) -> bytes:
        if not self._settings.api_key:
            raise AuthorizationError("No API key configured for the generation service.")
        body = build_request_body(source, mime_type, config)
        return await self._generate(config.model, body)

    @retry_transient(max_retries=3, initial_delay=1.0, backoff_factor=2.0)
    async def _generate(self, model: str, body: Dict[str, Any]) -> bytes:
        logger = get_logger("remote-transform")
        logger.debug(f"Requesting {model} generation")
        try:
            response = await self._client.post(
                self.endpoint(model),
                json=body,
                headers={"x-goog-api-key": self._settings.api_key or ""},
            )
        except httpx.HTTPError as e:
            raise TransformError(f"Request to generation service failed: {e}") from e

        if response.status_code >= 400:
            raise error_from_response(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise NoResultError("No image data returned from model.") from e
        return extract_image(payload)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
