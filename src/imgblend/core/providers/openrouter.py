"""
OpenRouter image generation provider.

Sends the blend instruction and the reference images as one chat/completions
message with image-only output modality.
"""

from collections.abc import Sequence
from typing import Any

import requests

from imgblend.core.config import Config
from imgblend.core.image_gen import NO_IMAGE_MESSAGE, UNEXPECTED_SHAPE_MESSAGE, GenerationResult
from imgblend.core.providers.transport import parse_json, post_json
from imgblend.core.reference import (
    ImagePart,
    create_image_data_url,
    decode_image_base64,
    encode_image_base64,
)
from imgblend.logging_config import get_logger
from imgblend.utils.exceptions import APIError

logger = get_logger(__name__)

SERVICE_NAME = "OpenRouter"


def _mime_from_data_url(url: str) -> str:
    """'data:image/jpeg;base64,...' -> 'image/jpeg'. Bare base64 is assumed PNG."""
    if not url.startswith("data:"):
        return "image/png"
    header = url[5:].split(",", 1)[0]
    return header.split(";", 1)[0].strip().lower()


class OpenRouterProvider:
    """Image generation provider for the OpenRouter API."""

    def _build_payload(
        self,
        prompt: str,
        model: str,
        images: Sequence[ImagePart],
    ) -> dict[str, Any]:
        """Build OpenRouter chat/completions payload."""
        content_parts: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for image in images:
            content_parts.append(
                {
                    "type": "image_url",
                    "image_url": {"url": create_image_data_url(image.data, image.mime_type)},
                }
            )
        return {
            "model": model,
            "modalities": ["image"],
            "messages": [{"role": "user", "content": content_parts}],
        }

    def _extract_image(self, response: requests.Response) -> tuple[str, str]:
        """Return (base64 data, mime type) of the first image in the response."""
        content_type = response.headers.get("content-type", "")
        if content_type.startswith("image/"):
            return encode_image_base64(response.content), content_type.split(";")[0].strip()

        result = parse_json(response)
        choices = result.get("choices") or [{}]
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(result))
        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(result))
        images = message.get("images") or []
        if not isinstance(images, list):
            raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(result))
        for image in images:
            image_url = image.get("image_url") if isinstance(image, dict) else None
            if not isinstance(image_url, dict):
                raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(result))
            url = image_url.get("url") or ""
            if not isinstance(url, str):
                raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(result))
            if not url:
                continue
            mime_type = _mime_from_data_url(url)
            if not mime_type.startswith("image/"):
                continue
            data = url.split(",", 1)[1] if url.startswith("data:") else url
            return data, mime_type
        raise APIError(NO_IMAGE_MESSAGE, response=str(result))

    def generate(
        self,
        prompt: str,
        images: Sequence[ImagePart],
        model: str,
        timeout: int,
        config: Config,
        *,
        api_key_override: str | None = None,
    ) -> GenerationResult:
        """Generate a blended image via OpenRouter API."""
        api_key = api_key_override if api_key_override is not None else config.openrouter_api_key
        url = f"{config.openrouter_base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        payload = self._build_payload(prompt, model, images)

        response, elapsed = post_json(
            url,
            headers,
            payload,
            timeout,
            service=SERVICE_NAME,
            model=model,
            debug=config.debug_api,
        )
        data, mime_type = self._extract_image(response)
        decode_image_base64(data)
        return GenerationResult(
            data=data,
            mime_type=mime_type,
            generation_time=elapsed,
            model_used=model,
            prompt_used=prompt,
            reference_count=len(images),
        )
