"""
Gemini image generation provider.

Calls the Generative Language API generateContent endpoint with the blend
instruction followed by the reference images as inline data, and asks for an
image-only response.
"""

from collections.abc import Sequence
from typing import Any

from imgblend.core.config import Config
from imgblend.core.image_gen import NO_IMAGE_MESSAGE, UNEXPECTED_SHAPE_MESSAGE, GenerationResult
from imgblend.core.providers.transport import parse_json, post_json
from imgblend.core.reference import ImagePart, decode_image_base64
from imgblend.logging_config import get_logger
from imgblend.utils.exceptions import APIError

logger = get_logger(__name__)

SERVICE_NAME = "Gemini"


def _inline_data(part: dict[str, Any]) -> dict[str, Any] | None:
    """Return a part's inline blob; the REST API answers in camelCase, some proxies in snake_case."""
    inline = part.get("inlineData") or part.get("inline_data")
    return inline if isinstance(inline, dict) else None


class GeminiProvider:
    """Image generation provider for the Gemini API."""

    def _build_payload(self, prompt: str, images: Sequence[ImagePart]) -> dict[str, Any]:
        """Build generateContent payload: one text part, then the images in order."""
        parts: list[dict[str, Any]] = [{"text": prompt}]
        for image in images:
            parts.append({"inlineData": {"mimeType": image.mime_type, "data": image.data}})
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": ["IMAGE"]},
        }

    def _extract_image(self, body: dict[str, Any]) -> tuple[str, str]:
        """Return (base64 data, mime type) of the first image part. Raises APIError if none."""
        candidates = body.get("candidates") or []
        if not isinstance(candidates, list):
            raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(body))
        if not candidates:
            feedback = body.get("promptFeedback")
            block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            message = NO_IMAGE_MESSAGE
            if block_reason:
                message = f"{NO_IMAGE_MESSAGE} (block reason: {block_reason})"
            raise APIError(message, response=str(body))

        candidate = candidates[0] or {}
        if not isinstance(candidate, dict):
            raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(body))
        content = candidate.get("content") or {}
        if not isinstance(content, dict):
            raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(body))
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(body))
        for part in parts:
            if not isinstance(part, dict):
                raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(body))
            inline = _inline_data(part)
            if inline is None:
                continue
            mime_type = inline.get("mimeType") or inline.get("mime_type") or ""
            data = inline.get("data") or ""
            if not isinstance(mime_type, str) or not isinstance(data, str):
                raise APIError(UNEXPECTED_SHAPE_MESSAGE, response=str(body))
            if mime_type.startswith("image/") and data:
                return data, mime_type

        finish_reason = candidate.get("finishReason")
        if finish_reason and finish_reason != "STOP":
            logger.debug("Gemini finished without image finish_reason=%s", finish_reason)
        raise APIError(NO_IMAGE_MESSAGE, response=str(body))

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
        """Generate a blended image via the Gemini API."""
        api_key = api_key_override if api_key_override is not None else config.gemini_api_key
        url = f"{config.gemini_base_url.rstrip('/')}/models/{model}:generateContent"
        headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }
        payload = self._build_payload(prompt, images)

        response, elapsed = post_json(
            url,
            headers,
            payload,
            timeout,
            service=SERVICE_NAME,
            model=model,
            debug=config.debug_api,
        )
        data, mime_type = self._extract_image(parse_json(response))
        # Fail here rather than at download time if the payload is not base64
        decode_image_base64(data)
        return GenerationResult(
            data=data,
            mime_type=mime_type,
            generation_time=elapsed,
            model_used=model,
            prompt_used=prompt,
            reference_count=len(images),
        )
