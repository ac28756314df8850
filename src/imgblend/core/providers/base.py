"""
Provider protocol for image generation.

Defines the interface that all image generation providers must implement.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from imgblend.core.config import Config

if TYPE_CHECKING:
    from imgblend.core.image_gen import GenerationResult
    from imgblend.core.reference import ImagePart


class ImageGenerationProvider(Protocol):
    """Protocol for image generation providers.

    Providers own one HTTP exchange with a backend: they send the instruction
    and the inline images in order, request an image-only response, and
    return the first image part as a GenerationResult.
    """

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
        """Send one blend request.

        May raise APIError (including "no image generated"), NetworkError,
        RequestTimeoutError, or ImageProcessingError for an undecodable payload.
        """
        ...
