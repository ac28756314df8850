"""
Blend image generation.

BlendClient validates the reference set, builds the blend instruction, and
hands the single request to a provider (Gemini by default). Every
service-level failure comes back as one GenerationError whose message starts
with "Failed to generate image: ".
"""

import dataclasses
import io
import time
from collections.abc import Sequence
from dataclasses import dataclass

from PIL import Image

from imgblend.core.aspect_ratio import DEFAULT_ASPECT_RATIO, AspectRatio
from imgblend.core.config import API_KEY_ENV_VARS, Config, get_config
from imgblend.core.prompt import build_blend_prompt
from imgblend.core.providers import ImageGenerationProvider, get_registry
from imgblend.core.reference import (
    ImagePart,
    ReferenceImage,
    decode_image_base64,
    validate_reference_count,
)
from imgblend.logging_config import get_logger, log_prompts
from imgblend.utils.exceptions import (
    APIError,
    ConfigurationError,
    GenerationError,
    ImageProcessingError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)

logger = get_logger(__name__)

NO_IMAGE_MESSAGE = (
    "No image was generated. The model may have refused the request due to safety policies."
)
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during image generation."
GENERATION_ERROR_PREFIX = "Failed to generate image: "
UNEXPECTED_SHAPE_MESSAGE = "Unexpected API response shape"

_SERVICE_ERRORS = (APIError, NetworkError, RequestTimeoutError, ImageProcessingError)


@dataclass
class GenerationResult:
    """Result of a blend request.

    ``data`` is the base64 payload of the first image part the service
    returned; ``image_bytes`` and ``image`` decode it on demand.
    """

    data: str  # base64, as returned by the service
    mime_type: str  # e.g. 'image/png'
    generation_time: float  # Time taken in seconds
    model_used: str
    prompt_used: str
    reference_count: int

    @property
    def format(self) -> str:
        """Image format from the MIME type (e.g. 'png', 'jpeg')."""
        return self.mime_type.split("/", 1)[-1].split(";")[0].strip().lower() or "png"

    @property
    def image_bytes(self) -> bytes:
        """Raw decoded image bytes, exactly as the service produced them."""
        return decode_image_base64(self.data)

    @property
    def image(self) -> Image.Image:
        """Decoded PIL image (for previews)."""
        return Image.open(io.BytesIO(self.image_bytes)).copy()


def _as_image_part(image: ImagePart | ReferenceImage) -> ImagePart:
    if isinstance(image, ReferenceImage):
        return image.image_part
    if isinstance(image, ImagePart):
        return image
    raise ValidationError(
        f"Unsupported reference image value: {type(image).__name__}", field="images"
    )


def _is_transient(exc: BaseException) -> bool:
    """Failures worth retrying: network, timeout, rate limit, 5xx."""
    if isinstance(exc, (NetworkError, RequestTimeoutError)):
        return True
    if isinstance(exc, APIError):
        return exc.status_code == 429 or exc.status_code >= 500
    return False


class BlendClient:
    """Client for blend requests.

    Constructed explicitly with its configuration (and optionally a provider
    instance, e.g. a test double). Holds no per-request state, so one client
    can serve many sessions.
    """

    def __init__(
        self,
        config: Config | None = None,
        provider: ImageGenerationProvider | None = None,
        *,
        api_key: str | None = None,
    ) -> None:
        """
        Args:
            config: Configuration; if None, uses shared config from get_config()
            provider: Provider implementation; if None, resolved from the registry
                by config.image_provider on first use
            api_key: Credential overriding the one in config
        """
        self.config = config or get_config()
        self._provider = provider
        self._api_key = api_key

    @property
    def provider(self) -> ImageGenerationProvider:
        if self._provider is None:
            impl = get_registry().get(self.config.image_provider)
            if impl is None:
                raise ConfigurationError(
                    f"Unknown image_provider: {self.config.image_provider!r}."
                )
            self._provider = impl
        return self._provider

    def with_model(self, model: str) -> "BlendClient":
        """Return a client with the same provider and credential bound to another model."""
        config = dataclasses.replace(self.config, image_model=model)
        return BlendClient(config, self._provider, api_key=self._api_key)

    def _resolve_api_key(self) -> str:
        api_key = self._api_key if self._api_key is not None else self.config.api_key_for()
        if not api_key:
            env_name = API_KEY_ENV_VARS.get(self.config.image_provider, "the API key variable")
            raise ConfigurationError(
                f"API key for {self.config.image_provider} is not configured. "
                f"Set {env_name} or pass api_key explicitly."
            )
        return api_key

    def _call_with_retry(
        self,
        prompt: str,
        parts: list[ImagePart],
        model: str,
        api_key: str,
    ) -> GenerationResult:
        max_retries = max(0, self.config.max_retries)
        attempt = 0
        while True:
            try:
                return self.provider.generate(
                    prompt,
                    parts,
                    model=model,
                    timeout=self.config.generation_timeout,
                    config=self.config,
                    api_key_override=api_key,
                )
            except (APIError, NetworkError, RequestTimeoutError) as e:
                if attempt >= max_retries or not _is_transient(e):
                    raise
                delay = self.config.retry_backoff * (2**attempt)
                attempt += 1
                logger.warning(
                    "Transient failure (%s); retry %d/%d in %.1fs", e, attempt, max_retries, delay
                )
                time.sleep(delay)

    def generate(
        self,
        images: Sequence[ImagePart | ReferenceImage],
        aspect_ratio: AspectRatio | str = DEFAULT_ASPECT_RATIO,
    ) -> GenerationResult:
        """
        Blend 2 to 4 reference images into one new image.

        Args:
            images: Reference images, sent in this order after the instruction
            aspect_ratio: Output shape (AspectRatio, token like '16:9', or name)

        Returns:
            GenerationResult holding the first image part the service returned

        Raises:
            ValidationError: If the image count is outside [2, 4] or the ratio is unknown.
                Raised before any network activity.
            ConfigurationError: If no API key is available or the provider is unknown
            GenerationError: If the service call fails or yields no image
        """
        validate_reference_count(len(images))
        parts = [_as_image_part(image) for image in images]
        ratio = AspectRatio.parse(aspect_ratio)
        prompt = build_blend_prompt(ratio)
        api_key = self._resolve_api_key()
        model = self.config.model

        logger.info(
            "Blending %d reference images provider=%s model=%s aspect_ratio=%s",
            len(parts),
            self.config.image_provider,
            model,
            ratio.token,
        )
        if log_prompts():
            logger.info("Prompt (used): %s", prompt)

        try:
            result = self._call_with_retry(prompt, parts, model, api_key)
        except _SERVICE_ERRORS as e:
            logger.error("Error generating image with %s: %s", self.config.image_provider, e)
            message = str(e) or UNKNOWN_ERROR_MESSAGE
            raise GenerationError(f"{GENERATION_ERROR_PREFIX}{message}", original_error=e) from e

        logger.info("Generated in %.1fs model=%s", result.generation_time, result.model_used)
        return result


def generate_image(
    images: Sequence[ImagePart | ReferenceImage],
    aspect_ratio: AspectRatio | str = DEFAULT_ASPECT_RATIO,
    config: Config | None = None,
    client: BlendClient | None = None,
) -> GenerationResult:
    """
    Blend reference images with a one-off client (or the given one).

    Args:
        images: 2 to 4 reference images
        aspect_ratio: Output shape
        config: Optional config; if None, uses shared config from get_config()
        client: Optional pre-built client; takes precedence over config

    Returns:
        GenerationResult

    Raises:
        ValidationError, ConfigurationError, GenerationError: see BlendClient.generate
    """
    client = client or BlendClient(config)
    return client.generate(images, aspect_ratio)
