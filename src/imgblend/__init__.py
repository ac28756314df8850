"""
imgblend - blend 2 to 4 reference images into one AI-generated image

Library usage:
- Build a client explicitly: BlendClient(Config.from_env()) (or pass provider=... for a test double),
  then client.generate(images, AspectRatio.PORTRAIT).
- load_reference_image() reads and base64-encodes a PNG/JPEG reference; BlendSession wraps the
  add/remove/generate/save flow the web UI uses.
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  IMGBLEND_VERBOSITY env (0/1/2) is read when the CLI or UI starts.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("imgblend")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from imgblend.core.aspect_ratio import DEFAULT_ASPECT_RATIO, AspectRatio
from imgblend.core.config import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_IMAGE_PROVIDER,
    Config,
    get_config,
    set_config,
)
from imgblend.core.image_gen import BlendClient, GenerationResult, generate_image
from imgblend.core.prompt import build_blend_prompt
from imgblend.core.reference import (
    MAX_REFERENCE_IMAGES,
    MIN_REFERENCE_IMAGES,
    ImagePart,
    ReferenceImage,
    load_reference_image,
)
from imgblend.core.session import RESULT_FILENAME, BlendSession
from imgblend.logging_config import configure_logging, set_verbosity
from imgblend.utils.exceptions import (
    APIError,
    BlendError,
    ConfigurationError,
    GenerationError,
    ImageProcessingError,
    NetworkError,
    RequestTimeoutError,
    ValidationError,
)

__all__ = [
    "APIError",
    "AspectRatio",
    "BlendClient",
    "BlendError",
    "BlendSession",
    "Config",
    "ConfigurationError",
    "DEFAULT_ASPECT_RATIO",
    "DEFAULT_GEMINI_MODEL",
    "DEFAULT_IMAGE_PROVIDER",
    "GenerationError",
    "GenerationResult",
    "ImagePart",
    "ImageProcessingError",
    "MAX_REFERENCE_IMAGES",
    "MIN_REFERENCE_IMAGES",
    "NetworkError",
    "RESULT_FILENAME",
    "ReferenceImage",
    "RequestTimeoutError",
    "ValidationError",
    "build_blend_prompt",
    "configure_logging",
    "generate_image",
    "get_config",
    "load_reference_image",
    "set_config",
    "set_verbosity",
]
