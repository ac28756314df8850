"""
Reference image handling for imgblend.

This module reads uploaded reference images, checks that their content really
is PNG or JPEG, and produces the base64 transport encoding sent to the image
service.
"""

import base64
import binascii
import io
import uuid
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from imgblend.logging_config import get_logger
from imgblend.utils.exceptions import ImageProcessingError, ValidationError

logger = get_logger(__name__)

MIN_REFERENCE_IMAGES = 2
MAX_REFERENCE_IMAGES = 4

# Extensions offered by the file picker and accepted on the CLI
SUPPORTED_EXTENSIONS = (".png", ".jpg", ".jpeg")

# Pillow format name -> MIME type
_FORMAT_TO_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
}

_EXTENSION_TO_FORMAT = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
}


@dataclass(frozen=True)
class ImagePart:
    """One inline image as sent to the service: base64 data plus its MIME type."""

    data: str
    mime_type: str


@dataclass(frozen=True)
class ReferenceImage:
    """A user-supplied reference image, already transport-encoded."""

    id: str
    filename: str
    mime_type: str
    data: str  # base64

    @property
    def image_part(self) -> ImagePart:
        return ImagePart(data=self.data, mime_type=self.mime_type)

    @property
    def image_bytes(self) -> bytes:
        """Decoded image bytes (byte-identical to the uploaded file)."""
        return decode_image_base64(self.data)

    @property
    def data_url(self) -> str:
        return create_image_data_url(self.data, self.mime_type)


def _infer_format_from_magic(data: bytes) -> str | None:
    """Infer image format from magic bytes. Returns 'PNG', 'JPEG' or None."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "PNG"
    if data[:3] == b"\xff\xd8\xff":
        return "JPEG"
    return None


def validate_extension(filename: str) -> str:
    """
    Check the file extension against SUPPORTED_EXTENSIONS.

    Returns:
        The Pillow format name the extension implies ('PNG' or 'JPEG')

    Raises:
        ValidationError: If the extension is not supported
    """
    suffix = Path(filename).suffix.lower()
    if suffix not in _EXTENSION_TO_FORMAT:
        raise ValidationError(
            f"Unsupported image file: {filename or '<unnamed>'}. "
            f"Supported extensions: {', '.join(SUPPORTED_EXTENSIONS)}",
            field="image_format",
        )
    return _EXTENSION_TO_FORMAT[suffix]


def sniff_image(data: bytes, filename: str = "") -> str:
    """
    Determine the real format of image bytes and verify Pillow can decode them.

    Args:
        data: Raw file bytes
        filename: Used in error messages only

    Returns:
        MIME type of the content ('image/png' or 'image/jpeg')

    Raises:
        ImageProcessingError: If the bytes are empty, not PNG/JPEG, or corrupt
    """
    if not data:
        raise ImageProcessingError("Image data is empty", image_path=filename)
    fmt = _infer_format_from_magic(data)
    if fmt is None:
        raise ImageProcessingError(
            f"File content is not a PNG or JPEG image: {filename or '<unnamed>'}",
            image_path=filename,
        )
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
    except Exception as e:
        raise ImageProcessingError(
            f"Failed to decode image {filename or '<unnamed>'}: {str(e)}",
            image_path=filename,
        ) from e
    return _FORMAT_TO_MIME[fmt]


def encode_image_base64(data: bytes) -> str:
    """Encode raw image bytes to a base64 string."""
    return base64.b64encode(data).decode("ascii")


def decode_image_base64(encoded: str) -> bytes:
    """
    Decode a base64 image payload (bare or data URL) back to raw bytes.

    Raises:
        ImageProcessingError: If the payload is not valid base64
    """
    payload = encoded.strip()
    if payload.startswith("data:"):
        payload = payload.split(",", 1)[1] if "," in payload else ""
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageProcessingError(f"Invalid base64 image data: {str(e)}") from e


def create_image_data_url(encoded_image: str, mime_type: str = "image/png") -> str:
    """
    Create a data URL from a base64 encoded image.

    Args:
        encoded_image: Base64 encoded image string
        mime_type: MIME type of the image

    Returns:
        Data URL string
    """
    return f"data:{mime_type};base64,{encoded_image}"


def _new_reference_id(filename: str) -> str:
    stem = Path(filename).stem or "image"
    return f"{stem}-{uuid.uuid4().hex[:8]}"


def load_reference_image(
    source: str | Path | bytes,
    filename: str | None = None,
) -> ReferenceImage:
    """
    Read a reference image and encode it for transport.

    This function:
    1. Validates the extension (.png, .jpg, .jpeg)
    2. Reads the bytes (from path or memory)
    3. Sniffs the real content type and verifies it decodes
    4. Encodes to base64 without re-encoding the image itself

    Args:
        source: Path to the image file (str or Path) or raw image bytes
        filename: Display name; required for bytes, defaults to the path's name

    Returns:
        ReferenceImage with a fresh unique id

    Raises:
        ValidationError: If the extension is unsupported
        ImageProcessingError: If the file cannot be read or is not a valid PNG/JPEG
    """
    if isinstance(source, bytes):
        name = filename or ""
        validate_extension(name)
        data = source
    else:
        path = Path(source)
        name = filename or path.name
        validate_extension(name)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ImageProcessingError(
                f"Failed to read image: {str(e)}", image_path=str(path)
            ) from e

    mime_type = sniff_image(data, name)
    declared = _FORMAT_TO_MIME[_EXTENSION_TO_FORMAT[Path(name).suffix.lower()]]
    if declared != mime_type:
        logger.debug(
            "Reference image %s extension says %s but content is %s; using content type",
            name,
            declared,
            mime_type,
        )

    ref = ReferenceImage(
        id=_new_reference_id(name),
        filename=name,
        mime_type=mime_type,
        data=encode_image_base64(data),
    )
    logger.info("Loaded reference image %s mime=%s bytes=%d", name, mime_type, len(data))
    return ref


def validate_reference_count(count: int) -> None:
    """
    Enforce MIN_REFERENCE_IMAGES <= count <= MAX_REFERENCE_IMAGES.

    Raises:
        ValidationError: If count is out of range
    """
    if count < MIN_REFERENCE_IMAGES or count > MAX_REFERENCE_IMAGES:
        raise ValidationError(
            f"Please provide {MIN_REFERENCE_IMAGES} to {MAX_REFERENCE_IMAGES} reference images.",
            field="images",
        )
