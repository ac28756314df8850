"""
Blend session: the state behind one user's upload form.

Holds the reference images, the selected aspect ratio, the loading flag, the
last error and the last result, and implements the transitions the UI wires
to its controls (add, remove, pick ratio, generate, save). Kept free of any UI
toolkit so it can be driven by the Gradio app, the CLI, or tests.
"""

import threading
from collections.abc import Iterable, Sequence
from pathlib import Path

from imgblend.core.aspect_ratio import DEFAULT_ASPECT_RATIO, AspectRatio
from imgblend.core.image_gen import BlendClient, GenerationResult
from imgblend.core.reference import (
    MAX_REFERENCE_IMAGES,
    MIN_REFERENCE_IMAGES,
    ReferenceImage,
    create_image_data_url,
    load_reference_image,
)
from imgblend.logging_config import get_logger
from imgblend.utils.exceptions import BlendError, ValidationError

logger = get_logger(__name__)

RESULT_FILENAME = "result.png"

TOO_MANY_IMAGES_MESSAGE = f"You can upload a maximum of {MAX_REFERENCE_IMAGES} images."
TOO_FEW_IMAGES_MESSAGE = f"Please upload at least {MIN_REFERENCE_IMAGES} images."
IN_FLIGHT_MESSAGE = "A generation is already in progress."

# A source is a path, or (raw bytes, filename)
ImageSource = str | Path | tuple[bytes, str]


def _load(source: ImageSource) -> ReferenceImage:
    if isinstance(source, tuple):
        data, filename = source
        return load_reference_image(data, filename=filename)
    return load_reference_image(source)


class BlendSession:
    """State machine for one blend form.

    Invariants: 0 <= len(references) <= 4; at most one of ``result`` and
    ``error`` is set; at most one generate() runs at a time.
    """

    def __init__(self, client: BlendClient) -> None:
        self.client = client
        self._references: list[ReferenceImage] = []
        self.aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO
        self.result: GenerationResult | None = None
        self.error: str | None = None
        self._in_flight = threading.Lock()

    @property
    def references(self) -> tuple[ReferenceImage, ...]:
        return tuple(self._references)

    @property
    def loading(self) -> bool:
        return self._in_flight.locked()

    @property
    def can_generate(self) -> bool:
        count = len(self._references)
        return not self.loading and MIN_REFERENCE_IMAGES <= count <= MAX_REFERENCE_IMAGES

    @property
    def result_data_url(self) -> str | None:
        if self.result is None:
            return None
        return create_image_data_url(self.result.data, self.result.mime_type)

    def _set_error(self, message: str) -> None:
        self.error = message
        self.result = None

    def add_images(self, sources: Sequence[ImageSource]) -> list[ReferenceImage]:
        """
        Encode and append reference images, all or nothing.

        Raises:
            ValidationError: If the total would exceed the maximum, or a file
                has an unsupported extension
            ImageProcessingError: If a file cannot be read or is not PNG/JPEG

        On failure the error is also recorded on the session and the reference
        set is left untouched.
        """
        if len(self._references) + len(sources) > MAX_REFERENCE_IMAGES:
            self.error = TOO_MANY_IMAGES_MESSAGE
            raise ValidationError(TOO_MANY_IMAGES_MESSAGE, field="images")
        try:
            added = [_load(source) for source in sources]
        except BlendError as e:
            self.error = str(e)
            raise
        self.error = None
        self._references.extend(added)
        logger.debug("Reference set now has %d images", len(self._references))
        return added

    def remove_image(self, image_id: str) -> None:
        """Remove one reference; clears the result once fewer than the minimum remain."""
        self._references = [ref for ref in self._references if ref.id != image_id]
        if len(self._references) < MIN_REFERENCE_IMAGES:
            self.result = None

    def clear(self) -> None:
        """Drop all references, the result and the error."""
        self._references = []
        self.result = None
        self.error = None

    def set_aspect_ratio(self, value: AspectRatio | str | None) -> AspectRatio:
        self.aspect_ratio = AspectRatio.parse(value)
        return self.aspect_ratio

    def generate(self) -> GenerationResult | None:
        """
        Run one blend with the current references and ratio.

        Failures never escape as exceptions: they are stored in ``error`` and
        None is returned, leaving the session ready for another attempt.

        Raises:
            ValidationError: If another generate() on this session is still running
        """
        if not self._in_flight.acquire(blocking=False):
            raise ValidationError(IN_FLIGHT_MESSAGE, field="generate")
        try:
            if len(self._references) < MIN_REFERENCE_IMAGES:
                self._set_error(TOO_FEW_IMAGES_MESSAGE)
                return None
            self.error = None
            self.result = None
            try:
                result = self.client.generate(self._references, self.aspect_ratio)
            except BlendError as e:
                self._set_error(str(e) or "An unexpected error occurred.")
                return None
            self.result = result
            return result
        finally:
            self._in_flight.release()

    def save_result(self, directory: str | Path) -> Path:
        """
        Write the raw decoded result bytes to ``directory/result.png``.

        Raises:
            ValidationError: If there is no result to save
        """
        if self.result is None:
            raise ValidationError("There is no generated image to download.", field="result")
        out_path = Path(directory) / RESULT_FILENAME
        out_path.write_bytes(self.result.image_bytes)
        logger.info("Saved result to %s", out_path)
        return out_path


def load_references(sources: Iterable[ImageSource]) -> list[ReferenceImage]:
    """Load several references at once (CLI helper); no count limits applied."""
    return [_load(source) for source in sources]
