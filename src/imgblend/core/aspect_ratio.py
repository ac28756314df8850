"""
Output aspect ratios offered to the user.

Each member's value is the ratio token the image service understands and the
one embedded in the blend instruction.
"""

from enum import Enum

from imgblend.utils.exceptions import ValidationError


class AspectRatio(str, Enum):
    """Output shape for the blended image. SQUARE is the default."""

    SQUARE = "1:1"
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"

    @property
    def token(self) -> str:
        """Ratio token, e.g. '16:9'."""
        return self.value

    @property
    def label(self) -> str:
        """Human label for UI choices, e.g. 'Landscape (16:9)'."""
        return f"{self.name.capitalize()} ({self.value})"

    @classmethod
    def parse(cls, value: "str | AspectRatio | None") -> "AspectRatio":
        """
        Resolve a token ('9:16'), member name ('portrait'), UI label or member.

        None resolves to the default (SQUARE).

        Raises:
            ValidationError: If the value names no known ratio
        """
        if value is None:
            return DEFAULT_ASPECT_RATIO
        if isinstance(value, AspectRatio):
            return value
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.lower() == member.name.lower() or text == member.label:
                return member
        choices = ", ".join(f"{m.name.lower()} ({m.value})" for m in cls)
        raise ValidationError(
            f"Unknown aspect ratio: {value!r}. Choose one of: {choices}.",
            field="aspect_ratio",
        )


DEFAULT_ASPECT_RATIO = AspectRatio.SQUARE
