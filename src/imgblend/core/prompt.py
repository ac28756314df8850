"""
Blend instruction for imgblend.

The instruction is fixed: only the aspect ratio token varies between requests.
"""

from imgblend.core.aspect_ratio import AspectRatio

BLEND_PROMPT_TEMPLATE = (
    "Combine the visual characteristics (style, colors, lighting, pose, outfit vibe, "
    "composition) of these reference images into a single new, coherent, and realistic "
    "image. The final image must have a {aspect_ratio} aspect ratio. Ensure consistent "
    "anatomy and lighting. The image should be high-detail, photorealistic, and PG-13. "
    "Crucially, DO NOT include any text, watermarks, or UI elements in the final image."
)


def build_blend_prompt(aspect_ratio: AspectRatio | str) -> str:
    """
    Build the instruction sent alongside the reference images.

    Args:
        aspect_ratio: AspectRatio or anything AspectRatio.parse accepts

    Returns:
        Instruction text containing the literal ratio token (e.g. '9:16')

    Raises:
        ValidationError: If aspect_ratio is not a known ratio
    """
    ratio = AspectRatio.parse(aspect_ratio)
    return BLEND_PROMPT_TEMPLATE.format(aspect_ratio=ratio.token)
