"""
Stage 6: Compositing over a Solid Backdrop
"""

import numpy as np

from ..errors import InvalidInputError
from ..logger import PipelineLogger
from ..raster import parse_color, round_half_up, validate_pixel_buffer


def composite(image: np.ndarray, backdrop) -> np.ndarray:
    """
    Draw the image over a flat backdrop using its alpha channel

    out = bg * (1 - a/255) + fg * (a/255), per channel.

    Args:
        image: RGBA pixel buffer (H, W, 4)
        backdrop: Backdrop color (anything parse_color accepts)

    Returns:
        New fully opaque RGBA buffer (H, W, 4)
    """
    validate_pixel_buffer(image)
    bg = np.asarray(parse_color(backdrop), dtype=np.float64)

    weight = image[..., 3:4].astype(np.float64) / 255.0
    fg = image[..., :3].astype(np.float64)

    rgb = bg * (1.0 - weight) + fg * weight

    out = np.empty_like(image)
    out[..., :3] = round_half_up(np.clip(rgb, 0.0, 255.0)).astype(np.uint8)
    out[..., 3] = 255
    return out


def composite_image(
    image: np.ndarray, backdrop, logger: PipelineLogger
) -> np.ndarray:
    """
    Stage 6 entry point: composite and log the backdrop used

    Raises:
        InvalidInputError: If the backdrop color is invalid
    """
    logger.log_info("Stage 6: Compositing over backdrop...")

    try:
        color = parse_color(backdrop)
    except InvalidInputError:
        logger.log_error(f"  Invalid backdrop color: {backdrop!r}")
        raise

    result = composite(image, color)

    alpha = image[..., 3]
    logger.log_stage(
        "s6_compositing",
        backdrop_rgb=list(color),
        opaque_pixels=int(np.count_nonzero(alpha == 255)),
        transparent_pixels=int(np.count_nonzero(alpha == 0)),
    )

    return result
