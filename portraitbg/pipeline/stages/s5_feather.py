"""
Stage 5: Alpha Feathering using Repeated Separable Box Blur
"""

import math
from typing import Optional

import numpy as np
from scipy import ndimage

from ..config import PipelineConfig
from ..logger import PipelineLogger
from ..raster import round_half_up


def blur_radius(width: int, height: int, divisor: float = 120.0) -> int:
    """Feather radius that scales with the shorter image side"""
    return max(1, int(math.floor(min(width, height) / divisor + 0.5)))


def feather_radii(radius: int, passes: int = 3) -> list[int]:
    """
    Radius for each blur pass

    All passes use the full radius except the last, which uses half of
    it (rounded up, at least 1). Three passes give r, r, ceil(r / 2).
    """
    if passes <= 0:
        return []
    if passes == 1:
        return [radius]
    return [radius] * (passes - 1) + [max(1, math.ceil(radius / 2))]


def box_blur(alpha: np.ndarray, radius: int) -> np.ndarray:
    """
    One separable box blur pass: horizontal, then vertical

    Each direction is a sliding-window mean of width 2r + 1 maintained
    with a running sum, with edge pixels replicated past the border.

    Args:
        alpha: Float array (H, W)
        radius: Window radius in pixels

    Returns:
        Blurred float array (H, W)
    """
    size = 2 * radius + 1
    horizontal = ndimage.uniform_filter1d(alpha, size=size, axis=1, mode="nearest")
    return ndimage.uniform_filter1d(horizontal, size=size, axis=0, mode="nearest")


def feather_alpha(
    mask: np.ndarray, radius: int, passes: int = 3
) -> np.ndarray:
    """
    Turn a binary mask into a smooth alpha ramp

    Repeated box blurs approximate a Gaussian. Pixels farther than the
    sum of the pass radii from any boundary keep their exact value.

    Args:
        mask: Binary mask (H, W), 0 or 255
        radius: Base blur radius
        passes: Number of separable passes

    Returns:
        Float alpha (H, W) clamped to [0, 255]
    """
    alpha = mask.astype(np.float64)
    for r in feather_radii(radius, passes):
        alpha = box_blur(alpha, r)
    return np.clip(alpha, 0.0, 255.0)


def quantize_alpha(alpha: np.ndarray) -> np.ndarray:
    """Clamp, round half up and convert alpha to uint8"""
    return round_half_up(np.clip(alpha, 0.0, 255.0)).astype(np.uint8)


def resolve_radius(width: int, height: int, config: PipelineConfig) -> int:
    """Configured radius override, or the size-derived default"""
    override: Optional[int] = config.blur_radius
    if override is not None:
        return override
    return blur_radius(width, height, config.blur_divisor)


def feather_mask(
    mask: np.ndarray, config: PipelineConfig, logger: PipelineLogger
) -> np.ndarray:
    """
    Stage 5 entry point: feather the refined mask into an alpha channel

    Args:
        mask: Refined binary mask from Stage 4
        config: Pipeline configuration
        logger: Logger instance

    Returns:
        Quantized alpha (H, W) uint8
    """
    logger.log_info("Stage 5: Feathering alpha...")

    h, w = mask.shape
    radius = resolve_radius(w, h, config)
    radii = feather_radii(radius, config.blur_passes)

    alpha = quantize_alpha(feather_alpha(mask, radius, config.blur_passes))

    partial = int(np.count_nonzero((alpha > 0) & (alpha < 255)))

    logger.log_stage(
        "s5_feathering",
        method="separable box blur",
        radius=radius,
        radii=radii,
        passes=config.blur_passes,
        partial_alpha_pixels=partial,
    )

    logger.log_info(f"  Radii {radii}, {partial:,} edge pixels feathered")

    return alpha
