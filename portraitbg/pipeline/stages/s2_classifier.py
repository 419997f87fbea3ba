"""
Stage 2: Foreground Classification using Color Distance + Center Protection
"""

from dataclasses import dataclass

import numpy as np

from ..config import PipelineConfig
from ..logger import PipelineLogger
from .s1_background import BackgroundSample


@dataclass(frozen=True)
class ClassifierContext:
    """
    Per-image values computed once and shared by every pixel decision

    Geometry uses pixel centers, so the ratio is 0 at the image center
    and approaches 1 at the outermost corner pixels.
    """

    background: tuple[float, float, float]
    center_x: float
    center_y: float
    max_distance: float
    protect_radius: float
    base_threshold: float
    max_threshold: float
    bright_threshold: float
    saturation_threshold: float
    bright_min_ratio: float
    corner_ratio: float
    corner_distance: float

    @classmethod
    def build(
        cls, width: int, height: int, sample: BackgroundSample, config: PipelineConfig
    ) -> "ClassifierContext":
        center_x = width / 2.0
        center_y = height / 2.0
        return cls(
            background=sample.rgb,
            center_x=center_x,
            center_y=center_y,
            max_distance=float(np.hypot(center_x, center_y)),
            protect_radius=config.protect_radius,
            base_threshold=config.base_threshold,
            max_threshold=config.max_threshold,
            bright_threshold=config.bright_threshold,
            saturation_threshold=config.saturation_threshold,
            bright_min_ratio=config.bright_min_ratio,
            corner_ratio=config.corner_ratio,
            corner_distance=config.corner_distance,
        )


def center_ratio_map(height: int, width: int) -> np.ndarray:
    """
    Normalized distance of every pixel center from the image center

    Returns:
        Float array (H, W) in [0, 1)
    """
    ys = np.arange(height, dtype=np.float64) + 0.5 - height / 2.0
    xs = np.arange(width, dtype=np.float64) + 0.5 - width / 2.0
    return np.hypot(xs[None, :], ys[:, None]) / np.hypot(width / 2.0, height / 2.0)


def pixel_features(rgb: np.ndarray, background: tuple[float, float, float]):
    """
    Color features used by the classifier

    Args:
        rgb: Float array (..., 3)
        background: Background color estimate

    Returns:
        (distance_to_background, brightness, saturation)
    """
    distance = np.sqrt(np.sum((rgb - np.asarray(background)) ** 2, axis=-1))
    brightness = rgb.mean(axis=-1)

    mx = rgb.max(axis=-1)
    mn = rgb.min(axis=-1)
    saturation = np.divide(mx - mn, mx, out=np.zeros_like(mx), where=mx > 0)

    return distance, brightness, saturation


def is_background(
    distance: np.ndarray,
    brightness: np.ndarray,
    saturation: np.ndarray,
    ratio: np.ndarray,
    ctx: ClassifierContext,
) -> np.ndarray:
    """
    Background decision for unprotected pixels

    The similarity threshold ramps from max_threshold near the protected
    center down to base_threshold at the corners.
    """
    protection = 1.0 - ratio
    threshold = ctx.base_threshold + (ctx.max_threshold - ctx.base_threshold) * protection

    similar = distance < threshold
    bright_flat = (
        (brightness > ctx.bright_threshold)
        & (saturation < ctx.saturation_threshold)
        & (ratio > ctx.bright_min_ratio)
    )
    near_corner = (ratio > ctx.corner_ratio) & (distance < ctx.corner_distance)

    return similar | bright_flat | near_corner


def classify(image: np.ndarray, ctx: ClassifierContext) -> np.ndarray:
    """
    Classify every pixel as kept (255) or removed (0)

    Pixels inside the protect radius are always kept.

    Args:
        image: RGB or RGBA image (H, W, C)
        ctx: Classifier context

    Returns:
        Binary mask (255 = foreground, 0 = background)
    """
    h, w = image.shape[:2]
    rgb = image[..., :3].astype(np.float64)
    ratio = center_ratio_map(h, w)

    distance, brightness, saturation = pixel_features(rgb, ctx.background)

    protected = ratio <= ctx.protect_radius
    background = is_background(distance, brightness, saturation, ratio, ctx)
    keep = protected | ~background

    return np.where(keep, 255, 0).astype(np.uint8)


def classify_foreground(
    image: np.ndarray,
    sample: BackgroundSample,
    config: PipelineConfig,
    logger: PipelineLogger,
) -> np.ndarray:
    """
    Stage 2 entry point: classify pixels and mirror the mask into alpha

    Args:
        image: RGBA pixel buffer (H, W, 4), alpha channel is overwritten
        sample: Background estimate from Stage 1
        config: Pipeline configuration
        logger: Logger instance

    Returns:
        Binary mask (255 = foreground, 0 = background)
    """
    logger.log_info("Stage 2: Classifying foreground...")

    h, w = image.shape[:2]
    ctx = ClassifierContext.build(w, h, sample, config)
    mask = classify(image, ctx)
    image[..., 3] = mask

    kept = int(np.count_nonzero(mask))
    protected = int(np.count_nonzero(center_ratio_map(h, w) <= ctx.protect_radius))

    logger.log_stage(
        "s2_foreground_classification",
        method="color_distance + center_protection",
        protect_radius=ctx.protect_radius,
        thresholds={
            "base": ctx.base_threshold,
            "max": ctx.max_threshold,
            "bright": ctx.bright_threshold,
            "saturation": ctx.saturation_threshold,
            "corner_distance": ctx.corner_distance,
        },
        protected_pixels=protected,
        kept_pixels=kept,
        kept_ratio=kept / mask.size,
    )

    logger.log_info(f"  Kept {kept:,}/{mask.size:,} pixels ({kept / mask.size:.1%})")

    return mask
