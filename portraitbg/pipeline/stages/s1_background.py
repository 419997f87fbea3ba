"""
Stage 1: Background Color Estimation from Corner Samples
"""

from dataclasses import dataclass

import numpy as np

from ..config import PipelineConfig
from ..logger import PipelineLogger


@dataclass(frozen=True)
class BackgroundSample:
    """Averaged background color and the number of pixels it came from"""

    r: float
    g: float
    b: float
    count: int

    @property
    def rgb(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)


def corner_side(width: int, height: int, fraction: float) -> int:
    """Side length of each corner sampling square"""
    side = int(fraction * min(width, height) + 1e-9)
    return max(1, min(side, width, height))


def sample_corners(image: np.ndarray, fraction: float = 0.15) -> np.ndarray:
    """
    Sample the four corner squares of the image

    Squares may overlap on small images; each square contributes all of
    its pixels.

    Args:
        image: RGB or RGBA image (H, W, C)
        fraction: Square side as a fraction of min(width, height)

    Returns:
        Array of RGB samples (N, 3)
    """
    h, w = image.shape[:2]
    side = corner_side(w, h, fraction)

    corners = [
        image[0:side, 0:side, :3],
        image[0:side, w - side : w, :3],
        image[h - side : h, 0:side, :3],
        image[h - side : h, w - side : w, :3],
    ]

    return np.concatenate([c.reshape(-1, 3) for c in corners]).astype(np.float64)


def estimate_background_color(
    image: np.ndarray, fraction: float = 0.15
) -> BackgroundSample:
    """
    Average the corner samples into a single background color

    Corners are the region least likely to contain the subject of a
    centered portrait.
    """
    samples = sample_corners(image, fraction)
    r, g, b = samples.sum(axis=0) / len(samples)
    return BackgroundSample(float(r), float(g), float(b), int(len(samples)))


def detect_background_color(
    image: np.ndarray, config: PipelineConfig, logger: PipelineLogger
) -> BackgroundSample:
    """
    Stage 1 entry point: estimate background color and log the result

    Args:
        image: RGBA pixel buffer (H, W, 4)
        config: Pipeline configuration
        logger: Logger instance

    Returns:
        BackgroundSample
    """
    logger.log_info("Stage 1: Estimating background color...")

    h, w = image.shape[:2]
    sample = estimate_background_color(image, config.corner_fraction)

    logger.log_stage(
        "s1_background_estimation",
        method="corner_average",
        corner_fraction=config.corner_fraction,
        corner_side=corner_side(w, h, config.corner_fraction),
        samples=sample.count,
        background_rgb=[round(c, 2) for c in sample.rgb],
    )

    logger.log_info(
        f"  Background: RGB({sample.r:.1f}, {sample.g:.1f}, {sample.b:.1f}) "
        f"from {sample.count:,} corner pixels"
    )

    return sample
