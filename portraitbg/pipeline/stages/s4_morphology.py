"""
Stage 4: Morphological Opening + Closing
"""

import cv2
import numpy as np

from ..config import PipelineConfig
from ..logger import PipelineLogger

KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))


def binarize(mask: np.ndarray, threshold: int = 128) -> np.ndarray:
    """Threshold a mask into strict 0/255"""
    return np.where(mask >= threshold, 255, 0).astype(np.uint8)


def erode(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """
    3x3 erosion: a pixel survives only if its whole neighborhood is set

    Reads outside the image clamp to the nearest edge pixel.
    """
    if iterations <= 0:
        return mask.copy()
    return cv2.erode(mask, KERNEL, iterations=iterations, borderType=cv2.BORDER_REPLICATE)


def dilate(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """3x3 dilation: a pixel is set if any neighborhood pixel is set"""
    if iterations <= 0:
        return mask.copy()
    return cv2.dilate(mask, KERNEL, iterations=iterations, borderType=cv2.BORDER_REPLICATE)


def open_mask(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """Erode then dilate: strips thin protrusions and isolated pixels"""
    return dilate(erode(mask, iterations), iterations)


def close_mask(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """Dilate then erode: fills small interior holes"""
    return erode(dilate(mask, iterations), iterations)


def refine_mask(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """
    Binarize, then apply opening followed by closing

    Args:
        mask: Mask (H, W) on the 0-255 scale
        iterations: Erode/dilate passes per operation (0 = threshold only)

    Returns:
        Refined binary mask (255 = foreground)
    """
    return close_mask(open_mask(binarize(mask), iterations), iterations)


def morphology_cleanup(
    mask: np.ndarray, config: PipelineConfig, logger: PipelineLogger
) -> np.ndarray:
    """
    Stage 4 entry point: smooth the mask boundary

    Thin features such as stray hair strands can be eroded away; raising
    the iteration count trades more of that detail for fewer artifacts.

    Args:
        mask: Largest-component mask from Stage 3
        config: Pipeline configuration
        logger: Logger instance

    Returns:
        Refined binary mask
    """
    logger.log_info("Stage 4: Refining mask (opening + closing)...")

    before = int(np.count_nonzero(mask >= 128))
    refined = refine_mask(mask, config.morphology_iterations)
    after = int(np.count_nonzero(refined))

    logger.log_stage(
        "s4_morphology",
        method="opening + closing",
        kernel="MORPH_RECT (3x3)",
        border="replicate",
        iterations=config.morphology_iterations,
        foreground_before=before,
        foreground_after=after,
    )

    logger.log_info(f"  Foreground {before:,} -> {after:,} pixels")

    return refined
