"""
Stage 3: Largest Connected Component Filter
"""

from typing import Optional

import cv2
import numpy as np

from ..config import PipelineConfig
from ..logger import PipelineLogger


def _flood_fill(
    candidate: list,
    visited: bytearray,
    seed: int,
    width: int,
    stack: list,
    region: Optional[list] = None,
) -> int:
    """
    4-connected flood fill over a flattened candidate grid

    Uses an explicit stack of pixel indices instead of recursion so large
    regions cannot overflow the interpreter stack. Pixels are marked
    visited when pushed, so each index enters the stack at most once.

    Returns:
        Region size in pixels
    """
    total = len(candidate)
    stack.clear()
    stack.append(seed)
    visited[seed] = 1
    size = 0

    while stack:
        i = stack.pop()
        size += 1
        if region is not None:
            region.append(i)

        x = i % width
        if x > 0 and candidate[i - 1] and not visited[i - 1]:
            visited[i - 1] = 1
            stack.append(i - 1)
        if x < width - 1 and candidate[i + 1] and not visited[i + 1]:
            visited[i + 1] = 1
            stack.append(i + 1)
        if i >= width and candidate[i - width] and not visited[i - width]:
            visited[i - width] = 1
            stack.append(i - width)
        if i + width < total and candidate[i + width] and not visited[i + width]:
            visited[i + width] = 1
            stack.append(i + width)

    return size


def largest_component_stack(candidate: np.ndarray) -> tuple[np.ndarray, int, int]:
    """
    Find the largest 4-connected component by scanning with flood fills

    The first region in raster order wins ties.

    Args:
        candidate: Boolean array (H, W)

    Returns:
        (keep mask as bool array, number of components, largest area)
    """
    h, w = candidate.shape
    flat = candidate.ravel().tolist()
    visited = bytearray(len(flat))
    stack: list = []

    best_seed = -1
    best_size = 0
    num_components = 0

    for i, is_candidate in enumerate(flat):
        if not is_candidate or visited[i]:
            continue
        num_components += 1
        size = _flood_fill(flat, visited, i, w, stack)
        if size > best_size:
            best_size = size
            best_seed = i

    keep = np.zeros(h * w, dtype=bool)
    if best_seed >= 0:
        region: list = []
        _flood_fill(flat, bytearray(len(flat)), best_seed, w, stack, region)
        keep[np.asarray(region, dtype=np.intp)] = True

    return keep.reshape(h, w), num_components, best_size


def largest_component_opencv(candidate: np.ndarray) -> tuple[np.ndarray, int, int]:
    """
    Find the largest 4-connected component with OpenCV labeling

    Ties go to the component whose first pixel comes first in raster
    order, matching the flood fill scan.

    Args:
        candidate: Boolean array (H, W)

    Returns:
        (keep mask as bool array, number of components, largest area)
    """
    num_labels, labels, stats, _ = cv2.connectedComponentsWithStats(
        candidate.astype(np.uint8), connectivity=4
    )

    if num_labels <= 1:
        return np.zeros(candidate.shape, dtype=bool), 0, 0

    # Raster index of each label's first pixel
    present, first_index = np.unique(labels.ravel(), return_index=True)
    first_seen = np.full(num_labels, labels.size, dtype=np.int64)
    first_seen[present] = first_index

    areas = stats[1:, cv2.CC_STAT_AREA]
    largest_area = int(areas.max())
    tied = np.flatnonzero(areas == largest_area) + 1  # +1 because we skipped label 0
    best = tied[np.argmin(first_seen[tied])]

    return labels == best, num_labels - 1, largest_area


def keep_largest_component(
    mask: np.ndarray, candidate_threshold: int = 16, method: str = "opencv"
) -> tuple[np.ndarray, int, int]:
    """
    Zero every pixel outside the largest connected candidate region

    Args:
        mask: Alpha-scale mask (H, W), values >= candidate_threshold are candidates
        candidate_threshold: Minimum value counted as foreground
        method: "opencv" or "stack"

    Returns:
        (filtered mask, number of components, largest area)
    """
    candidate = mask >= candidate_threshold

    if method == "stack":
        keep, num_components, largest_area = largest_component_stack(candidate)
    elif method == "opencv":
        keep, num_components, largest_area = largest_component_opencv(candidate)
    else:
        raise ValueError(f"Unknown component method: {method}")

    return np.where(keep, mask, 0).astype(np.uint8), num_components, largest_area


def filter_components(
    mask: np.ndarray, config: PipelineConfig, logger: PipelineLogger
) -> np.ndarray:
    """
    Stage 3 entry point: keep only the largest foreground region

    An all-zero result is a valid outcome (nothing survived classification).

    Args:
        mask: Binary mask from Stage 2
        config: Pipeline configuration
        logger: Logger instance

    Returns:
        Filtered mask
    """
    logger.log_info("Stage 3: Filtering connected components...")

    filtered, num_components, largest_area = keep_largest_component(
        mask, config.candidate_threshold, config.component_method
    )

    removed = int(np.count_nonzero(mask >= config.candidate_threshold)) - largest_area

    logger.log_stage(
        "s3_largest_component",
        method=config.component_method,
        connectivity=4,
        candidate_threshold=config.candidate_threshold,
        num_components=num_components,
        largest_area=largest_area,
        speckle_pixels_removed=removed,
    )

    if num_components == 0:
        logger.log_info("  No foreground components found")
    else:
        logger.log_info(
            f"  Kept largest of {num_components} components ({largest_area:,} pixels), "
            f"removed {removed:,} speckle pixels"
        )

    return filtered
