"""
BackgroundReplacementPipeline: Main orchestration class
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import numpy as np

from .config import PipelineConfig
from .errors import PipelineError
from .logger import PipelineLogger
from .raster import (
    ImageSource,
    color_name,
    encode_png,
    load_image,
    parse_color,
    upscale_if_small,
)
from .stages import (
    BackgroundSample,
    classify_foreground,
    composite_image,
    detect_background_color,
    feather_mask,
    filter_components,
    morphology_cleanup,
    resolve_radius,
)


@dataclass
class PipelineResult:
    """Output of one pipeline run"""

    image: np.ndarray  # Opaque RGBA composite (H, W, 4)
    alpha: np.ndarray  # Feathered alpha (H, W) uint8
    mask: np.ndarray  # Refined binary mask (H, W)
    background: BackgroundSample
    backdrop: tuple[int, int, int]
    degenerate: bool = False
    stats: dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> tuple[int, int]:
        return (self.image.shape[1], self.image.shape[0])

    def to_png(self) -> bytes:
        return encode_png(self.image)


class BackgroundReplacementPipeline:
    """
    Heuristic background replacement pipeline for portraits

    Stages:
    1. Background Color Estimation (corner average)
    2. Foreground Classification (color distance + center protection)
    3. Largest Connected Component
    4. Morphological Opening + Closing
    5. Alpha Feathering (repeated box blur)
    6. Compositing over a solid backdrop

    Every run works on its own copy of the input; the instance holds no
    per-image state, so one pipeline can serve many images.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        logger: Optional[PipelineLogger] = None,
    ):
        self.config = config or PipelineConfig()
        self.logger = logger or PipelineLogger()

    def run(
        self, source: ImageSource, backdrop=None, label: str = "<memory>"
    ) -> PipelineResult:
        """
        Replace the background of one in-memory image

        Args:
            source: Pixel array, PIL image, encoded bytes, data URL or path
            backdrop: Backdrop color, defaults to config.backdrop_color
            label: Name recorded in the stage log

        Returns:
            PipelineResult

        Raises:
            InvalidInputError: If the image or backdrop is invalid
            UnsupportedFormatError: If the image cannot be decoded
            PipelineError: If a stage fails unexpectedly
        """
        # Validate everything before any stage runs
        image = load_image(source)
        color = parse_color(backdrop if backdrop is not None else self.config.backdrop_color)

        self.logger.start_image(label)
        try:
            result = self._run_stages(image, color)
        except Exception as e:
            self.logger.log_error(f"Pipeline failed: {e}", exc_info=True)
            self.logger.save_image_log()
            if isinstance(e, PipelineError):
                raise
            raise PipelineError(f"Background replacement failed: {e}") from e

        self.logger.save_image_log()
        return result

    def _run_stages(
        self, image: np.ndarray, backdrop: tuple[int, int, int]
    ) -> PipelineResult:
        if self.config.upscale_small_images:
            original = image.shape[:2]
            image = upscale_if_small(image)
            if image.shape[:2] != original:
                self.logger.log_info(
                    f"  Upscaled {original[1]}x{original[0]} → {image.shape[1]}x{image.shape[0]}"
                )

        h, w = image.shape[:2]
        self.logger.log_info(f"  Image size: {w}x{h}")

        # Stage 1: Estimate background color
        sample = detect_background_color(image, self.config, self.logger)

        # Stage 2: Classify (writes the mask into the alpha channel)
        classified = classify_foreground(image, sample, self.config, self.logger)

        # Stage 3: Largest component
        component = filter_components(classified, self.config, self.logger)

        # Stage 4: Morphology
        refined = morphology_cleanup(component, self.config, self.logger)

        degenerate = not np.any(refined)
        if degenerate:
            self.logger.log_warning(
                "No foreground survived; output will be backdrop only. "
                "Try lowering the similarity thresholds."
            )

        # Stage 5: Feather
        alpha = feather_mask(refined, self.config, self.logger)
        image[..., 3] = alpha

        # Stage 6: Composite
        composite = composite_image(image, backdrop, self.logger)

        stats = {
            "classified_pixels": int(np.count_nonzero(classified)),
            "component_pixels": int(np.count_nonzero(component)),
            "refined_pixels": int(np.count_nonzero(refined)),
            "blur_radius": resolve_radius(w, h, self.config),
        }

        return PipelineResult(
            image=composite,
            alpha=alpha,
            mask=refined,
            background=sample,
            backdrop=backdrop,
            degenerate=degenerate,
            stats=stats,
        )

    def process(
        self, input_path: Path, output_path: Optional[Path] = None, backdrop=None
    ) -> Path:
        """
        Process a single image file and save the result as PNG

        Args:
            input_path: Path to input image
            output_path: Explicit output path (overrides config.output_path)
            backdrop: Backdrop color, defaults to config.backdrop_color

        Returns:
            Path to output image

        Raises:
            FileNotFoundError: If input doesn't exist
            PipelineError: If processing fails
        """
        input_path = Path(input_path)
        if not input_path.exists():
            raise FileNotFoundError(f"Input image not found: {input_path}")

        self.logger.log_info(f"Processing: {input_path}")

        result = self.run(input_path, backdrop=backdrop, label=str(input_path))

        target = self._compute_output_path(input_path, output_path, result.backdrop)
        target.write_bytes(result.to_png())
        self.logger.log_info(f"  Saved → {target}")

        return target

    def _compute_output_path(
        self,
        input_path: Path,
        output_path: Optional[Path],
        backdrop: tuple[int, int, int],
    ) -> Path:
        """
        Compute output path

        Default: same directory, <stem>_<backdrop>.png
        """
        if output_path is not None:
            return Path(output_path)
        if self.config.output_path is not None:
            return self.config.output_path

        return input_path.with_name(f"{input_path.stem}_{color_name(backdrop)}.png")


def replace_background(
    source: ImageSource, backdrop="white", **overrides: Any
) -> np.ndarray:
    """
    Replace the background of an image in one call

    Args:
        source: Anything BackgroundReplacementPipeline.run accepts
        backdrop: Backdrop color
        **overrides: PipelineConfig fields

    Returns:
        Opaque RGBA composite (H, W, 4)
    """
    pipeline = BackgroundReplacementPipeline(config=PipelineConfig(**overrides))
    return pipeline.run(source, backdrop=backdrop).image
