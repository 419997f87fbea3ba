"""
PipelineConfig: Configuration for background replacement pipeline
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigError, InvalidInputError
from .raster import parse_color

COMPONENT_METHODS: tuple[str, ...] = ("opencv", "stack")


@dataclass
class PipelineConfig:
    """Configuration for background replacement pipeline"""

    # Stage 1: Background Estimation
    corner_fraction: float = 0.15  # Side of each corner square, of min(w, h)

    # Stage 2: Classification
    protect_radius: float = 0.3  # Inner radius that is always kept
    base_threshold: float = 30.0
    max_threshold: float = 80.0
    bright_threshold: float = 180.0
    saturation_threshold: float = 0.25
    bright_min_ratio: float = 0.4
    corner_ratio: float = 0.8
    corner_distance: float = 60.0

    # Stage 3: Largest Component
    candidate_threshold: int = 16
    component_method: str = "opencv"

    # Stage 4: Morphology
    morphology_iterations: int = 1

    # Stage 5: Feathering
    blur_divisor: float = 120.0
    blur_radius: Optional[int] = None  # None = derived from image size
    blur_passes: int = 3

    # Stage 6: Compositing
    backdrop_color: tuple[int, int, int] = (255, 255, 255)

    # Input
    upscale_small_images: bool = False

    # Output
    output_path: Optional[Path] = None

    def __post_init__(self):
        if not 0.0 < self.corner_fraction <= 0.5:
            raise ConfigError(
                f"corner_fraction must be in (0, 0.5], got {self.corner_fraction}"
            )
        if not 0.0 <= self.protect_radius <= 1.0:
            raise ConfigError(
                f"protect_radius must be in [0, 1], got {self.protect_radius}"
            )
        if self.max_threshold < self.base_threshold:
            raise ConfigError(
                f"max_threshold ({self.max_threshold}) must not be below "
                f"base_threshold ({self.base_threshold})"
            )
        if not 0 <= self.candidate_threshold <= 255:
            raise ConfigError(
                f"candidate_threshold must be in [0, 255], got {self.candidate_threshold}"
            )
        if self.component_method not in COMPONENT_METHODS:
            raise ConfigError(
                f"component_method must be one of {COMPONENT_METHODS}, "
                f"got {self.component_method!r}"
            )
        if self.morphology_iterations < 0:
            raise ConfigError("morphology_iterations must be >= 0")
        if self.blur_passes < 0:
            raise ConfigError("blur_passes must be >= 0")
        if self.blur_divisor <= 0:
            raise ConfigError("blur_divisor must be > 0")
        if self.blur_radius is not None and self.blur_radius < 1:
            raise ConfigError("blur_radius must be >= 1")
        try:
            self.backdrop_color = parse_color(self.backdrop_color)
        except InvalidInputError as e:
            raise ConfigError(f"Invalid backdrop_color: {self.backdrop_color!r}") from e

    def with_overrides(self, **overrides: Any) -> "PipelineConfig":
        """Return a copy with the given fields replaced"""
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, prefix: str = "PORTRAITBG_", **overrides: Any) -> "PipelineConfig":
        """
        Build a config from environment variables

        Each field can be set as PREFIX + FIELD_NAME in upper case, e.g.
        PORTRAITBG_BLUR_PASSES=2. Explicit keyword overrides win.

        Raises:
            ConfigError: If a variable cannot be parsed for its field
        """
        defaults = cls()
        values: dict[str, Any] = {}

        for f in fields(cls):
            raw = os.getenv(prefix + f.name.upper(), "")
            raw = raw.strip().replace("\n", "").replace("\r", "")
            if not raw:
                continue
            values[f.name] = _parse_env_value(f.name, raw, getattr(defaults, f.name))

        values.update(overrides)
        return cls(**values)


def _parse_env_value(name: str, raw: str, default: Any) -> Any:
    """Convert an environment string using the type of the field's default"""
    try:
        if isinstance(default, bool):
            return raw.lower() in ("1", "true", "yes", "on")
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, tuple):
            return parse_color(raw)
        if name == "blur_radius":
            return int(raw)
        if name == "output_path":
            return Path(raw).expanduser()
        return raw
    except (ValueError, TypeError, InvalidInputError) as e:
        raise ConfigError(f"Invalid value for {name}: {raw!r} ({e})") from e
