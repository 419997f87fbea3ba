"""
Heuristic Portrait Background Replacement Pipeline
"""

from .config import PipelineConfig
from .errors import ConfigError, InvalidInputError, PipelineError, UnsupportedFormatError
from .logger import PipelineLogger
from .pipeline import BackgroundReplacementPipeline, PipelineResult, replace_background

__all__ = [
    "BackgroundReplacementPipeline",
    "PipelineResult",
    "PipelineLogger",
    "PipelineConfig",
    "PipelineError",
    "InvalidInputError",
    "UnsupportedFormatError",
    "ConfigError",
    "replace_background",
]
