"""
Pipeline Stages
"""

from .s1_background import BackgroundSample, detect_background_color
from .s2_classifier import classify_foreground
from .s3_components import filter_components
from .s4_morphology import morphology_cleanup
from .s5_feather import feather_mask, resolve_radius
from .s6_composite import composite_image

__all__ = [
    "BackgroundSample",
    "detect_background_color",
    "classify_foreground",
    "filter_components",
    "morphology_cleanup",
    "feather_mask",
    "resolve_radius",
    "composite_image",
]
