"""
Shared fixtures for pipeline tests
"""

import numpy as np
import pytest

from portraitbg.pipeline import PipelineLogger

BG_COLOR = (40, 160, 60)
FG_COLOR = (200, 30, 30)


def make_portrait(
    height: int = 120,
    width: int = 120,
    bg=BG_COLOR,
    fg=FG_COLOR,
    margin: int = 30,
) -> np.ndarray:
    """Uniform background with a centered rectangular subject (RGB)"""
    img = np.empty((height, width, 3), dtype=np.uint8)
    img[:, :] = bg
    img[margin : height - margin, margin : width - margin] = fg
    return img


@pytest.fixture
def logger():
    """In-memory logger with an open image record"""
    log = PipelineLogger()
    log.start_image("test")
    return log


@pytest.fixture
def portrait():
    return make_portrait()


@pytest.fixture
def make_image():
    """Factory for synthetic portraits"""
    return make_portrait
