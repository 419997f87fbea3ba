"""
Tests for Stage 1: background color estimation
"""

import numpy as np
import pytest

from portraitbg.pipeline import PipelineConfig
from portraitbg.pipeline.stages.s1_background import (
    corner_side,
    detect_background_color,
    estimate_background_color,
    sample_corners,
)


class TestCornerSide:
    def test_fraction_of_shorter_side(self):
        assert corner_side(200, 100, 0.15) == 15

    def test_minimum_one_pixel(self):
        assert corner_side(4, 4, 0.15) == 1
        assert corner_side(1, 1, 0.15) == 1

    def test_clamped_to_image(self):
        assert corner_side(3, 3, 0.5) == 1
        assert corner_side(2, 10, 0.5) == 1


class TestEstimateBackground:
    def test_uniform_image(self):
        img = np.full((10, 10, 3), (10, 20, 30), dtype=np.uint8)
        sample = estimate_background_color(img)

        assert sample.rgb == pytest.approx((10.0, 20.0, 30.0))
        assert sample.count == 4

    def test_only_corners_are_sampled(self):
        """Subject pixels outside the corner squares do not affect the estimate"""
        img = np.zeros((20, 20, 3), dtype=np.uint8)
        img[3:17, :] = 255
        img[:, 3:17] = 255

        sample = estimate_background_color(img, fraction=0.15)

        assert sample.rgb == (0.0, 0.0, 0.0)
        assert sample.count == 4 * 3 * 3

    def test_average_of_four_corners(self):
        img = np.zeros((10, 10, 3), dtype=np.uint8)
        img[0, 0] = (40, 0, 0)
        img[0, 9] = (0, 40, 0)
        img[9, 0] = (0, 0, 40)
        img[9, 9] = (40, 40, 40)

        sample = estimate_background_color(img, fraction=0.1)

        assert sample.rgb == pytest.approx((20.0, 20.0, 20.0))

    def test_single_pixel_image(self):
        img = np.array([[[7, 8, 9, 255]]], dtype=np.uint8)
        sample = estimate_background_color(img)

        assert sample.rgb == pytest.approx((7.0, 8.0, 9.0))

    def test_alpha_channel_ignored(self):
        img = np.zeros((10, 10, 4), dtype=np.uint8)
        img[..., 3] = 17
        samples = sample_corners(img)

        assert samples.shape[1] == 3
        assert not samples.any()


class TestDetectBackgroundColor:
    def test_logs_stage(self, logger, portrait):
        sample = detect_background_color(portrait, PipelineConfig(), logger)

        record = logger.current_image["stages"][0]
        assert record["stage"] == "s1_background_estimation"
        assert record["corner_side"] == 18
        assert record["samples"] == sample.count == 4 * 18 * 18
        assert sample.rgb == pytest.approx((40.0, 160.0, 60.0))
