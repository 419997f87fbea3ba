"""
Tests for Stage 4: morphological opening + closing
"""

import numpy as np
import pytest

from portraitbg.pipeline import PipelineConfig
from portraitbg.pipeline.stages.s4_morphology import (
    binarize,
    close_mask,
    dilate,
    erode,
    morphology_cleanup,
    open_mask,
    refine_mask,
)


class TestPrimitives:
    def test_binarize_threshold(self):
        mask = np.array([[0, 127, 128, 255]], dtype=np.uint8)

        assert binarize(mask).tolist() == [[0, 0, 255, 255]]

    def test_erode_requires_full_neighborhood(self):
        mask = np.zeros((7, 7), dtype=np.uint8)
        mask[1:6, 1:6] = 255

        eroded = erode(mask)

        expected = np.zeros((7, 7), dtype=np.uint8)
        expected[2:5, 2:5] = 255
        assert np.array_equal(eroded, expected)

    def test_dilate_any_neighbor(self):
        mask = np.zeros((5, 5), dtype=np.uint8)
        mask[2, 2] = 255

        dilated = dilate(mask)

        expected = np.zeros((5, 5), dtype=np.uint8)
        expected[1:4, 1:4] = 255
        assert np.array_equal(dilated, expected)

    def test_border_reads_are_clamped(self):
        """A full mask does not erode from the image edges"""
        mask = np.full((6, 9), 255, dtype=np.uint8)

        assert np.array_equal(erode(mask), mask)

    def test_dilate_at_corner_stays_in_bounds(self):
        mask = np.zeros((4, 4), dtype=np.uint8)
        mask[0, 0] = 255

        dilated = dilate(mask)

        assert np.count_nonzero(dilated) == 4
        assert np.all(dilated[0:2, 0:2] == 255)

    def test_zero_iterations_copy(self):
        mask = np.zeros((3, 3), dtype=np.uint8)
        out = erode(mask, 0)

        assert out is not mask
        assert np.array_equal(out, mask)


class TestRefineMask:
    def test_isolated_pixel_removed(self):
        mask = np.zeros((9, 9), dtype=np.uint8)
        mask[4, 4] = 255

        assert not refine_mask(mask).any()

    def test_small_hole_filled(self):
        mask = np.zeros((11, 11), dtype=np.uint8)
        mask[2:9, 2:9] = 255
        mask[5, 5] = 0

        refined = refine_mask(mask)

        expected = np.zeros((11, 11), dtype=np.uint8)
        expected[2:9, 2:9] = 255
        assert np.array_equal(refined, expected)

    def test_thin_protrusion_removed(self):
        mask = np.zeros((12, 16), dtype=np.uint8)
        mask[2:10, 2:8] = 255
        mask[5, 8:15] = 255  # One pixel wide spur

        refined = refine_mask(mask)

        assert not refined[:, 9:].any()
        assert np.all(refined[2:10, 2:8] == 255)

    def test_zero_iterations_only_thresholds(self):
        mask = np.array([[0, 100, 200], [255, 50, 130]], dtype=np.uint8)

        assert np.array_equal(refine_mask(mask, 0), binarize(mask))

    def test_opening_then_closing(self):
        rng = np.random.default_rng(11)
        mask = np.where(rng.random((30, 30)) > 0.4, 255, 0).astype(np.uint8)

        assert np.array_equal(refine_mask(mask), close_mask(open_mask(mask)))

    @pytest.mark.parametrize("seed", range(5))
    def test_bounded_by_single_dilation(self, seed):
        rng = np.random.default_rng(seed)
        mask = np.where(rng.random((40, 60)) > 0.5, 255, 0).astype(np.uint8)

        refined = refine_mask(mask)
        upper = dilate(binarize(mask))

        assert np.count_nonzero(refined) <= np.count_nonzero(upper)
        assert np.all(refined <= upper)

    def test_output_binary(self):
        rng = np.random.default_rng(5)
        mask = rng.integers(0, 256, size=(20, 20), dtype=np.uint8)

        assert set(np.unique(refine_mask(mask))) <= {0, 255}


class TestMorphologyCleanup:
    def test_logs_stage(self, logger):
        mask = np.zeros((9, 9), dtype=np.uint8)
        mask[2:7, 2:7] = 255
        mask[0, 8] = 255

        refined = morphology_cleanup(mask, PipelineConfig(), logger)

        record = logger.current_image["stages"][-1]
        assert record["stage"] == "s4_morphology"
        assert record["foreground_before"] == 26
        assert record["foreground_after"] == 25
        assert refined[0, 8] == 0
