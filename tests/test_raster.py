"""
Tests for raster decoding, encoding and color parsing
"""

import io

import numpy as np
import pytest
from PIL import Image

from portraitbg.pipeline import InvalidInputError, UnsupportedFormatError
from portraitbg.pipeline.raster import (
    color_name,
    encode_png,
    load_image,
    parse_color,
    to_data_url,
    to_pixel_buffer,
    upscale_if_small,
    validate_pixel_buffer,
)


def _png_bytes(mode="RGB", size=(6, 4), color=(10, 20, 30)):
    out = io.BytesIO()
    Image.new(mode, size, color).save(out, "PNG")
    return out.getvalue()


class TestPixelBuffer:
    def test_rgb_gets_opaque_alpha(self):
        rgb = np.full((3, 5, 3), 9, dtype=np.uint8)

        buf = to_pixel_buffer(rgb)

        assert buf.shape == (3, 5, 4)
        assert np.all(buf[..., 3] == 255)
        assert np.all(buf[..., :3] == 9)

    def test_rgba_is_copied(self):
        rgba = np.zeros((2, 2, 4), dtype=np.uint8)

        buf = to_pixel_buffer(rgba)
        buf[0, 0, 0] = 99

        assert rgba[0, 0, 0] == 0

    @pytest.mark.parametrize(
        "array",
        [
            np.zeros((0, 5, 3), dtype=np.uint8),
            np.zeros((5, 0, 4), dtype=np.uint8),
            np.zeros((5, 5), dtype=np.uint8),
            np.zeros((5, 5, 2), dtype=np.uint8),
            np.zeros((5, 5, 3), dtype=np.float32),
        ],
    )
    def test_invalid_arrays(self, array):
        with pytest.raises(InvalidInputError):
            to_pixel_buffer(array)

    def test_validate_rejects_rgb(self):
        with pytest.raises(InvalidInputError):
            validate_pixel_buffer(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_validate_rejects_non_array(self):
        with pytest.raises(InvalidInputError):
            validate_pixel_buffer([[0, 0, 0, 0]])


class TestLoadImage:
    def test_from_bytes(self):
        buf = load_image(_png_bytes())

        assert buf.shape == (4, 6, 4)
        assert buf[0, 0].tolist() == [10, 20, 30, 255]

    def test_from_path(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(_png_bytes(size=(3, 7)))

        assert load_image(path).shape == (7, 3, 4)
        assert load_image(str(path)).shape == (7, 3, 4)

    def test_from_data_url(self):
        buf = np.zeros((4, 4, 4), dtype=np.uint8)
        buf[..., 0] = 200
        buf[..., 3] = 255

        assert np.array_equal(load_image(to_data_url(buf)), buf)

    def test_from_pil_image(self):
        img = Image.new("L", (2, 3), 128)

        buf = load_image(img)

        assert buf.shape == (3, 2, 4)
        assert buf[0, 0].tolist() == [128, 128, 128, 255]

    def test_preserves_source_alpha(self):
        buf = load_image(_png_bytes("RGBA", color=(1, 2, 3, 40)))

        assert buf[0, 0, 3] == 40

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "nope.png")

    def test_garbage_bytes(self):
        with pytest.raises(UnsupportedFormatError):
            load_image(b"definitely not an image")

    def test_bad_data_url(self):
        with pytest.raises(UnsupportedFormatError):
            load_image("data:image/png;base64")

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"\xff\xd8\xff\xe0 truncated")

        with pytest.raises(UnsupportedFormatError):
            load_image(path)


class TestEncode:
    def test_opaque_encodes_rgb(self):
        buf = np.full((3, 3, 4), 255, dtype=np.uint8)

        with Image.open(io.BytesIO(encode_png(buf))) as img:
            assert img.format == "PNG"
            assert img.mode == "RGB"
            assert img.size == (3, 3)

    def test_transparent_encodes_rgba(self):
        buf = np.zeros((2, 2, 4), dtype=np.uint8)

        with Image.open(io.BytesIO(encode_png(buf))) as img:
            assert img.mode == "RGBA"

    def test_data_url_prefix(self):
        buf = np.full((1, 1, 4), 255, dtype=np.uint8)

        assert to_data_url(buf).startswith("data:image/png;base64,")


class TestParseColor:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("blue", (30, 64, 175)),
            ("White", (255, 255, 255)),
            ("#6b7280", (107, 114, 128)),
            ("DC2626", (220, 38, 38)),
            ("#fff", (255, 255, 255)),
            ((1, 2, 3), (1, 2, 3)),
            ([0, 128, 255], (0, 128, 255)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_color(value) == expected

    @pytest.mark.parametrize("value", ["purple-ish", "#12345", (256, 0, 0), (1, 2), None])
    def test_invalid(self, value):
        with pytest.raises(InvalidInputError):
            parse_color(value)

    def test_color_name(self):
        assert color_name((255, 255, 255)) == "white"
        assert color_name((1, 2, 255)) == "0102ff"


class TestUpscale:
    def test_small_image_upscaled(self):
        buf = np.zeros((40, 50, 4), dtype=np.uint8)

        out = upscale_if_small(buf)

        assert out.shape == (800, 1000, 4)

    def test_large_enough_unchanged(self):
        buf = np.zeros((400, 500, 4), dtype=np.uint8)

        assert upscale_if_small(buf) is buf

    def test_one_side_at_target_unchanged(self):
        buf = np.zeros((100, 900, 4), dtype=np.uint8)

        assert upscale_if_small(buf) is buf
