"""Tests for Pillow-backed image I/O."""

import numpy as np
import pytest
from PIL import Image

from qpb.core_types import InvalidInputError
from qpb.image_io import is_image_file, load_image_rgb, save_image_rgb


def test_transparent_pixels_flatten_to_black(tmp_path):
    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    rgba[0, 0] = (200, 100, 50, 255)
    rgba[0, 1] = (200, 100, 50, 0)
    rgba[1] = (255, 255, 255, 0)
    path = tmp_path / "alpha.png"
    Image.fromarray(rgba, "RGBA").save(path)

    rgb = load_image_rgb(path)
    assert rgb.shape == (2, 2, 3)
    assert rgb.dtype == np.uint8
    np.testing.assert_array_equal(rgb[0, 0], [200, 100, 50])
    np.testing.assert_array_equal(rgb[0, 1], [0, 0, 0])
    np.testing.assert_array_equal(rgb[1], np.zeros((2, 3)))


def test_palette_and_grey_images_load_as_rgb(tmp_path):
    grey = tmp_path / "grey.png"
    Image.new("L", (3, 2), 128).save(grey)
    rgb = load_image_rgb(grey)
    assert rgb.shape == (2, 3, 3)
    assert np.all(rgb == 128)


def test_not_an_image(tmp_path):
    path = tmp_path / "notes.png"
    path.write_text("definitely not a png")
    assert not is_image_file(path)
    with pytest.raises(InvalidInputError):
        load_image_rgb(path)


def test_missing_file(tmp_path):
    with pytest.raises(InvalidInputError):
        load_image_rgb(tmp_path / "nope.png")


def test_save_forces_png_and_loads_back(tmp_path, striped_image):
    out = save_image_rgb(tmp_path / "shot.bmp", striped_image)
    assert out.suffix == ".png"
    assert is_image_file(out)
    np.testing.assert_array_equal(load_image_rgb(out), striped_image)
