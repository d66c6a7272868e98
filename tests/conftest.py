"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Tuple

import numpy as np
import pytest
from PIL import Image


def solid_image(rgb: Tuple[int, int, int], height: int, width: int) -> np.ndarray:
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[...] = rgb
    return img


def red_blue_rows() -> np.ndarray:
    """8x2: top row pure red, bottom row pure blue."""
    img = np.zeros((2, 8, 3), dtype=np.uint8)
    img[0] = (255, 0, 0)
    img[1] = (0, 0, 255)
    return img


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def black_4x4() -> np.ndarray:
    return solid_image((0, 0, 0), 4, 4)


@pytest.fixture
def red_blue_8x2() -> np.ndarray:
    return red_blue_rows()


@pytest.fixture
def striped_image() -> np.ndarray:
    """12x10 image with three visually distinct horizontal stripes plus noise rows."""
    gen = np.random.default_rng(7)
    img = np.zeros((12, 10, 3), dtype=np.uint8)
    img[0:3] = (200, 30, 30)
    img[3:6] = (20, 160, 40)
    img[6:9] = (30, 40, 190)
    img[9:12] = gen.integers(0, 256, size=(3, 10, 3), dtype=np.uint8)
    return img


@pytest.fixture
def write_png(tmp_path: Path) -> Callable[[str, np.ndarray], Path]:
    def _write(name: str, rgb: np.ndarray) -> Path:
        path = tmp_path / name
        Image.fromarray(rgb).save(path)
        return path

    return _write
