# qpb/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, errors, and lightweight helpers.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 3)
U8Bitmap = NDArray[np.uint8]  # (H, W) palette indices
Lab = NDArray[np.float64]  # (..., 3) CIE Lab
PackedRGB = NDArray[np.uint32]  # (...,) 0xRRGGBB
Histograms = NDArray[np.float64]  # (H, 768) raw counts
DistanceMatrix = NDArray[np.float64]  # (H, H)
BandAssignment = NDArray[np.int64]  # (H,) band id per row
ScanlineMap = NDArray[np.uint8]  # (H,) band id per row

ProgressHook = Callable[[str, Dict[str, object]], None]  # (stage, info)


# Errors


class ConversionError(Exception):
    """Base error for the conversion pipeline."""


class InvalidParameterError(ConversionError, ValueError):
    """A conversion parameter is out of its domain."""


class InvalidInputError(ConversionError):
    """The source image is unreadable or not an RGB raster."""


class ContainerFormatError(ConversionError):
    """A .qpb byte stream is malformed."""


# Value objects


@dataclass(frozen=True)
class BandPalette:
    """One band's palette as packed 0xRRGGBB colours."""

    id: int
    colors: PackedRGB  # shape (64,)


@dataclass(frozen=True)
class QPBContainer:
    """Final output: four band palettes, the indexed bitmap, and the scanline map."""

    version: int
    palettes: Tuple[BandPalette, ...]
    bitmap: U8Bitmap  # (H, W)
    map: ScanlineMap  # (H,)

    @property
    def width(self) -> int:
        return int(self.bitmap.shape[1])

    @property
    def height(self) -> int:
        return int(self.bitmap.shape[0])


# Small helpers


def hex_to_rgb(hex_str: str) -> RGBTuple:
    """Parse '#rgb' or '#rrggbb' (case-insensitive) into an RGB tuple."""
    s = hex_str.strip().lower()
    if not s.startswith("#"):
        raise ValueError("hex must start with '#'")
    if len(s) == 4:
        r, g, b = s[1], s[2], s[3]
        s = f"#{r}{r}{g}{g}{b}{b}"
    if len(s) != 7:
        raise ValueError("hex must be '#rrggbb' or '#rgb'")
    return (int(s[1:3], 16), int(s[3:5], 16), int(s[5:7], 16))


def pack_rgb(rgb: Union[U8Image, Sequence[int]]) -> PackedRGB:
    """uint8 (...,3) to packed 0xRRGGBB uint32 (...)."""
    arr = np.asarray(rgb, dtype=np.uint32)
    return (arr[..., 0] << 16) | (arr[..., 1] << 8) | arr[..., 2]


def unpack_rgb(packed: Union[PackedRGB, int]) -> U8Image:
    """Packed 0xRRGGBB (...) to uint8 (...,3)."""
    arr = np.asarray(packed, dtype=np.uint32)
    out = np.empty(arr.shape + (3,), dtype=np.uint8)
    out[..., 0] = (arr >> 16) & 0xFF
    out[..., 1] = (arr >> 8) & 0xFF
    out[..., 2] = arr & 0xFF
    return out


def assert_u8_image_rgb(image: np.ndarray) -> U8Image:
    """Validate a non-empty uint8 (H,W,3) image and return it typed as U8Image."""
    if not isinstance(image, np.ndarray):
        raise InvalidInputError("expected a numpy array")
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] != 3:
        raise InvalidInputError(f"expected uint8 (H,W,3) image, got {image.dtype} {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidInputError("image has no pixels")
    return image  # type: ignore[return-value]


__all__ = [
    "RGBTuple",
    "HexStr",
    "U8Image",
    "U8Bitmap",
    "Lab",
    "PackedRGB",
    "Histograms",
    "DistanceMatrix",
    "BandAssignment",
    "ScanlineMap",
    "ProgressHook",
    "ConversionError",
    "InvalidParameterError",
    "InvalidInputError",
    "ContainerFormatError",
    "BandPalette",
    "QPBContainer",
    "hex_to_rgb",
    "pack_rgb",
    "unpack_rgb",
    "assert_u8_image_rgb",
]
