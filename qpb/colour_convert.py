# qpb/colour_convert.py
from __future__ import annotations

"""
Colour conversions (sRGB <-> CIE Lab, D65).

Exports:
  rgb_to_linear(srgb)
  linear_to_rgb(linear)
  rgb_to_lab(rgb)
  lab_to_rgb(lab)
  rgb_int_to_lab(packed)
  lab_to_rgb_int(lab)
  rgb_to_lab_threaded(rgb, workers)

All Lab values are float64 so that lab_to_rgb(rgb_to_lab(c)) == c holds for
every 24-bit colour.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .core_types import Lab, PackedRGB, U8Image, pack_rgb, unpack_rgb


# Linear RGB -> XYZ (D65)
_RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)

# XYZ -> linear RGB (D65)
_XYZ_TO_RGB = np.array(
    [
        [3.2404542, -1.5371385, -0.4985314],
        [-0.9692660, 1.8760108, 0.0415560],
        [0.0556434, -0.2040259, 1.0572252],
    ],
    dtype=np.float64,
)

# Reference white (D65)
_WHITE = np.array([0.95047, 1.00000, 1.08883], dtype=np.float64)

_E = 216.0 / 24389.0
_K = 24389.0 / 27.0


# sRGB <-> linear


def rgb_to_linear(srgb: np.ndarray) -> np.ndarray:
    """
    Convert sRGB (non-linear 0..1) to linear RGB (0..1). Vectorised.
    Returns float64 with shape preserved.
    """
    srgb_f = np.asarray(srgb, dtype=np.float64)
    return np.where(
        srgb_f <= 0.04045, srgb_f / 12.92, ((srgb_f + 0.055) / 1.055) ** 2.4
    )


def linear_to_rgb(linear: np.ndarray) -> np.ndarray:
    """
    Convert linear RGB to sRGB (non-linear). Not clamped: callers clamp.
    Negative inputs take the linear segment.
    """
    lin = np.asarray(linear, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        return np.where(
            lin <= 0.0031308, 12.92 * lin, 1.055 * np.power(lin, 1.0 / 2.4) - 0.055
        )


# sRGB <-> Lab


def rgb_to_lab(rgb: np.ndarray) -> Lab:
    """
    sRGB to CIE Lab (D65).
    Integer input is read as 0..255, float input as 0..1. Preserves shape (...,3).
    Returns float64.
    """
    arr = np.asarray(rgb)
    rgb_f = arr.astype(np.float64)
    if np.issubdtype(arr.dtype, np.integer):
        rgb_f = rgb_f / 255.0

    linear = rgb_to_linear(rgb_f)
    xyz = linear @ _RGB_TO_XYZ.T
    t = xyz / _WHITE

    f = np.where(t > _E, np.cbrt(t), (_K * t + 16.0) / 116.0)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]

    out = np.empty(rgb_f.shape, dtype=np.float64)
    out[..., 0] = 116.0 * fy - 16.0
    out[..., 1] = 500.0 * (fx - fy)
    out[..., 2] = 200.0 * (fy - fz)
    return out


def lab_to_rgb(lab: Lab) -> U8Image:
    """
    CIE Lab (D65) to sRGB uint8. Preserves shape (...,3).
    Out-of-gamut channels are clamped to [0,1] before quantisation.
    """
    lab_f = np.asarray(lab, dtype=np.float64)
    fy = (lab_f[..., 0] + 16.0) / 116.0
    fx = lab_f[..., 1] / 500.0 + fy
    fz = fy - lab_f[..., 2] / 200.0
    f = np.stack([fx, fy, fz], axis=-1)

    f3 = f * f * f
    t = np.where(f3 > _E, f3, (116.0 * f - 16.0) / _K)
    xyz = t * _WHITE

    srgb = linear_to_rgb(xyz @ _XYZ_TO_RGB.T)
    srgb = np.clip(srgb, 0.0, 1.0)
    return np.floor(srgb * 255.0 + 0.5).astype(np.uint8)


def rgb_int_to_lab(packed: PackedRGB | int) -> Lab:
    """Packed 0xRRGGBB (scalar or array) to Lab (...,3)."""
    return rgb_to_lab(unpack_rgb(packed))


def lab_to_rgb_int(lab: Lab) -> PackedRGB:
    """Lab (...,3) to packed 0xRRGGBB uint32 (...)."""
    return pack_rgb(lab_to_rgb(lab))


# Threaded helpers


def _split_rows(height: int, parts: int) -> list[tuple[int, int]]:
    """Partition height into ~parts contiguous [start, end) row spans."""
    parts = max(1, int(parts))
    step = (height + parts - 1) // parts
    return [(i, min(i + step, height)) for i in range(0, height, step)]


def rgb_to_lab_threaded(rgb: U8Image, workers: int) -> Lab:
    """
    Threaded RGB->Lab conversion by splitting rows.

    Args:
      rgb: uint8 array [H,W,3]
      workers: number of threads; if <=1 or H<256, runs single-threaded
    Returns:
      Lab float64 array [H,W,3]
    """
    height = int(rgb.shape[0])
    if workers <= 1 or height < 256:
        return rgb_to_lab(rgb)

    chunks = _split_rows(height, workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(rgb_to_lab, rgb[s:e]) for s, e in chunks]
        parts = [f.result() for f in futures]
    return np.vstack(parts)


__all__ = [
    "rgb_to_linear",
    "linear_to_rgb",
    "rgb_to_lab",
    "lab_to_rgb",
    "rgb_int_to_lab",
    "lab_to_rgb_int",
    "rgb_to_lab_threaded",
]
