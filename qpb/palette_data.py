# qpb/palette_data.py
from __future__ import annotations

"""
Default palette views.

Exports:
  default_palette_rgb() -> U8Image [32,3]
  default_palette_lab() -> Lab [32,3]         (memoised, read-only)
  cycled_default_lab(start, count) -> Lab [count,3]
  pinned_prefix_lab(pinned) -> Lab [pinned,3]  (fresh copy per call)

The default table has 32 entries. Slots past the end wrap around to entry 0,
so a pinned prefix of up to 64 slots is always defined.
"""

from functools import lru_cache

import numpy as np

from .colour_convert import rgb_to_lab
from .constants import DEFAULT_PALETTE, PALETTE_SIZE
from .core_types import Lab, U8Image, hex_to_rgb


@lru_cache(maxsize=1)
def _default_rgb_cached() -> U8Image:
    rgbs = np.array([hex_to_rgb(hx) for hx, _ in DEFAULT_PALETTE], dtype=np.uint8)
    rgbs.setflags(write=False)
    return rgbs


@lru_cache(maxsize=1)
def _default_lab_cached() -> Lab:
    lab = rgb_to_lab(_default_rgb_cached()).reshape(-1, 3)
    lab.setflags(write=False)
    return lab


def default_palette_rgb() -> U8Image:
    """Default palette as a read-only uint8 [32,3] array."""
    return _default_rgb_cached()


def default_palette_lab() -> Lab:
    """Default palette in Lab as a read-only float64 [32,3] array."""
    return _default_lab_cached()


def cycled_default_lab(start: int, count: int) -> Lab:
    """Lab rows for default slots start..start+count-1, wrapping past the table end."""
    lab = default_palette_lab()
    idx = (np.arange(start, start + count) % lab.shape[0]).astype(np.intp)
    return lab[idx].copy()


def pinned_prefix_lab(pinned: int) -> Lab:
    """
    Pinned prefix for a palette: the first `pinned` default slots in Lab.
    Each call returns a new array so bands never share storage.
    """
    if not 0 <= pinned <= PALETTE_SIZE:
        raise ValueError(f"pinned must be in [0, {PALETTE_SIZE}], got {pinned}")
    return cycled_default_lab(0, pinned)


__all__ = [
    "default_palette_rgb",
    "default_palette_lab",
    "cycled_default_lab",
    "pinned_prefix_lab",
]
