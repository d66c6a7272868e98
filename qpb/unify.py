# qpb/unify.py
from __future__ import annotations

"""
Cross-band palette unification.

One forward pass over the free (non-pinned) slots of all bands, band-major
then slot order. Each slot overwrites every later free slot that lies within
UNIFY_EPSILON_SCALE * epsilon (squared Lab distance) with its own value, so
near-identical colours end up bit-identical across bands.

Inputs are not modified; new arrays are returned.
"""

from typing import List, NamedTuple, Sequence

import numpy as np

from .constants import DEFAULT_EPSILON, UNIFY_EPSILON_SCALE
from .core_types import Lab


class UnifyResult(NamedTuple):
    palettes: List[Lab]
    merged: int  # slots overwritten with an earlier slot's value


def unify_palettes_with_stats(
    palettes: Sequence[Lab], pinned: int, epsilon: float = DEFAULT_EPSILON
) -> UnifyResult:
    out = [np.array(p, dtype=np.float64, copy=True) for p in palettes]
    threshold = UNIFY_EPSILON_SCALE * epsilon
    merged = 0

    for i, source_palette in enumerate(out):
        for j in range(pinned, source_palette.shape[0]):
            colour = source_palette[j].copy()
            for k in range(i, len(out)):
                target = out[k]
                start = j + 1 if k == i else pinned
                if start >= target.shape[0]:
                    continue
                diff = target[start:] - colour
                close = np.einsum("ij,ij->i", diff, diff) < threshold
                if not np.any(close):
                    continue
                slots = np.flatnonzero(close) + start
                # Only count slots whose value actually changes.
                merged += int(np.count_nonzero(np.any(target[slots] != colour, axis=1)))
                target[slots] = colour

    return UnifyResult(out, merged)


def unify_palettes(
    palettes: Sequence[Lab], pinned: int, epsilon: float = DEFAULT_EPSILON
) -> List[Lab]:
    """Return unified copies of `palettes`; slots [0, pinned) are never touched."""
    return unify_palettes_with_stats(palettes, pinned, epsilon).palettes


__all__ = ["UnifyResult", "unify_palettes", "unify_palettes_with_stats"]
