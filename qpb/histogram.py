# qpb/histogram.py
from __future__ import annotations

"""
Per-row Lab histograms.

Each row becomes one 768-length vector: 256 bins for L, then 256 for a,
then 256 for b. Counts are raw (not normalised).
"""

import numpy as np
from numpy.typing import NDArray

from .constants import HISTOGRAM_BINS, HISTOGRAM_CHANNELS
from .core_types import Histograms, Lab


def bin_indices(lab: Lab) -> NDArray[np.int64]:
    """
    Bin index per channel for Lab pixels (...,3).

    L is scaled from [0,100], a and b from [-128,127], all onto [0,255]
    with floor, then clamped.
    """
    last = HISTOGRAM_BINS - 1
    lab_f = np.asarray(lab, dtype=np.float64)
    bins = np.empty(lab_f.shape, dtype=np.int64)
    bins[..., 0] = np.floor(lab_f[..., 0] / 100.0 * last)
    bins[..., 1] = np.floor((lab_f[..., 1] + 128.0) / 255.0 * last)
    bins[..., 2] = np.floor((lab_f[..., 2] + 128.0) / 255.0 * last)
    return np.clip(bins, 0, last)


def row_histograms(lab: Lab) -> Histograms:
    """
    Raw per-row histograms for a Lab raster [H,W,3].

    Returns:
      float64 array [H, 768]
    """
    height = int(lab.shape[0])
    n_features = HISTOGRAM_BINS * HISTOGRAM_CHANNELS
    hist = np.zeros((height, n_features), dtype=np.float64)
    if height == 0:
        return hist

    bins = bin_indices(lab)  # [H,W,3]
    offsets = np.arange(HISTOGRAM_CHANNELS, dtype=np.int64) * HISTOGRAM_BINS
    flat_feature = (bins + offsets).reshape(height, -1)  # [H, W*3]
    rows = np.repeat(np.arange(height), flat_feature.shape[1])
    np.add.at(hist, (rows, flat_feature.ravel()), 1.0)
    return hist


__all__ = ["bin_indices", "row_histograms"]
