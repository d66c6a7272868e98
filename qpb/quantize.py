# qpb/quantize.py
from __future__ import annotations

"""
Per-band palette quantisation.

Unique band colours are clustered into PALETTE_SIZE centroids with k-means in
Lab. The first `pinned` centroids are fixed to the default palette and never
move; the rest are seeded from the band's own colours.

Exports:
  unique_colours(lab_pixels, epsilon)
  initial_centroids(colours, pinned, rng)
  kmeans_palette(colours, centroids, pinned, epsilon, max_iterations) -> KMeansResult
  build_band_palette(lab, rows, pinned, rng, epsilon, max_iterations) -> BandPaletteResult
"""

import math
from typing import Dict, List, NamedTuple, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import DEFAULT_EPSILON, MAX_ITERATIONS, PALETTE_SIZE
from .core_types import Lab
from .palette_data import cycled_default_lab, pinned_prefix_lab
from .utils import nearest_palette_indices


class KMeansResult(NamedTuple):
    centroids: Lab  # [64,3]
    iterations: int
    converged: bool


class BandPaletteResult(NamedTuple):
    palette: Lab  # [64,3]
    colours: int  # unique colours after deduplication
    iterations: int
    converged: bool


_MIN_GRID_CELL = 1e-12

_NEIGHBOUR_OFFSETS: List[Tuple[int, int, int]] = [
    (dx, dy, dz) for dx in (-1, 0, 1) for dy in (-1, 0, 1) for dz in (-1, 0, 1)
]


def unique_colours(lab_pixels: Lab, epsilon: float = DEFAULT_EPSILON) -> Lab:
    """
    Deduplicate Lab colours in first-seen order.

    A colour whose squared distance to an already kept colour is below
    epsilon is dropped. Exact repeats are removed up front; the tolerance
    test then only looks at neighbouring grid cells of side sqrt(epsilon),
    floored at _MIN_GRID_CELL.
    """
    flat = np.asarray(lab_pixels, dtype=np.float64).reshape(-1, 3)
    if flat.shape[0] == 0:
        return np.zeros((0, 3), dtype=np.float64)

    _, first_idx = np.unique(flat, axis=0, return_index=True)
    candidates = flat[np.sort(first_idx)]

    # Floor keeps grid keys inside int64 for very small epsilon.
    cell = max(math.sqrt(epsilon), _MIN_GRID_CELL)
    cells = np.floor(candidates / cell).astype(np.int64)

    grid: Dict[Tuple[int, int, int], List[int]] = {}
    kept = np.empty_like(candidates)
    count = 0
    for colour, key_arr in zip(candidates, cells):
        kx, ky, kz = int(key_arr[0]), int(key_arr[1]), int(key_arr[2])
        duplicate = False
        for dx, dy, dz in _NEIGHBOUR_OFFSETS:
            for j in grid.get((kx + dx, ky + dy, kz + dz), ()):
                diff = kept[j] - colour
                if float(np.dot(diff, diff)) < epsilon:
                    duplicate = True
                    break
            if duplicate:
                break
        if duplicate:
            continue
        kept[count] = colour
        grid.setdefault((kx, ky, kz), []).append(count)
        count += 1
    return kept[:count].copy()


def initial_centroids(colours: Lab, pinned: int, rng: np.random.Generator) -> Lab:
    """
    Pinned default prefix followed by PALETTE_SIZE - pinned seeds drawn
    uniformly with replacement from `colours`. With no colours to draw from,
    the free slots continue the default palette instead.
    """
    prefix = pinned_prefix_lab(pinned)
    free = PALETTE_SIZE - pinned
    if free == 0:
        return prefix
    if colours.shape[0] == 0:
        seeds = cycled_default_lab(pinned, free)
    else:
        picks = rng.integers(0, colours.shape[0], size=free)
        seeds = colours[picks]
    return np.vstack([prefix, seeds]).astype(np.float64, copy=False)


def kmeans_palette(
    colours: Lab,
    centroids: Lab,
    pinned: int,
    epsilon: float = DEFAULT_EPSILON,
    max_iterations: int = MAX_ITERATIONS,
) -> KMeansResult:
    """
    k-means over unique colours where only centroids[pinned:] are updated.

    Empty free clusters keep their centroid. Stops once every centroid moved
    by a squared distance below epsilon, or after max_iterations.
    """
    current = np.array(centroids, dtype=np.float64, copy=True)
    k = current.shape[0]
    if colours.shape[0] == 0 or pinned >= k:
        return KMeansResult(current, 0, True)

    free_slots = np.arange(pinned, k)
    iterations = 0
    converged = False
    for iterations in range(1, max_iterations + 1):
        labels = nearest_palette_indices(colours, current)
        counts = np.bincount(labels, minlength=k)
        sums = np.zeros((k, 3), dtype=np.float64)
        np.add.at(sums, labels, colours)

        updated = current.copy()
        filled = free_slots[counts[free_slots] > 0]
        updated[filled] = sums[filled] / counts[filled, None]

        diff = updated - current
        moved = np.einsum("ij,ij->i", diff, diff)
        current = updated
        if bool(np.all(moved < epsilon)):
            converged = True
            break

    return KMeansResult(current, iterations, converged)


def band_pixels(lab: Lab, rows: NDArray[np.intp]) -> Lab:
    """Lab pixels of the given rows, flattened row-major to [N,3]."""
    return np.asarray(lab)[rows].reshape(-1, 3)


def build_band_palette(
    lab: Lab,
    rows: NDArray[np.intp],
    pinned: int,
    rng: np.random.Generator,
    epsilon: float = DEFAULT_EPSILON,
    max_iterations: int = MAX_ITERATIONS,
) -> BandPaletteResult:
    """Build one band's [64,3] Lab palette from its member rows."""
    colours = unique_colours(band_pixels(lab, rows), epsilon)
    seeds = initial_centroids(colours, pinned, rng)
    result = kmeans_palette(colours, seeds, pinned, epsilon, max_iterations)
    return BandPaletteResult(
        result.centroids, int(colours.shape[0]), result.iterations, result.converged
    )


__all__ = [
    "KMeansResult",
    "BandPaletteResult",
    "unique_colours",
    "initial_centroids",
    "kmeans_palette",
    "band_pixels",
    "build_band_palette",
]
