# qpb/rows.py
from __future__ import annotations

"""
Row clustering into palette bands.

Rows are compared by a Hellinger-style distance on raw histogram counts and
grouped with k-medoids (farthest-point seeding, exact medoid update).

Exports:
  hellinger_distance(h1, h2)
  distance_matrix(histograms)
  initial_medoids(dist, k)
  kmedoids(dist, k, max_iterations) -> KMedoidsResult
  cluster_rows(lab, k, max_iterations) -> KMedoidsResult
  band_rows(assignments, k) -> list of row-index arrays
"""

import math
from typing import List, NamedTuple

import numpy as np
from numpy.typing import NDArray

from .constants import BAND_COUNT, MAX_ITERATIONS
from .core_types import BandAssignment, DistanceMatrix, Histograms, Lab
from .histogram import row_histograms

_SQRT2 = math.sqrt(2.0)


class KMedoidsResult(NamedTuple):
    assignments: BandAssignment  # [H] band id per row
    medoids: List[int]  # row index per band; len <= k
    iterations: int
    converged: bool


def hellinger_distance(h1: np.ndarray, h2: np.ndarray) -> float:
    """
    sqrt(sum((sqrt(h1) - sqrt(h2))^2)) / sqrt(2) on raw counts.
    Not normalised to probabilities; kept that way for output compatibility.
    """
    diff = np.sqrt(np.asarray(h1, dtype=np.float64)) - np.sqrt(
        np.asarray(h2, dtype=np.float64)
    )
    return float(math.sqrt(float(np.dot(diff, diff))) / _SQRT2)


def distance_matrix(histograms: Histograms) -> DistanceMatrix:
    """
    Symmetric [H,H] matrix of pairwise row distances.

    Each upper-triangle row is computed once and mirrored, so the matrix is
    exactly symmetric and the diagonal is exactly zero.
    """
    roots = np.sqrt(np.asarray(histograms, dtype=np.float64))
    n = int(roots.shape[0])
    dist = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        diff = roots[i:] - roots[i]
        d = np.sqrt(np.einsum("ij,ij->i", diff, diff)) / _SQRT2
        dist[i, i:] = d
        dist[i:, i] = d
    return dist


def initial_medoids(dist: DistanceMatrix, k: int) -> List[int]:
    """
    Farthest-point seeding: repeatedly take the unselected row with the largest
    total distance to all other rows. Ties go to the lowest row index.
    Returns min(k, H) distinct rows.
    """
    n = int(dist.shape[0])
    sums = dist.sum(axis=1) - np.diagonal(dist)
    selected = np.zeros(n, dtype=bool)
    medoids: List[int] = []
    for _ in range(min(k, n)):
        masked = np.where(selected, -np.inf, sums)
        best = int(np.argmax(masked))
        medoids.append(best)
        selected[best] = True
    return medoids


def _exact_medoid(dist: DistanceMatrix, members: NDArray[np.intp]) -> int:
    """Member with the smallest total distance to the other members (lowest row on ties)."""
    totals = dist[np.ix_(members, members)].sum(axis=1)
    return int(members[int(np.argmin(totals))])


def kmedoids(
    dist: DistanceMatrix,
    k: int = BAND_COUNT,
    max_iterations: int = MAX_ITERATIONS,
) -> KMedoidsResult:
    """
    k-medoids over a precomputed distance matrix.

    Assignment picks the nearest medoid, lowest band on ties. A band that ends
    up empty keeps its previous medoid. Stops when no medoid changes or after
    max_iterations; a capped run is returned as-is.
    """
    n = int(dist.shape[0])
    assignments = np.zeros(n, dtype=np.int64)
    medoids = initial_medoids(dist, k)
    if n == 0:
        return KMedoidsResult(assignments, medoids, 0, True)

    iterations = 0
    converged = False
    for iterations in range(1, max_iterations + 1):
        assignments = np.argmin(dist[:, medoids], axis=1).astype(np.int64)

        new_medoids = list(medoids)
        for band in range(len(medoids)):
            members = np.flatnonzero(assignments == band)
            if members.size == 0:
                continue
            new_medoids[band] = _exact_medoid(dist, members)

        changes = sum(1 for old, new in zip(medoids, new_medoids) if old != new)
        medoids = new_medoids
        if changes == 0:
            converged = True
            break

    return KMedoidsResult(assignments, medoids, iterations, converged)


def cluster_rows(
    lab: Lab, k: int = BAND_COUNT, max_iterations: int = MAX_ITERATIONS
) -> KMedoidsResult:
    """Histograms -> distance matrix -> k-medoids for a Lab raster [H,W,3]."""
    return kmedoids(distance_matrix(row_histograms(lab)), k, max_iterations)


def band_rows(assignments: BandAssignment, k: int = BAND_COUNT) -> List[NDArray[np.intp]]:
    """Row indices per band, in row order. Empty bands give empty arrays."""
    return [np.flatnonzero(assignments == band) for band in range(k)]


__all__ = [
    "KMedoidsResult",
    "hellinger_distance",
    "distance_matrix",
    "initial_medoids",
    "kmedoids",
    "cluster_rows",
    "band_rows",
]
