# qpb/pipeline.py
from __future__ import annotations

"""
RGB raster -> QPB container.

Stages, in order:
  lab         RGB to Lab
  histograms  per-row Lab histograms
  distances   row distance matrix
  bands       k-medoids into BAND_COUNT bands
  palette     per-band k-means palette (one call per band)
  unify       cross-band merge of near-identical free slots
  index       nearest-colour bitmap

The core never prints. Pass `progress(stage, info)` to observe the run.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

import numpy as np

from .colour_convert import lab_to_rgb_int, rgb_to_lab_threaded
from .constants import (
    BAND_COUNT,
    DEFAULT_COLOUR_BUDGET,
    DEFAULT_EPSILON,
    FORMAT_VERSION,
    MAX_ITERATIONS,
    PALETTE_SIZE,
)
from .core_types import (
    BandPalette,
    InvalidParameterError,
    Lab,
    ProgressHook,
    QPBContainer,
    U8Image,
    assert_u8_image_rgb,
)
from .histogram import row_histograms
from .image_io import load_image_rgb
from .index_map import build_indexed_bitmap, scanline_map
from .quantize import BandPaletteResult, build_band_palette
from .rows import KMedoidsResult, band_rows, distance_matrix, kmedoids
from .unify import unify_palettes_with_stats


@dataclass
class ConvertOptions:
    """Conversion parameters."""

    colour_budget: int = DEFAULT_COLOUR_BUDGET  # free slots per band, 0..64
    epsilon: float = DEFAULT_EPSILON  # colour identity tolerance (squared Lab)
    seed: Optional[int] = None  # seeds the default RNG when none is injected
    workers: int = 1
    max_iterations: int = MAX_ITERATIONS

    @property
    def pinned(self) -> int:
        return PALETTE_SIZE - self.colour_budget

    def validate(self) -> "ConvertOptions":
        budget = self.colour_budget
        if isinstance(budget, bool) or not isinstance(budget, (int, np.integer)):
            raise InvalidParameterError(f"colour budget must be an int, got {budget!r}")
        if not 0 <= int(budget) <= PALETTE_SIZE:
            raise InvalidParameterError(
                f"colour budget must be in [0, {PALETTE_SIZE}], got {budget}"
            )
        try:
            eps = float(self.epsilon)
        except (TypeError, ValueError) as exc:
            raise InvalidParameterError(f"epsilon must be a number, got {self.epsilon!r}") from exc
        if not math.isfinite(eps) or eps <= 0.0:
            raise InvalidParameterError(f"epsilon must be finite and > 0, got {self.epsilon}")
        if int(self.workers) < 1:
            raise InvalidParameterError(f"workers must be >= 1, got {self.workers}")
        if int(self.max_iterations) < 1:
            raise InvalidParameterError(
                f"max_iterations must be >= 1, got {self.max_iterations}"
            )
        return self


class PipelineResult(NamedTuple):
    container: QPBContainer
    lab_palettes: List[Lab]  # unified, [64,3] per band
    clustering: KMedoidsResult
    band_results: List[BandPaletteResult]  # pre-unification


def _no_progress(stage: str, info: Dict[str, object]) -> None:
    return None


def run_pipeline(
    rgb: U8Image,
    options: Optional[ConvertOptions] = None,
    *,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressHook] = None,
) -> PipelineResult:
    """
    Full conversion with intermediate artefacts.

    Raises:
      InvalidParameterError: options out of range (checked before any work)
      InvalidInputError: rgb is not a non-empty uint8 (H,W,3) array
    """
    opts = (options or ConvertOptions()).validate()
    image = assert_u8_image_rgb(rgb)
    notify = progress or _no_progress
    generator = rng if rng is not None else np.random.default_rng(opts.seed)

    pinned = opts.pinned
    epsilon = float(opts.epsilon)
    workers = int(opts.workers)
    height, width = int(image.shape[0]), int(image.shape[1])

    lab = rgb_to_lab_threaded(image, workers)
    notify("lab", {"rows": height, "columns": width})

    histograms = row_histograms(lab)
    notify("histograms", {"rows": height, "bins": int(histograms.shape[1])})

    dist = distance_matrix(histograms)
    notify("distances", {"rows": height})

    clustering = kmedoids(dist, BAND_COUNT, int(opts.max_iterations))
    rows_per_band = band_rows(clustering.assignments, BAND_COUNT)
    notify(
        "bands",
        {
            "iterations": clustering.iterations,
            "converged": clustering.converged,
            "populated": sum(1 for rows in rows_per_band if rows.size),
            "rows_per_band": [int(rows.size) for rows in rows_per_band],
        },
    )

    # One child generator per band keeps results independent of `workers`.
    band_rngs = generator.spawn(BAND_COUNT)

    def build(band: int) -> BandPaletteResult:
        return build_band_palette(
            lab,
            rows_per_band[band],
            pinned,
            band_rngs[band],
            epsilon,
            int(opts.max_iterations),
        )

    if workers > 1:
        with ThreadPoolExecutor(max_workers=min(workers, BAND_COUNT)) as pool:
            band_results = list(pool.map(build, range(BAND_COUNT)))
    else:
        band_results = [build(band) for band in range(BAND_COUNT)]

    for band, result in enumerate(band_results):
        notify(
            "palette",
            {
                "band": band,
                "rows": int(rows_per_band[band].size),
                "colours": result.colours,
                "iterations": result.iterations,
                "converged": result.converged,
            },
        )

    unified = unify_palettes_with_stats(
        [r.palette for r in band_results], pinned, epsilon
    )
    notify("unify", {"merged": unified.merged})

    bitmap = build_indexed_bitmap(lab, unified.palettes, clustering.assignments)
    notify("index", {"pixels": height * width})

    palettes = tuple(
        BandPalette(id=band, colors=lab_to_rgb_int(palette))
        for band, palette in enumerate(unified.palettes)
    )
    container = QPBContainer(
        version=FORMAT_VERSION,
        palettes=palettes,
        bitmap=bitmap,
        map=scanline_map(clustering.assignments, BAND_COUNT),
    )
    return PipelineResult(container, unified.palettes, clustering, band_results)


def convert_rgb(
    rgb: U8Image,
    options: Optional[ConvertOptions] = None,
    *,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressHook] = None,
) -> QPBContainer:
    """Convert a uint8 (H,W,3) raster into a QPBContainer."""
    return run_pipeline(rgb, options, rng=rng, progress=progress).container


def convert_image(
    path: Path,
    options: Optional[ConvertOptions] = None,
    *,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressHook] = None,
) -> QPBContainer:
    """Load an image file with Pillow and convert it. Parameters are checked first."""
    opts = (options or ConvertOptions()).validate()
    return convert_rgb(load_image_rgb(path), opts, rng=rng, progress=progress)


__all__ = [
    "ConvertOptions",
    "PipelineResult",
    "run_pipeline",
    "convert_rgb",
    "convert_image",
]
