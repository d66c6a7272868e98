#!/usr/bin/env python3
"""
png2qpb.py
Convert images to QPB: four row bands, one 64-colour palette per band, an
indexed bitmap, and a 2-bit-per-scanline band map.

Usage:
  python png2qpb.py SRC [--outdir DIR] [--default-colors N] [--epsilon E] [--seed S] [--workers W] [--preview] [--debug]

Options:
  --default-colors : palette slots pinned to the default palette (0..64, default 16).
                     The remaining 64 - N slots per band are learned from the image.
  --epsilon        : colour identity tolerance, squared Lab distance (default 0.0001).
  --seed           : seed for palette initialisation; omit for a fresh run each time.
  --preview        : also write <stem>_preview.png rendered through the scanline map.

Input:
  Any Pillow-readable image, or a folder of them. Alpha is flattened onto black.

Output:
  <stem>.qpb next to SRC, or in --outdir.

Notes:
  Pipeline stages live in qpb.pipeline; the container codec in qpb.container.
  Nothing is written for a file whose conversion fails.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from qpb.constants import (
    DEFAULT_EPSILON,
    DEFAULT_PINNED,
    IMAGE_EXTS,
    PALETTE_SIZE,
    SKIP_SUFFIXES,
)
from qpb.container import write_container
from qpb.core_types import ConversionError, QPBContainer
from qpb.image_io import is_image_file, load_image_rgb, save_image_rgb
from qpb.pipeline import ConvertOptions, convert_rgb
from qpb.utils import (
    debug_log,
    error,
    format_seconds_compact,
    format_total_duration_compact,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
    warn,
)
from qpb.viewer import render_rgb


# CLI args


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with:
        src: Path to image or folder
        outdir: optional Path for outputs
        default_colors: pinned slots per palette
        epsilon: colour tolerance
        seed: optional RNG seed
        workers: internal threads
        preview: bool, write a rendered PNG
        debug: bool, per-stage details
    """
    parser = argparse.ArgumentParser(
        prog="png2qpb",
        description="Convert image(s) to banded four-palette QPB containers.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "--default-colors",
        type=int,
        default=DEFAULT_PINNED,
        help=f"Colours kept from the default palette (0..{PALETTE_SIZE}).",
    )
    parser.add_argument(
        "--epsilon",
        type=float,
        default=DEFAULT_EPSILON,
        help="Tolerance for colour comparisons (squared Lab distance).",
    )
    parser.add_argument("--seed", type=int, default=None, help="RNG seed")
    parser.add_argument("--workers", type=int, default=1, help="Internal workers")
    parser.add_argument(
        "--preview", action="store_true", help="Also write <stem>_preview.png"
    )
    parser.add_argument("--debug", action="store_true", help="Per-stage details")
    return parser.parse_args(argv)


def _debug_progress(stage: str, info: Dict[str, object]) -> None:
    pairs = [
        (name, "/".join(str(v) for v in value) if isinstance(value, list) else value)
        for name, value in info.items()
    ]
    debug_log(f"{stage:<10} {key_value_pairs_to_string(pairs)}")


def _band_report(container: QPBContainer) -> None:
    """Rows and distinct palette slots used per band."""
    for palette in container.palettes:
        rows = np.flatnonzero(container.map == palette.id)
        used = int(np.unique(container.bitmap[rows]).size) if rows.size else 0
        log(f"  band {palette.id}: rows={rows.size:,}  colours used={used}")


# Per-file processing


def _process_single_image(
    src_path: Path,
    outdir: Optional[Path],
    options: ConvertOptions,
    preview: bool,
    debug: bool,
) -> Path:
    """
    Process a single image end-to-end:
      load -> convert -> save container -> optional preview -> report.
    """
    t_start = time.perf_counter()
    out_dir = outdir if outdir is not None else src_path.parent
    out_path = out_dir / f"{src_path.stem}.qpb"

    print_banner(src_path.name)

    rgb = load_image_rgb(src_path)
    height, width = int(rgb.shape[0]), int(rgb.shape[1])
    t_loaded = time.perf_counter()
    if debug:
        debug_log(
            key_value_pairs_to_string(
                [("Loaded", f"{width}x{height}"), ("Time", format_seconds_compact(t_loaded - t_start))]
            )
        )

    container = convert_rgb(rgb, options, progress=_debug_progress if debug else None)
    t_converted = time.perf_counter()

    out_dir.mkdir(parents=True, exist_ok=True)
    write_container(out_path, container)
    if preview:
        try:
            preview_path = save_image_rgb(
                out_dir / f"{src_path.stem}_preview.png", render_rgb(container)
            )
        except Exception:
            # A failed file leaves no container behind.
            out_path.unlink(missing_ok=True)
            raise
        log(f"Preview {preview_path.name}")
    t_saved = time.perf_counter()

    populated = int(np.unique(container.map).size)
    log(
        f"Wrote {out_path.name} | size={width}x{height} | bands={populated} | "
        f"palette_size={PALETTE_SIZE} | pinned={options.pinned}"
    )
    log("Bands:")
    _band_report(container)

    if debug:
        debug_log(
            f"Total {format_total_duration_compact(t_saved - t_start)}  "
            f"(load={format_seconds_compact(t_loaded - t_start)}, "
            f"convert={format_seconds_compact(t_converted - t_loaded)}, "
            f"save={format_seconds_compact(t_saved - t_converted)})"
        )
    else:
        log(f"Total time {format_total_duration_compact(t_saved - t_start)}")
    return out_path


def _collect_sources(src: Path) -> List[Path]:
    if not src.is_dir():
        return [src]
    files = [
        p
        for p in src.iterdir()
        if p.is_file()
        and p.suffix.lower() in IMAGE_EXTS
        and not any(p.stem.endswith(sfx) for sfx in SKIP_SUFFIXES)
    ]
    files.sort(key=lambda p: p.name.lower())

    readable: List[Path] = []
    for p in files:
        if is_image_file(p):
            readable.append(p)
        else:
            warn(f"skipping {p.name}: not a readable image")
    return readable


# Entry point


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point.

    Exits 2 when SRC does not exist, 1 when any conversion failed.
    """
    args = parse_cli_args(argv)

    options = ConvertOptions(
        colour_budget=PALETTE_SIZE - args.default_colors,
        epsilon=args.epsilon,
        seed=args.seed,
        workers=args.workers,
    )
    print_config_line(
        "run",
        [
            ("Default colours", args.default_colors),
            ("Budget", options.colour_budget),
            ("Epsilon", args.epsilon),
            ("Seed", args.seed if args.seed is not None else "-"),
            ("Workers", args.workers),
        ],
        debug=False,
    )

    try:
        options.validate()
    except ConversionError as e:
        error(f"invalid parameters: {e}")
        sys.exit(1)

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        sys.exit(2)

    sources = _collect_sources(src)
    if not sources:
        warn(f"no images found in {src}")
    if args.debug and src.is_dir():
        debug_log(key_value_pairs_to_string([("Images", len(sources))]))

    failures = 0
    for path in sources:
        try:
            _process_single_image(path, args.outdir, options, args.preview, args.debug)
        except (ConversionError, ValueError, OSError) as e:
            failures += 1
            error(f"failed to convert {path.name}: {e}")

    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
