# qpb/utils.py
from __future__ import annotations

"""
Shared utilities for qpb.

Includes the chunked nearest-colour search used by quantisation and indexing,
time formatting, and tidy console logging for the CLI.
"""

import sys
from typing import Any, Iterable, List, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import NEAREST_CHUNK_ROWS
from .core_types import Lab


#  Time formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


def format_total_duration_compact(seconds: float) -> str:
    """Compact total duration: 'Mm Ss', 'Ss.s', or 'ms'."""
    if seconds >= 60.0:
        minutes = int(seconds // 60)
        rem = int(round(seconds - 60 * minutes))
        return f"{minutes}m {rem}s"
    if seconds >= 1.0:
        return f"{seconds:.1f}s"
    return f"{seconds * 1000.0:.1f}ms"


# Nearest colour search


def nearest_palette_indices(
    src_lab: Lab, pal_lab: Lab, chunk_rows: int = NEAREST_CHUNK_ROWS
) -> NDArray[np.intp]:
    """
    For each source Lab row, the index of the nearest palette row by squared
    Euclidean distance. Ties resolve to the lowest palette index.
    """
    src = np.asarray(src_lab, dtype=np.float64).reshape(-1, 3)
    pal = np.asarray(pal_lab, dtype=np.float64).reshape(-1, 3)
    out = np.empty(src.shape[0], dtype=np.intp)
    if src.shape[0] == 0:
        return out
    if pal.shape[0] == 0:
        raise ValueError("palette is empty")
    for start in range(0, src.shape[0], chunk_rows):
        block = src[start : start + chunk_rows]
        diff = block[:, None, :] - pal[None, :, :]
        dist2 = np.einsum("ijk,ijk->ij", diff, diff)
        out[start : start + block.shape[0]] = np.argmin(dist2, axis=1)
    return out


# Pretty logging


def format_bool_on_off(value: Any) -> str:
    """Pretty boolean: 'on'/'off' for bools; str(value) otherwise."""
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Pretty number: 1,234 style for ints; compact for floats; passthrough otherwise."""
    if isinstance(value, bool):
        return format_bool_on_off(value)
    if isinstance(value, (int, np.integer)):
        return f"{int(value):,}"
    if isinstance(value, (float, np.floating)):
        v = float(value)
        if v != 0.0 and abs(v) < 1e-3:
            return f"{v:g}"
        return f"{v:.3f}".rstrip("0").rstrip(".")
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """
    Format (name, value) pairs as 'Name: value' blocks separated by sep.
    """
    out: List[str] = []
    for name, value in pairs:
        out.append(f"{name}{eq}{format_number_compact(value)}")
    return sep.join(out)


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single human-readable config line, e.g.:
      [run] Default colours: 16  Budget: 48  Epsilon: 0.0001
    Routes to debug_log() when debug=True, else to log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    """Section banner."""
    print(f"\n=== {title} ===", flush=True)


def log(message: str) -> None:
    """Plain log line."""
    print(message, flush=True)


def debug_log(message: str) -> None:
    """Debug log line."""
    print(f"[debug] {message}", flush=True)


def warn(message: str) -> None:
    """Warning log line."""
    print(f"[warn] {message}", flush=True)


def error(message: str) -> None:
    """Error log line to stderr."""
    print(f"[error] {message}", file=sys.stderr, flush=True)


__all__ = [
    "format_seconds_compact",
    "format_total_duration_compact",
    "nearest_palette_indices",
    "format_bool_on_off",
    "format_number_compact",
    "key_value_pairs_to_string",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
