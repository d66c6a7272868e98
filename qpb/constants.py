# qpb/constants.py
"""
Default palette and tunables used across the project.

- DEFAULT_PALETTE: the 32 pinned seed colours, in pin order
- Band / palette geometry (BAND_COUNT, PALETTE_SIZE)
- Clustering limits and colour tolerance
- Container format tag
"""
from __future__ import annotations

from typing import List, Tuple

# ============================
# Default palette (hex, name)
# ============================
DEFAULT_PALETTE: Tuple[Tuple[str, str], ...] = (
    ("#000000", "Black"),
    ("#1d2b53", "Dark Blue"),
    ("#7e2553", "Dark Purple"),
    ("#008751", "Dark Green"),
    ("#ab5236", "Brown"),
    ("#5f574f", "Dark Grey"),
    ("#c2c3c7", "Light Grey"),
    ("#fff1e8", "White"),
    ("#ff004d", "Red"),
    ("#ffa300", "Orange"),
    ("#ffec27", "Yellow"),
    ("#00e436", "Green"),
    ("#29adff", "Blue"),
    ("#83769c", "Lavender"),
    ("#ff77a8", "Pink"),
    ("#ffccaa", "Light Peach"),
    ("#1c5eac", "Mid Blue"),
    ("#00a5a1", "Teal"),
    ("#754e97", "Violet"),
    ("#125359", "Dark Teal"),
    ("#742f29", "Dark Brown"),
    ("#492d38", "Darker Purple"),
    ("#a28879", "Tan"),
    ("#ffacc5", "Light Pink"),
    ("#c3004c", "Crimson"),
    ("#eb6b00", "Dark Orange"),
    ("#90ec42", "Lime"),
    ("#00b251", "Mid Green"),
    ("#64dff6", "Sky"),
    ("#bd9adf", "Mauve"),
    ("#e40dab", "Magenta"),
    ("#ff856d", "Salmon"),
)

# =========================
# Geometry
# =========================
BAND_COUNT: int = 4
PALETTE_SIZE: int = 64
HISTOGRAM_BINS: int = 256
HISTOGRAM_CHANNELS: int = 3

# =========================
# Clustering / quantisation
# =========================
MAX_ITERATIONS: int = 100
DEFAULT_EPSILON: float = 1e-4
UNIFY_EPSILON_SCALE: float = 4.0

# Pinned slots kept from DEFAULT_PALETTE when the caller does not say otherwise.
DEFAULT_PINNED: int = 16
DEFAULT_COLOUR_BUDGET: int = PALETTE_SIZE - DEFAULT_PINNED

# Rows per block when scanning pixels against palettes.
NEAREST_CHUNK_ROWS: int = 16384

# =========================
# Container
# =========================
FORMAT_VERSION: int = 1
CONTAINER_MAGIC: bytes = b"QPB"
MAP_BITS_PER_SCANLINE: int = 2

SKIP_SUFFIXES: List[str] = ["_preview"]
IMAGE_EXTS: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif")
