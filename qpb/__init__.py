"""
qpb package.

Purpose:
  Convert true-colour images into QPB containers: four horizontal bands of
  rows, each with its own 64-colour palette, plus an indexed bitmap and a
  2-bit-per-scanline band map. See png2qpb.py for the CLI.

Public API:
  convert_rgb     : uint8 (H,W,3) array -> QPBContainer.
  convert_image   : image file -> QPBContainer.
  ConvertOptions  : colour budget, epsilon, seed, workers.
  render_rgb      : preview a container through its scanline map.
  write_container / read_container : .qpb file codec.
  colour_convert  : sRGB <-> Lab transforms.
  core_types      : shared aliases, value objects, errors.

Quick start:
  from qpb import ConvertOptions, convert_image, write_container
  qpb = convert_image(Path("city.png"), ConvertOptions(colour_budget=48, seed=1))
  write_container(Path("city.qpb"), qpb)
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import palette_data
from . import utils

from .container import read_container, write_container  # noqa: E402,F401
from .core_types import (  # noqa: E402,F401
    BandPalette,
    ContainerFormatError,
    ConversionError,
    InvalidInputError,
    InvalidParameterError,
    QPBContainer,
)
from .pipeline import ConvertOptions, convert_image, convert_rgb, run_pipeline  # noqa: E402,F401
from .viewer import render_rgb  # noqa: E402,F401

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "palette_data",
    "utils",
    "BandPalette",
    "QPBContainer",
    "ConversionError",
    "InvalidParameterError",
    "InvalidInputError",
    "ContainerFormatError",
    "ConvertOptions",
    "convert_rgb",
    "convert_image",
    "run_pipeline",
    "render_rgb",
    "read_container",
    "write_container",
]
