# qpb/image_io.py
from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageCms, ImageOps, UnidentifiedImageError

from .core_types import InvalidInputError, U8Image

"""
Image I/O helpers (sRGB). Transparent pixels are flattened onto black.
"""


def _convert_to_srgb_rgba(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im.convert("RGBA"),
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGBA",
            )
            if im2 is not None:
                return im2
        except (ImageCms.PyCMSError, OSError, ValueError):
            # Broken or unsupported embedded profile: use the pixels as sRGB.
            pass

    return im.convert("RGBA")


def load_image_rgb(path: Path) -> U8Image:
    """
    Load any Pillow-readable image as uint8 (H,W,3) sRGB.

    Raises:
      InvalidInputError: file missing, unreadable, or not an image
    """
    try:
        with Image.open(path) as im0:
            im = _convert_to_srgb_rgba(im0)
            im.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidInputError(f"cannot read image {path}: {exc}") from exc

    background = Image.new("RGBA", im.size, (0, 0, 0, 255))
    flat = Image.alpha_composite(background, im).convert("RGB")
    rgb = np.array(flat, dtype=np.uint8)
    if rgb.ndim != 3 or rgb.shape[0] == 0 or rgb.shape[1] == 0:
        raise InvalidInputError(f"image {path} has no pixels")
    return rgb


def save_image_rgb(path: Path, rgb: U8Image) -> Path:
    """Save a uint8 (H,W,3) array as PNG. Non-.png suffixes are replaced."""
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8)).save(path)
    return path


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "load_image_rgb",
    "save_image_rgb",
    "is_image_file",
]
