"""PIL-backed decoding of source images and label masks.

Rasters are returned as ``numpy`` arrays: images are (H, W, C) uint8 with
C = 3 (RGB) or 1 (grayscale); label masks are (H, W) uint8.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from window_data.errors import ImageDecodeError

# Modes whose pixel values are already label ids and must not be remapped.
_RAW_LABEL_MODES = ("L", "P")


def _open(path: str | Path) -> Image.Image:
    try:
        img = Image.open(path)
        img.load()
    except (OSError, UnidentifiedImageError) as e:
        raise ImageDecodeError(f"Could not read image: {path} ({e})") from e
    return img


def read_image(
    path: str | Path,
    height: int = 0,
    width: int = 0,
    is_color: bool = True,
) -> tuple[np.ndarray, int, int]:
    """Decode an image, optionally resizing it bilinearly.

    Args:
        path: Image file to decode.
        height: Target height. Resizing happens only when both
            ``height`` and ``width`` are positive.
        width: Target width.
        is_color: Decode as RGB when True, single-channel grayscale otherwise.

    Returns:
        ``(raster, native_height, native_width)`` where the native
        dimensions are those of the file before any resize.
    """
    img = _open(path).convert("RGB" if is_color else "L")
    native_w, native_h = img.size
    if height > 0 and width > 0:
        img = img.resize((width, height), Image.BILINEAR)
    raster = np.array(img, dtype=np.uint8)
    if raster.ndim == 2:
        raster = raster[:, :, None]
    return raster, native_h, native_w


def read_label_image(path: str | Path) -> np.ndarray:
    """Decode a per-pixel label mask at native size.

    Palette and grayscale masks keep their stored indices; anything else is
    converted to grayscale. No interpolation is ever applied.
    """
    img = _open(path)
    if img.mode not in _RAW_LABEL_MODES:
        img = img.convert("L")
    return np.array(img, dtype=np.uint8)
