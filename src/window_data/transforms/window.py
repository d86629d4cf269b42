"""Window geometry: pad, crop and resize an image/label pair together.

All functions take and return ``tv_tensors.Image`` (C, H, W) and
``tv_tensors.Mask`` (1, H, W) so that torchvision's v2 kernels keep the
two surfaces spatially aligned.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
import torch
from torchvision import tv_tensors
from torchvision.transforms.v2 import InterpolationMode
from torchvision.transforms.v2 import functional as F

from window_data.errors import WindowBoundsError
from window_data.types import Window


class Padding(NamedTuple):
    left: int
    top: int
    right: int
    bottom: int

    def any(self) -> bool:
        return self.left > 0 or self.top > 0 or self.right > 0 or self.bottom > 0


def to_image(raster: np.ndarray) -> tv_tensors.Image:
    """Wrap an (H, W, C) uint8 raster as a (C, H, W) ``tv_tensors.Image``."""
    return tv_tensors.Image(torch.from_numpy(raster).permute(2, 0, 1).contiguous())


def to_mask(raster: np.ndarray) -> tv_tensors.Mask:
    """Wrap an (H, W) uint8 label raster as a (1, H, W) ``tv_tensors.Mask``."""
    return tv_tensors.Mask(torch.from_numpy(raster).unsqueeze(0))


def uniform_mask(height: int, width: int, value: int) -> tv_tensors.Mask:
    """Label surface of a single value, e.g. a per-image class or ignore_label."""
    return tv_tensors.Mask(torch.full((1, height, width), value, dtype=torch.uint8))


def compute_window_padding(window: Window, height: int, width: int) -> Padding:
    """Margins needed so ``window`` lies inside a (height, width) image."""
    return Padding(
        left=max(0, -window.x1),
        top=max(0, -window.y1),
        right=max(0, window.x2 - width + 1),
        bottom=max(0, window.y2 - height + 1),
    )


def pad_and_crop_window(
    image: tv_tensors.Image,
    mask: tv_tensors.Mask,
    window: Window,
    ignore_label: int,
) -> tuple[tv_tensors.Image, tv_tensors.Mask]:
    """Crop ``window`` out of the pair, padding first if it leaves the image.

    The image is padded with 0 and the mask with ``ignore_label``. The
    returned crop is always ``window.height`` x ``window.width``.

    Raises:
        WindowBoundsError: If the shifted window is still out of bounds,
            which only happens for inverted windows (x2 < x1 or y2 < y1).
    """
    height, width = image.shape[-2:]
    pad = compute_window_padding(window, height, width)
    if pad.any():
        padding = [pad.left, pad.top, pad.right, pad.bottom]
        image = F.pad(image, padding, fill=0)
        mask = F.pad(mask, padding, fill=ignore_label)
        height, width = image.shape[-2:]

    x1, y1 = window.x1 + pad.left, window.y1 + pad.top
    x2, y2 = window.x2 + pad.left, window.y2 + pad.top
    if x1 < 0 or y1 < 0 or x2 >= width or y2 >= height or x2 < x1 or y2 < y1:
        raise WindowBoundsError(
            f"Window {tuple(window)} is out of bounds for a padded "
            f"{height}x{width} image"
        )

    crop_h, crop_w = y2 - y1 + 1, x2 - x1 + 1
    return (
        F.crop(image, y1, x1, crop_h, crop_w),
        F.crop(mask, y1, x1, crop_h, crop_w),
    )


def resize_window(
    image: tv_tensors.Image,
    mask: tv_tensors.Mask,
    height: int,
    width: int,
) -> tuple[tv_tensors.Image, tv_tensors.Mask]:
    """Resize the pair to exactly (height, width).

    Bilinear for the image, nearest for the mask: label ids are never blended.
    """
    size = [height, width]
    return (
        F.resize(image, size, interpolation=InterpolationMode.BILINEAR, antialias=False),
        F.resize(mask, size, interpolation=InterpolationMode.NEAREST),
    )
