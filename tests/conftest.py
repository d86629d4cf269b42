"""Shared pytest fixtures for window_data tests."""

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Image A: 40x60 gradient with two labelled regions and a don't-care band.
A_HEIGHT, A_WIDTH = 40, 60
# Image B: 30x30 solid colour, entirely class 2.
B_HEIGHT, B_WIDTH = 30, 30


def gradient_image(height: int, width: int) -> np.ndarray:
    """(H, W, 3) uint8 raster whose pixels encode their own coordinates."""
    ys, xs = np.mgrid[0:height, 0:width]
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[..., 0] = (xs * 4) % 256
    arr[..., 1] = (ys * 6) % 256
    arr[..., 2] = 100
    return arr


def segmentation_a() -> np.ndarray:
    seg = np.zeros((A_HEIGHT, A_WIDTH), dtype=np.uint8)
    seg[10:20, 10:30] = 1
    seg[25:35, 40:55] = 3
    seg[0:5, :] = 255
    return seg


@pytest.fixture()
def window_dir(tmp_path: Path) -> Path:
    """Two PNG images with label masks and a manifest per label type.

    Manifests (all windows cover the full image, file order A then B):
      - manifest_pixel.txt: ``<img> <seg> x1 y1 x2 y2``
      - manifest_image.txt: ``<img> <class> x1 y1 x2 y2`` (A=4, B=7)
      - manifest_none.txt:  ``<img> x1 y1 x2 y2``
    """
    Image.fromarray(gradient_image(A_HEIGHT, A_WIDTH)).save(tmp_path / "img_a.png")
    Image.fromarray(segmentation_a()).save(tmp_path / "seg_a.png")

    Image.new("RGB", (B_WIDTH, B_HEIGHT), color=(200, 50, 50)).save(
        tmp_path / "img_b.png"
    )
    Image.new("L", (B_WIDTH, B_HEIGHT), color=2).save(tmp_path / "seg_b.png")

    win_a = f"0 0 {A_WIDTH - 1} {A_HEIGHT - 1}"
    win_b = f"0 0 {B_WIDTH - 1} {B_HEIGHT - 1}"
    (tmp_path / "manifest_pixel.txt").write_text(
        f"img_a.png seg_a.png {win_a}\nimg_b.png seg_b.png {win_b}\n"
    )
    (tmp_path / "manifest_image.txt").write_text(
        f"img_a.png 4 {win_a}\nimg_b.png 7 {win_b}\n"
    )
    (tmp_path / "manifest_none.txt").write_text(
        f"img_a.png {win_a}\nimg_b.png {win_b}\n"
    )
    return tmp_path


@pytest.fixture()
def gradient():
    """Factory fixture for coordinate-encoding test rasters."""
    return gradient_image
