"""Type aliases and TypedDicts for window_data inter-module contracts."""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, TypedDict

import torch


class LabelType(str, Enum):
    """How the second manifest token is interpreted.

    NONE: no label token; the label surface is filled with ``ignore_label``.
    PIXEL: the token is a path to a per-pixel label mask.
    IMAGE: the token is a literal integer class for the whole image.
    """

    NONE = "NONE"
    PIXEL = "PIXEL"
    IMAGE = "IMAGE"


class Window(NamedTuple):
    """Inclusive pixel rectangle ``(x1, y1)-(x2, y2)``."""

    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1 + 1

    @property
    def height(self) -> int:
        return self.y2 - self.y1 + 1


class WindowSample(NamedTuple):
    """One extracted training example.

    image: Float tensor of shape (C, H, W).
    label: Float multi-hot tensor of shape (label_dim,).
    original_dims: (height, width) of the source image, clamped to the
        output buffer size.
    """

    image: torch.Tensor
    label: torch.Tensor
    original_dims: tuple[int, int]


class WindowBatch(TypedDict):
    """A single batch handed to the training loop.

    images: Float tensor of shape (B, C, H, W).
    labels: Float multi-hot tensor of shape (B, label_dim).
    original_dims: Float tensor of shape (B, 2), (height, width) per item.
    """

    images: torch.Tensor
    labels: torch.Tensor
    original_dims: torch.Tensor
