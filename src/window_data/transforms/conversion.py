"""Photometric conversion transforms for window crops.

Both transforms accept an ``(image, mask)`` pair and only touch the
``tv_tensors.Image``; the mask is passed through untouched.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import torch
from torchvision import tv_tensors
from torchvision.transforms import v2


def _map_images(fn: Any, inputs: tuple[Any, ...]) -> Any:
    outputs = tuple(fn(x) if isinstance(x, tv_tensors.Image) else x for x in inputs)
    return outputs if len(outputs) > 1 else outputs[0]


class ToFloat32Tensor(v2.Transform):
    """Convert uint8 images to float32, leaving masks as integer ids.

    Args:
        scale: If ``True``, scale pixel values from ``[0, 255]`` to
            ``[0.0, 1.0]``.  If ``False`` (default), keep the 0-255 range
            so that ``mean_values`` can be given in pixel units.
    """

    def __init__(self, scale: bool = False) -> None:
        super().__init__()
        self.scale = scale

    def forward(self, *inputs: Any) -> Any:
        return _map_images(
            lambda img: v2.functional.to_dtype(img, torch.float32, scale=self.scale),
            inputs,
        )


class SubtractMeanAndScale(v2.Transform):
    """Compute ``(pixel - mean) * scale`` on the image.

    Args:
        mean_values: Empty (no subtraction), a single value broadcast over
            all channels, or one value per channel.
        scale: Multiplier applied after mean subtraction.
    """

    def __init__(self, mean_values: Sequence[float] = (), scale: float = 1.0) -> None:
        super().__init__()
        self.mean_values = list(mean_values)
        self.scale = scale
        self._mean = (
            torch.tensor(self.mean_values, dtype=torch.float32).view(-1, 1, 1)
            if self.mean_values
            else None
        )

    def _apply(self, img: tv_tensors.Image) -> tv_tensors.Image:
        out = img.as_subclass(torch.Tensor)
        if self._mean is not None:
            out = out - self._mean
        if self.scale != 1.0:
            out = out * self.scale
        return tv_tensors.wrap(out, like=img)

    def forward(self, *inputs: Any) -> Any:
        return _map_images(self._apply, inputs)
