"""Window geometry and torchvision v2 augmentation for image/label pairs."""

from window_data.transforms.augment import PadToSize, build_window_transform
from window_data.transforms.conversion import SubtractMeanAndScale, ToFloat32Tensor
from window_data.transforms.window import (
    Padding,
    compute_window_padding,
    pad_and_crop_window,
    resize_window,
)

__all__ = [
    "PadToSize",
    "Padding",
    "SubtractMeanAndScale",
    "ToFloat32Tensor",
    "build_window_transform",
    "compute_window_padding",
    "pad_and_crop_window",
    "resize_window",
]
