"""Joint image/label augmentation applied after window cropping."""

from __future__ import annotations

from typing import Any, Literal

from torchvision import tv_tensors
from torchvision.transforms import v2

from window_data.config import TransformConfig
from window_data.transforms.conversion import SubtractMeanAndScale, ToFloat32Tensor


class PadToSize(v2.Transform):
    """Pad bottom/right so every surface is at least ``size`` (H, W).

    Images are padded with 0 and masks with ``ignore_label``. Inputs that
    are already large enough are returned unchanged.
    """

    def __init__(self, size: tuple[int, int], ignore_label: int = 255) -> None:
        super().__init__()
        self.size = size
        self.ignore_label = ignore_label

    def _pad(self, x: Any) -> Any:
        if not isinstance(x, (tv_tensors.Image, tv_tensors.Mask)):
            return x
        height, width = x.shape[-2:]
        pad_h = max(0, self.size[0] - height)
        pad_w = max(0, self.size[1] - width)
        if pad_h == 0 and pad_w == 0:
            return x
        fill = self.ignore_label if isinstance(x, tv_tensors.Mask) else 0
        return v2.functional.pad(x, [0, 0, pad_w, pad_h], fill=fill)

    def forward(self, *inputs: Any) -> Any:
        outputs = tuple(self._pad(x) for x in inputs)
        return outputs if len(outputs) > 1 else outputs[0]


def build_window_transform(
    config: TransformConfig,
    out_size: tuple[int, int],
    ignore_label: int = 255,
    phase: Literal["train", "test"] = "train",
) -> v2.Compose:
    """Transform pipeline turning a cropped (image, mask) pair into network input.

    Float conversion and mean/scale normalisation come first so that the
    zero fill used when padding equals the mean. The pair is then padded
    and cropped to ``out_size``: randomly in the train phase, centered in
    the test phase. Mirroring is only applied while training.
    """
    crop: v2.Transform
    if phase == "train":
        crop = v2.RandomCrop(out_size)
    else:
        crop = v2.CenterCrop(out_size)

    transforms: list[v2.Transform] = [
        ToFloat32Tensor(scale=False),
        SubtractMeanAndScale(config.mean_values, config.scale),
        PadToSize(out_size, ignore_label=ignore_label),
        crop,
    ]
    if config.mirror and phase == "train":
        transforms.append(v2.RandomHorizontalFlip())
    return v2.Compose(transforms)
