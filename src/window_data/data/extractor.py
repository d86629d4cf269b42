"""Turn one manifest record into an (image, multi-hot label, dims) sample."""

from __future__ import annotations

from collections.abc import Callable

import torch
from loguru import logger
from torchvision import tv_tensors

from window_data.config import WindowClsDataConfig
from window_data.data.manifest import WindowRecord
from window_data.data.utils import resolve_path
from window_data.errors import ImageDecodeError, LabelRangeError, ManifestError
from window_data.io.image import read_image, read_label_image
from window_data.transforms.window import (
    pad_and_crop_window,
    resize_window,
    to_image,
    to_mask,
    uniform_mask,
)
from window_data.types import LabelType, WindowSample

PairTransform = Callable[
    [tv_tensors.Image, tv_tensors.Mask], tuple[tv_tensors.Image, tv_tensors.Mask]
]

# Label ids that never contribute to the multi-hot vector.
BACKGROUND_LABEL = 0
DONT_CARE_LABEL = 255


def label_vector(mask: torch.Tensor, label_dim: int) -> torch.Tensor:
    """Multi-hot vector of the classes present in a label surface.

    Pixel value ``v`` sets entry ``v - 1``; background (0) and don't-care
    (255) pixels are ignored.

    Raises:
        LabelRangeError: If some ``v - 1`` falls outside ``label_dim``.
    """
    vec = torch.zeros(label_dim, dtype=torch.float32)
    values = torch.unique(mask.as_subclass(torch.Tensor).to(torch.int64))
    values = values[(values != BACKGROUND_LABEL) & (values != DONT_CARE_LABEL)]
    if values.numel() == 0:
        return vec
    too_large = values[values > label_dim]
    if too_large.numel() > 0:
        raise LabelRangeError(
            f"Label value(s) {too_large.tolist()} exceed label_dim={label_dim}"
        )
    vec[values - 1] = 1.0
    return vec


def _label_surface(
    record: WindowRecord,
    config: WindowClsDataConfig,
    height: int,
    width: int,
) -> tv_tensors.Mask:
    img_cfg = config.image_data
    if img_cfg.label_type == LabelType.PIXEL:
        seg_path = resolve_path(img_cfg.root_folder, record.seg_path_or_label)
        raster = read_label_image(seg_path)
        if raster.shape != (height, width):
            raise ImageDecodeError(
                f"Label mask {seg_path} is {raster.shape[0]}x{raster.shape[1]}, "
                f"image is {height}x{width}"
            )
        return to_mask(raster)
    if img_cfg.label_type == LabelType.IMAGE:
        try:
            label = int(record.seg_path_or_label)
        except ValueError as e:
            raise ManifestError(
                f"Image label for {record.image_path} is not an integer: "
                f"{record.seg_path_or_label!r}"
            ) from e
        if not 0 <= label <= 255:
            raise ManifestError(
                f"Image label for {record.image_path} must be in [0, 255], got {label}"
            )
        return uniform_mask(height, width, label)
    return uniform_mask(height, width, img_cfg.ignore_label)


def _decode_window(
    record: WindowRecord, config: WindowClsDataConfig
) -> tuple[tv_tensors.Image, tv_tensors.Mask, int, int]:
    """Decode the record's image and label surface and crop its window."""
    img_cfg = config.image_data
    raster, native_h, native_w = read_image(
        resolve_path(img_cfg.root_folder, record.image_path),
        is_color=img_cfg.is_color,
    )
    image = to_image(raster)
    mask = _label_surface(record, config, native_h, native_w)
    image, mask = pad_and_crop_window(image, mask, record.window, img_cfg.ignore_label)
    return image, mask, native_h, native_w


def _placeholder_window(
    record: WindowRecord, config: WindowClsDataConfig
) -> tuple[tv_tensors.Image, tv_tensors.Mask, int, int]:
    """Blank window of the record's size whose label vector is all zero."""
    window = record.window
    height, width = max(1, window.height), max(1, window.width)
    image = tv_tensors.Image(
        torch.zeros((config.image_data.channels, height, width), dtype=torch.uint8)
    )
    return image, uniform_mask(height, width, DONT_CARE_LABEL), 0, 0


def extract_window(
    record: WindowRecord,
    config: WindowClsDataConfig,
    transform: PairTransform | None = None,
    out_size: tuple[int, int] | None = None,
) -> WindowSample:
    """Decode, pad, crop, resize and augment one window.

    Args:
        record: Manifest entry to extract.
        config: Data source configuration.
        transform: Joint (image, mask) transform applied after resizing,
            typically from ``build_window_transform``. Without one the crop
            is only converted to float32.
        out_size: (height, width) of the output buffer; the reported
            original dimensions are clamped to it.

    Raises:
        ImageDecodeError: If decoding fails and ``on_decode_error`` is not
            ``"placeholder"``.
        WindowBoundsError: If the window is inconsistent with the image.
        LabelRangeError: If the label surface holds an out-of-range class.
    """
    try:
        image, mask, native_h, native_w = _decode_window(record, config)
    except ImageDecodeError as e:
        if config.on_decode_error != "placeholder":
            raise
        logger.warning(f"{e}; substituting a blank window")
        image, mask, native_h, native_w = _placeholder_window(record, config)

    resize_to = config.image_data.resize_to
    if resize_to is not None:
        image, mask = resize_window(image, mask, *resize_to)

    if transform is not None:
        image, mask = transform(image, mask)
    else:
        image = tv_tensors.wrap(image.to(torch.float32), like=image)

    if out_size is not None:
        dims = (min(out_size[0], native_h), min(out_size[1], native_w))
    else:
        dims = (native_h, native_w)

    return WindowSample(
        image=image.as_subclass(torch.Tensor),
        label=label_vector(mask, config.label_dim),
        original_dims=dims,
    )
