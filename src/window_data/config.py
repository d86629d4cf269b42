"""Pydantic frozen configuration models for window_data."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from window_data.types import LabelType


class ImageDataConfig(BaseModel, frozen=True):
    """Where the manifest lives and how its images are read.

    ``new_height`` / ``new_width`` must be set together; 0 keeps the
    native window size.
    """

    source: str
    root_folder: str = ""
    batch_size: int = Field(default=1, gt=0)
    new_height: int = Field(default=0, ge=0)
    new_width: int = Field(default=0, ge=0)
    is_color: bool = True
    label_type: LabelType = LabelType.NONE
    shuffle: bool = False
    rand_skip: int = Field(default=0, ge=0)
    ignore_label: int = Field(default=255, ge=0, le=255)

    @model_validator(mode="after")
    def _new_size_set_together(self) -> ImageDataConfig:
        if (self.new_height == 0) != (self.new_width == 0):
            raise ValueError(
                "new_height and new_width must be set at the same time "
                f"(got new_height={self.new_height}, new_width={self.new_width})"
            )
        return self

    @property
    def channels(self) -> int:
        return 3 if self.is_color else 1

    @property
    def resize_to(self) -> tuple[int, int] | None:
        """(height, width) every window is resized to, or None for native size."""
        if self.new_height > 0 and self.new_width > 0:
            return self.new_height, self.new_width
        return None


class TransformConfig(BaseModel, frozen=True):
    """Augmentation applied after the window is cropped.

    ``mean_file`` exists only so that configs carrying one are rejected
    loudly instead of being silently ignored.
    """

    crop_size: int = Field(default=0, ge=0)
    mirror: bool = False
    scale: float = 1.0
    mean_values: list[float] = Field(default_factory=list)
    mean_file: str | None = None

    @model_validator(mode="after")
    def _reject_mean_file(self) -> TransformConfig:
        if self.mean_file is not None:
            raise ValueError("mean_file is not supported; use mean_values instead")
        return self


class WindowClsDataConfig(BaseModel, frozen=True):
    """Top-level configuration for the window classification data source.

    on_decode_error:
        placeholder: substitute a blank window with an all-zero label.
        skip: move on to the next manifest record.
        raise: propagate the decode error to the consumer.
    """

    image_data: ImageDataConfig
    transform: TransformConfig = Field(default_factory=TransformConfig)
    label_dim: int = Field(gt=0)
    phase: Literal["train", "test"] = "train"
    seed: int | None = None
    on_decode_error: Literal["placeholder", "skip", "raise"] = "placeholder"

    @model_validator(mode="after")
    def _mean_values_match_channels(self) -> WindowClsDataConfig:
        n_mean = len(self.transform.mean_values)
        channels = self.image_data.channels
        if n_mean not in (0, 1, channels):
            raise ValueError(
                f"mean_values must have 1 or {channels} entries, got {n_mean}"
            )
        return self
