"""Image and label-mask decoding."""

from window_data.io.image import read_image, read_label_image

__all__ = ["read_image", "read_label_image"]
