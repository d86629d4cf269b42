"""Exceptions raised by the window data pipeline.

Each error subclasses the builtin the rest of the code base would
otherwise raise, so ``except ValueError`` keeps working for callers that
do not care about the distinction.
"""


class ManifestError(ValueError):
    """The manifest is empty, malformed, or too short for the requested skip."""


class WindowBoundsError(ValueError):
    """A crop window still falls outside the image after padding."""


class LabelRangeError(ValueError):
    """A label pixel maps outside the multi-hot vector."""


class ImageDecodeError(OSError):
    """An image or label mask could not be read from disk."""


class PrefetchInFlightError(RuntimeError):
    """A prefetch was requested while another one is still running."""
