"""Background prefetching of fixed-size window batches.

The producer keeps one batch in flight: while the training loop works on
batch N, a single worker thread extracts the windows of batch N+1 into a
prefetch buffer. ``next_batch`` joins that worker, hands a copy of the
buffer to the caller and immediately starts the next fill.
"""

from __future__ import annotations

import concurrent.futures
import threading
import time
from collections.abc import Callable, Iterator
from enum import Enum
from functools import partial
from typing import Any

import torch
from loguru import logger

from window_data.config import WindowClsDataConfig
from window_data.data.extractor import extract_window
from window_data.data.manifest import Manifest, WindowRecord
from window_data.data.utils import resolve_path
from window_data.errors import ImageDecodeError, PrefetchInFlightError
from window_data.io.image import read_image
from window_data.transforms.augment import build_window_transform
from window_data.types import WindowBatch, WindowSample

__all__ = ["PrefetchState", "PrefetchingBatchProducer"]

Extractor = Callable[[WindowRecord], WindowSample]

_THREAD_PREFIX = "window-prefetch"


class PrefetchState(Enum):
    IDLE = "idle"
    FILLING = "filling"


def _allocate_batch(
    batch_size: int, image_shape: tuple[int, int, int], label_dim: int
) -> WindowBatch:
    return {
        "images": torch.zeros((batch_size, *image_shape), dtype=torch.float32),
        "labels": torch.zeros((batch_size, label_dim), dtype=torch.float32),
        "original_dims": torch.zeros((batch_size, 2), dtype=torch.float32),
    }


def _native_size(manifest: Manifest, config: WindowClsDataConfig) -> tuple[int, int]:
    """(height, width) of the first readable image from the cursor on.

    Under the "raise" policy only the current record is tried. Otherwise
    unreadable images are passed over, as the worker would.
    """
    img_cfg = config.image_data
    attempts = 1 if config.on_decode_error == "raise" else len(manifest)
    for offset in range(attempts):
        record = manifest[(manifest.cursor + offset) % len(manifest)]
        try:
            raster, _, _ = read_image(
                resolve_path(img_cfg.root_folder, record.image_path),
                is_color=img_cfg.is_color,
            )
        except ImageDecodeError as e:
            if attempts == 1:
                raise
            logger.warning(f"Cannot size output buffer from {record.image_path}: {e}")
            continue
        return raster.shape[0], raster.shape[1]
    raise ImageDecodeError(
        f"No image in {img_cfg.source} could be read to size the output buffer; "
        "set crop_size or new_height/new_width"
    )


def _extract_next(
    manifest: Manifest,
    extract: Extractor,
    skip_errors: tuple[type[BaseException], ...],
) -> WindowSample:
    for _ in range(len(manifest)):
        record = manifest.next_record()
        try:
            return extract(record)
        except skip_errors as e:
            logger.warning(f"Skipping {record.image_path}: {e}")
    raise RuntimeError(
        f"No record in the manifest could be extracted ({len(manifest)} tried)"
    )


def _fill_batch(
    manifest: Manifest,
    extract: Extractor,
    buffers: WindowBatch,
    batch_size: int,
    skip_errors: tuple[type[BaseException], ...],
) -> None:
    # Must not hold a reference to the producer: the last one dropped
    # mid-fill would otherwise run __del__ on the worker thread.
    batch_start = time.perf_counter()
    for item_id in range(batch_size):
        sample = _extract_next(manifest, extract, skip_errors)
        buffers["images"][item_id].copy_(sample.image)
        buffers["labels"][item_id].copy_(sample.label)
        buffers["original_dims"][item_id, 0] = sample.original_dims[0]
        buffers["original_dims"][item_id, 1] = sample.original_dims[1]
    elapsed_ms = (time.perf_counter() - batch_start) * 1000
    logger.debug(
        f"Prefetch batch: {elapsed_ms:.1f} ms "
        f"({elapsed_ms / batch_size:.1f} ms/window)"
    )


class PrefetchingBatchProducer:
    """Fill batches from a Manifest on a single background worker.

    State machine: ``IDLE`` --start_prefetch--> ``FILLING``
    --join_prefetch--> ``IDLE``. At most one fill is ever in flight; a second
    ``start_prefetch`` while filling raises ``PrefetchInFlightError``.

    Args:
        manifest: Records to cycle through. Only the worker advances its
            cursor once the producer is built.
        extract: Callable mapping a record to a WindowSample whose image has
            shape ``image_shape`` and whose label has ``label_dim`` entries.
        batch_size: Samples per batch.
        image_shape: (C, H, W) of every extracted image.
        label_dim: Length of the multi-hot label vector.
        skip_errors: Exception types that make the worker skip a record and
            try the next one instead of failing the batch.
    """

    def __init__(
        self,
        manifest: Manifest,
        extract: Extractor,
        batch_size: int,
        image_shape: tuple[int, int, int],
        label_dim: int,
        skip_errors: tuple[type[BaseException], ...] = (),
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._manifest = manifest
        self._extract = extract
        self.batch_size = batch_size
        self.image_shape = image_shape
        self.label_dim = label_dim
        self._skip_errors = skip_errors

        self._prefetch = _allocate_batch(batch_size, image_shape, label_dim)
        self._executor: concurrent.futures.ThreadPoolExecutor | None = (
            concurrent.futures.ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=_THREAD_PREFIX
            )
        )
        self._future: concurrent.futures.Future[None] | None = None
        # True once a fill has been joined and not yet handed out.
        self._ready = False

    # ------------------------------------------------------------------
    # Construction from configuration
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: WindowClsDataConfig) -> PrefetchingBatchProducer:
        """Load the manifest and size the output buffers from ``config``.

        The image buffer is ``crop_size`` square when set, else
        ``new_height`` x ``new_width``, else the native size of the first
        readable record from the cursor on.
        """
        img_cfg = config.image_data
        manifest = Manifest.from_file(
            img_cfg.source, img_cfg.label_type, shuffle=img_cfg.shuffle, seed=config.seed
        )
        manifest.skip(img_cfg.rand_skip)

        crop_size = config.transform.crop_size
        if crop_size > 0:
            out_size = (crop_size, crop_size)
        elif img_cfg.resize_to is not None:
            out_size = img_cfg.resize_to
        else:
            out_size = _native_size(manifest, config)

        image_shape = (img_cfg.channels, *out_size)
        batch_size = img_cfg.batch_size
        logger.info(
            f"output data size: {batch_size},{image_shape[0]},"
            f"{out_size[0]},{out_size[1]}"
        )
        logger.info(f"output label size: {batch_size},{config.label_dim}")
        logger.info(f"output data_dim size: {batch_size},2")

        transform = build_window_transform(
            config.transform, out_size, img_cfg.ignore_label, config.phase
        )
        extract = partial(
            extract_window, config=config, transform=transform, out_size=out_size
        )
        skip_errors = (ImageDecodeError,) if config.on_decode_error == "skip" else ()
        return cls(
            manifest,
            extract,
            batch_size=batch_size,
            image_shape=image_shape,
            label_dim=config.label_dim,
            skip_errors=skip_errors,
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def manifest(self) -> Manifest:
        return self._manifest

    @property
    def state(self) -> PrefetchState:
        return PrefetchState.IDLE if self._future is None else PrefetchState.FILLING

    def start_prefetch(self) -> None:
        """Begin filling the prefetch buffer in the background."""
        if self._executor is None:
            raise RuntimeError("Producer is closed")
        if self._future is not None:
            raise PrefetchInFlightError(
                "A prefetch is already in flight; call join_prefetch() first"
            )
        self._ready = False
        self._future = self._executor.submit(
            _fill_batch,
            self._manifest,
            self._extract,
            self._prefetch,
            self.batch_size,
            self._skip_errors,
        )

    def join_prefetch(self) -> None:
        """Wait for the in-flight fill, re-raising any worker error."""
        future, self._future = self._future, None
        if future is not None:
            future.result()
            self._ready = True

    def next_batch(self) -> WindowBatch:
        """Return the next full batch and start prefetching the one after."""
        if self._future is None and not self._ready:
            self.start_prefetch()
        self.join_prefetch()
        batch: WindowBatch = {
            "images": self._prefetch["images"].clone(),
            "labels": self._prefetch["labels"].clone(),
            "original_dims": self._prefetch["original_dims"].clone(),
        }
        self.start_prefetch()
        return batch

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[WindowBatch]:
        while True:
            yield self.next_batch()

    def close(self) -> None:
        """Join any in-flight fill and release the worker thread."""
        if self._executor is None:
            return
        try:
            self.join_prefetch()
        finally:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> PrefetchingBatchProducer:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        executor = getattr(self, "_executor", None)
        if executor is not None:
            # A thread cannot join itself.
            on_worker = threading.current_thread().name.startswith(_THREAD_PREFIX)
            executor.shutdown(wait=not on_worker)

    def __repr__(self) -> str:
        return (
            f"PrefetchingBatchProducer(batch_size={self.batch_size}, "
            f"image_shape={self.image_shape}, label_dim={self.label_dim}, "
            f"state={self.state.value})"
        )
