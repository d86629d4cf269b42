"""Manifest loading, window extraction and batch prefetching."""

from window_data.data.datamodule import WindowDataModule, WindowIterableDataset
from window_data.data.extractor import extract_window, label_vector
from window_data.data.manifest import (
    Manifest,
    WindowRecord,
    parse_manifest_line,
    read_manifest,
)
from window_data.data.producer import PrefetchingBatchProducer, PrefetchState

__all__ = [
    "Manifest",
    "PrefetchState",
    "PrefetchingBatchProducer",
    "WindowDataModule",
    "WindowIterableDataset",
    "WindowRecord",
    "extract_window",
    "label_vector",
    "parse_manifest_line",
    "read_manifest",
]
