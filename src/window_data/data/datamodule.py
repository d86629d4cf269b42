"""LightningDataModule serving prefetched window batches."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import lightning as L
from loguru import logger
from omegaconf import DictConfig, OmegaConf
from torch.utils.data import DataLoader, IterableDataset

from window_data.config import WindowClsDataConfig
from window_data.data.producer import PrefetchingBatchProducer
from window_data.types import WindowBatch
from window_data.utils.hydra import register


class WindowIterableDataset(IterableDataset[WindowBatch]):
    """Expose a producer's already-assembled batches to a DataLoader.

    The producer cycles forever; ``batches_per_epoch`` bounds one pass of
    the DataLoader. Must be loaded with ``batch_size=None`` and
    ``num_workers=0``: batching and background work happen in the producer.
    """

    def __init__(
        self,
        producer: PrefetchingBatchProducer,
        batches_per_epoch: int | None = None,
    ) -> None:
        self.producer = producer
        self.batches_per_epoch = batches_per_epoch

    def __iter__(self) -> Iterator[WindowBatch]:
        produced = 0
        for batch in self.producer:
            yield batch
            produced += 1
            if self.batches_per_epoch is not None and produced >= self.batches_per_epoch:
                return

    def __len__(self) -> int:
        if self.batches_per_epoch is None:
            raise TypeError("Unbounded WindowIterableDataset has no length")
        return self.batches_per_epoch


def _to_plain(value: Any) -> Any:
    if isinstance(value, DictConfig):
        return OmegaConf.to_container(value, resolve=True)
    return value


@register(name="window_cls")
class WindowDataModule(L.LightningDataModule):
    """DataModule for window classification manifests.

    Args:
        config: Frozen WindowClsDataConfig. If provided, the flat kwargs
            below are ignored.
        image_data: ImageDataConfig fields (used when config is None, e.g. Hydra).
        transform: TransformConfig fields.
        label_dim: Length of the multi-hot label vector.
        phase: "train" enables random crops and mirroring.
        seed: Seed for manifest shuffling and random skip.
        on_decode_error: Policy for unreadable images.
        batches_per_epoch: Batches per DataLoader pass; ``None`` defaults to
            one pass over the manifest.
        pin_memory: Whether to pin DataLoader memory.
        **kwargs: Absorbs extra Hydra-injected keys (_target_, _recursive_, etc.).
    """

    def __init__(
        self,
        config: WindowClsDataConfig | None = None,
        *,
        image_data: dict[str, Any] | None = None,
        transform: dict[str, Any] | None = None,
        label_dim: int = 1,
        phase: str = "train",
        seed: int | None = None,
        on_decode_error: str = "placeholder",
        batches_per_epoch: int | None = None,
        pin_memory: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__()
        if config is not None:
            self._config = config
        else:
            self._config = WindowClsDataConfig.model_validate(
                {
                    "image_data": _to_plain(image_data) or {},
                    "transform": _to_plain(transform) or {},
                    "label_dim": label_dim,
                    "phase": phase,
                    "seed": seed,
                    "on_decode_error": on_decode_error,
                }
            )
        self._batches_per_epoch = batches_per_epoch
        self._pin_memory = pin_memory
        self._producer: PrefetchingBatchProducer | None = None
        self._train_dataset: WindowIterableDataset | None = None

    @property
    def config(self) -> WindowClsDataConfig:
        return self._config

    @property
    def num_classes(self) -> int:
        return self._config.label_dim

    # ------------------------------------------------------------------
    # LightningDataModule lifecycle
    # ------------------------------------------------------------------

    def setup(self, stage: str | None = None) -> None:
        """Build the producer for the "fit" stage (or all stages when None)."""
        if stage not in ("fit", None) or self._producer is not None:
            return
        self._producer = PrefetchingBatchProducer.from_config(self._config)
        batches = self._batches_per_epoch
        if batches is None:
            batches = -(-len(self._producer.manifest) // self._producer.batch_size)
        self._train_dataset = WindowIterableDataset(self._producer, batches)
        logger.info(
            f"Setup fit: {len(self._producer.manifest)} windows, "
            f"{batches} batches/epoch"
        )

    def train_dataloader(self) -> DataLoader[WindowBatch]:
        """Return a DataLoader over prefetched batches (no re-batching)."""
        if self._train_dataset is None:
            raise RuntimeError("Call setup('fit') first")
        return DataLoader(
            self._train_dataset,
            batch_size=None,
            num_workers=0,
            pin_memory=self._pin_memory,
        )

    def teardown(self, stage: str | None = None) -> None:
        """Join the background fill and release the producer."""
        if self._producer is not None:
            self._producer.close()
            self._producer = None
            self._train_dataset = None
