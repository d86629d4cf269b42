"""Pull a few batches from a window manifest and report what they contain.

Usage:
    window-preview data.image_data.source=train.txt data.label_dim=20
    window-preview data.image_data.new_height=224 data.image_data.new_width=224
    window-preview num_batches=50 log_level=DEBUG        # per-batch timing
"""

from __future__ import annotations

import sys
import time

import hydra
import torch
from loguru import logger
from omegaconf import DictConfig, OmegaConf
from rich import box
from rich.console import Console
from rich.table import Table

from window_data.config import WindowClsDataConfig
from window_data.data.producer import PrefetchingBatchProducer


def class_presence_table(counts: torch.Tensor, total: int) -> Table:
    """Rich table of how many windows contained each class."""
    table = Table(
        title="Class Presence per Window",
        header_style="bold magenta",
        box=box.SQUARE,
    )
    table.add_column("Class", justify="right", style="cyan")
    table.add_column("Label Value", justify="right")
    table.add_column("Windows", justify="right", style="green")
    table.add_column("%", justify="right")
    for idx, count in enumerate(counts.tolist()):
        if count == 0:
            continue
        pct = 100.0 * count / total if total else 0.0
        table.add_row(str(idx), str(idx + 1), str(int(count)), f"{pct:.1f}")
    return table


@hydra.main(version_base=None, config_path="conf", config_name="preview_windows")
def main(cfg: DictConfig) -> None:
    """Build the producer from ``cfg.data`` and consume ``cfg.num_batches``."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))
    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    config = WindowClsDataConfig.model_validate(
        OmegaConf.to_container(cfg.data, resolve=True)
    )
    num_batches = int(cfg.get("num_batches", 10))

    counts = torch.zeros(config.label_dim)
    windows = 0
    with PrefetchingBatchProducer.from_config(config) as producer:
        start = time.perf_counter()
        for i in range(num_batches):
            batch = producer.next_batch()
            counts += batch["labels"].sum(dim=0)
            windows += batch["labels"].shape[0]
            if i == 0:
                logger.info(
                    f"images={tuple(batch['images'].shape)} "
                    f"labels={tuple(batch['labels'].shape)} "
                    f"original_dims={tuple(batch['original_dims'].shape)}"
                )
        elapsed = time.perf_counter() - start
        # The cursor belongs to the worker until the in-flight fill is joined.
        producer.join_prefetch()
        logger.info(
            f"Consumed {num_batches} batches ({windows} windows) in {elapsed:.2f}s; "
            f"cursor={producer.manifest.cursor}, epoch={producer.manifest.epoch}"
        )

    Console().print(class_presence_table(counts, windows))


if __name__ == "__main__":
    main()
