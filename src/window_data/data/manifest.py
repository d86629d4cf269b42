"""Window manifest: records, parsing, and the shuffling cursor over them.

A manifest is a whitespace-delimited text file with one window per line::

    <image_path> [<seg_path_or_label>] <x1> <y1> <x2> <y2>

The middle token is present only when the label type is PIXEL or IMAGE.
"""

from __future__ import annotations

import random
from collections.abc import Iterator, Sequence
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from window_data.errors import ManifestError
from window_data.types import LabelType, Window


class WindowRecord(BaseModel, frozen=True):
    """One manifest line: an image, its label source, and an inclusive window."""

    image_path: str
    seg_path_or_label: str = ""
    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def window(self) -> Window:
        return Window(self.x1, self.y1, self.x2, self.y2)


def parse_manifest_line(
    line: str, label_type: LabelType, lineno: int | None = None
) -> WindowRecord:
    """Parse a single manifest line.

    Raises:
        ManifestError: On a wrong token count or non-integer coordinates.
    """
    tokens = line.split()
    expected = 5 if label_type == LabelType.NONE else 6
    where = f"line {lineno}" if lineno is not None else "manifest line"
    if len(tokens) != expected:
        raise ManifestError(
            f"{where}: expected {expected} tokens for label_type "
            f"{label_type.value}, got {len(tokens)}: {line.strip()!r}"
        )
    try:
        x1, y1, x2, y2 = (int(t) for t in tokens[-4:])
    except ValueError as e:
        raise ManifestError(f"{where}: window coordinates must be integers") from e
    return WindowRecord(
        image_path=tokens[0],
        seg_path_or_label=tokens[1] if expected == 6 else "",
        x1=x1,
        y1=y1,
        x2=x2,
        y2=y2,
    )


def read_manifest(path: str | Path, label_type: LabelType) -> list[WindowRecord]:
    """Read every non-blank line of ``path`` into a WindowRecord."""
    logger.info(f"Opening file {path}")
    records: list[WindowRecord] = []
    with open(path) as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            records.append(parse_manifest_line(line, label_type, lineno))
    if not records:
        raise ManifestError(f"Manifest {path} contains no windows")
    return records


class Manifest:
    """Ordered window records with a wrapping, optionally reshuffling cursor.

    The cursor and the shuffle generator are owned here and only mutated by
    ``advance`` / ``skip``, so a single consumer (the prefetch worker) can
    drive them without locking.

    Args:
        records: Windows in file order.
        shuffle: Permute the records now and again on every wraparound.
        seed: Seed for the manifest's private ``random.Random``. ``None``
            seeds from OS entropy.
    """

    def __init__(
        self,
        records: Sequence[WindowRecord],
        shuffle: bool = False,
        seed: int | None = None,
    ) -> None:
        if not records:
            raise ManifestError("Manifest contains no windows")
        self._records = list(records)
        self.shuffle = shuffle
        self._rng = random.Random(seed)
        self._cursor = 0
        self._epoch = 0

        if self.shuffle:
            logger.info("Shuffling data")
            self._shuffle()
        logger.info(f"A total of {len(self._records)} images.")

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        label_type: LabelType,
        shuffle: bool = False,
        seed: int | None = None,
    ) -> Manifest:
        return cls(read_manifest(path, label_type), shuffle=shuffle, seed=seed)

    def _shuffle(self) -> None:
        self._rng.shuffle(self._records)

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def epoch(self) -> int:
        """Number of completed passes over the records."""
        return self._epoch

    def skip(self, rand_skip: int) -> int:
        """Start the cursor at a random offset in ``[0, rand_skip)``.

        Returns the chosen offset (0 when ``rand_skip`` is 0).

        Raises:
            ManifestError: If the manifest is not longer than the offset.
        """
        if rand_skip <= 0:
            return 0
        skip = self._rng.randrange(rand_skip)
        logger.info(f"Skipping first {skip} data points.")
        if skip >= len(self._records):
            raise ManifestError(
                f"Not enough points to skip: {skip} requested, "
                f"{len(self._records)} available"
            )
        self._cursor = skip
        return skip

    def current(self) -> WindowRecord:
        return self._records[self._cursor]

    def advance(self) -> None:
        """Move to the next record, wrapping (and reshuffling) at the end."""
        self._cursor += 1
        if self._cursor >= len(self._records):
            logger.debug("Restarting data prefetching from start.")
            self._cursor = 0
            self._epoch += 1
            if self.shuffle:
                self._shuffle()

    def next_record(self) -> WindowRecord:
        record = self.current()
        self.advance()
        return record

    # ------------------------------------------------------------------
    # Sequence access (current order, cursor untouched)
    # ------------------------------------------------------------------

    @property
    def records(self) -> tuple[WindowRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, idx: int) -> WindowRecord:
        return self._records[idx]

    def __iter__(self) -> Iterator[WindowRecord]:
        return iter(tuple(self._records))

    def __repr__(self) -> str:
        return (
            f"Manifest(records={len(self)}, shuffle={self.shuffle}, "
            f"cursor={self._cursor}, epoch={self._epoch})"
        )
