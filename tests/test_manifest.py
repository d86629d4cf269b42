"""Tests for manifest parsing and the Manifest cursor."""

from collections import Counter
from pathlib import Path

import pytest

from window_data.data.manifest import (
    Manifest,
    WindowRecord,
    parse_manifest_line,
    read_manifest,
)
from window_data.errors import ManifestError
from window_data.types import LabelType, Window


def _records(n: int) -> list[WindowRecord]:
    return [
        WindowRecord(image_path=f"img_{i:02d}.png", x1=i, y1=0, x2=i + 9, y2=9)
        for i in range(n)
    ]


def _one_pass(manifest: Manifest) -> list[str]:
    return [manifest.next_record().image_path for _ in range(len(manifest))]


class TestParseManifestLine:
    def test_none_label_type_has_no_label_token(self) -> None:
        record = parse_manifest_line("a/img.jpg 1 2 30 40", LabelType.NONE)
        assert record.image_path == "a/img.jpg"
        assert record.seg_path_or_label == ""
        assert record.window == Window(1, 2, 30, 40)

    def test_pixel_label_type_reads_mask_path(self) -> None:
        record = parse_manifest_line("img.jpg seg.png 0 0 9 9\n", LabelType.PIXEL)
        assert record.seg_path_or_label == "seg.png"

    def test_image_label_type_reads_class_token(self) -> None:
        record = parse_manifest_line("img.jpg 12 0 0 9 9", LabelType.IMAGE)
        assert record.seg_path_or_label == "12"

    def test_negative_and_oversized_coordinates_allowed(self) -> None:
        record = parse_manifest_line("img.jpg -5 -7 500 600", LabelType.NONE)
        assert record.window == Window(-5, -7, 500, 600)

    def test_any_whitespace_delimits(self) -> None:
        record = parse_manifest_line("img.jpg\tseg.png  1 2\t3 4", LabelType.PIXEL)
        assert record.window == Window(1, 2, 3, 4)

    def test_wrong_token_count_raises(self) -> None:
        with pytest.raises(ManifestError, match="expected 6 tokens"):
            parse_manifest_line("img.jpg 0 0 9 9", LabelType.PIXEL, lineno=3)

    def test_non_integer_coordinates_raise(self) -> None:
        with pytest.raises(ManifestError, match="integers"):
            parse_manifest_line("img.jpg 0 0 9.5 9", LabelType.NONE)

    def test_record_is_frozen(self) -> None:
        record = parse_manifest_line("img.jpg 0 0 9 9", LabelType.NONE)
        with pytest.raises(Exception):
            record.x1 = 4  # type: ignore[misc]


class TestReadManifest:
    def test_reads_file_order(self, window_dir: Path) -> None:
        records = read_manifest(window_dir / "manifest_pixel.txt", LabelType.PIXEL)
        assert [r.image_path for r in records] == ["img_a.png", "img_b.png"]
        assert [r.seg_path_or_label for r in records] == ["seg_a.png", "seg_b.png"]

    def test_blank_lines_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "m.txt"
        path.write_text("\na.png 0 0 1 1\n\n   \nb.png 0 0 1 1\n")
        assert len(read_manifest(path, LabelType.NONE)) == 2

    def test_error_reports_line_number(self, tmp_path: Path) -> None:
        path = tmp_path / "m.txt"
        path.write_text("a.png 0 0 1 1\nb.png 0 0 1\n")
        with pytest.raises(ManifestError, match="line 2"):
            read_manifest(path, LabelType.NONE)

    def test_empty_manifest_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("\n")
        with pytest.raises(ManifestError, match="no windows"):
            read_manifest(path, LabelType.NONE)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_manifest(tmp_path / "nope.txt", LabelType.NONE)


class TestManifestCursor:
    def test_visits_every_record_once_per_pass(self) -> None:
        manifest = Manifest(_records(7))
        first = _one_pass(manifest)
        assert first == [f"img_{i:02d}.png" for i in range(7)]
        assert manifest.cursor == 0
        assert manifest.epoch == 1

    def test_without_shuffle_passes_repeat(self) -> None:
        manifest = Manifest(_records(5))
        assert _one_pass(manifest) == _one_pass(manifest)
        assert manifest.epoch == 2

    def test_shuffle_reorders_across_passes_keeping_multiset(self) -> None:
        manifest = Manifest(_records(20), shuffle=True, seed=7)
        passes = [_one_pass(manifest) for _ in range(3)]
        for visited in passes:
            assert Counter(visited) == Counter(r.image_path for r in _records(20))
        assert passes[0] != passes[1] or passes[1] != passes[2]

    def test_shuffle_is_seeded(self) -> None:
        a = Manifest(_records(20), shuffle=True, seed=123)
        b = Manifest(_records(20), shuffle=True, seed=123)
        assert _one_pass(a) == _one_pass(b)
        assert _one_pass(a) == _one_pass(b)

    def test_current_does_not_advance(self) -> None:
        manifest = Manifest(_records(3))
        assert manifest.current() is manifest.current()
        assert manifest.cursor == 0

    def test_iteration_does_not_move_cursor(self) -> None:
        manifest = Manifest(_records(3))
        manifest.advance()
        assert [r.x1 for r in manifest] == [0, 1, 2]
        assert manifest.cursor == 1

    def test_empty_records_rejected(self) -> None:
        with pytest.raises(ManifestError):
            Manifest([])

    def test_from_file(self, window_dir: Path) -> None:
        manifest = Manifest.from_file(window_dir / "manifest_none.txt", LabelType.NONE)
        assert len(manifest) == 2
        assert manifest[1].image_path == "img_b.png"


class TestManifestSkip:
    def test_zero_rand_skip_keeps_cursor(self) -> None:
        manifest = Manifest(_records(4))
        assert manifest.skip(0) == 0
        assert manifest.cursor == 0

    def test_skip_lands_within_range(self) -> None:
        manifest = Manifest(_records(10), seed=3)
        skip = manifest.skip(10)
        assert 0 <= skip < 10
        assert manifest.cursor == skip
        assert manifest.current() is manifest[skip]

    def test_skip_beyond_manifest_raises(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        manifest = Manifest(_records(3), seed=0)
        monkeypatch.setattr(manifest._rng, "randrange", lambda n: 5)
        with pytest.raises(ManifestError, match="Not enough points to skip"):
            manifest.skip(100)
