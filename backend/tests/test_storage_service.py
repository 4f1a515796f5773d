"""Tests for upload-directory reporting and path resolution."""

from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from propcrawl.services.storage_service import StorageManager, format_bytes  # noqa: E402
from propcrawl.utils.exceptions import PathTraversalError  # noqa: E402


class TestFormatBytes:
    @pytest.mark.parametrize(
        "size, expected",
        [(0, "0 Bytes"), (512, "512 Bytes"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5 MB")],
    )
    def test_values(self, size, expected):
        assert format_bytes(size) == expected


class TestStorageManager:
    def test_stats_count_files_images_and_properties(self, storage):
        for zpid in ("1", "2"):
            folder = storage.properties_root / zpid
            folder.mkdir()
            (folder / "hero.jpg").write_bytes(b"x" * 100)
        (storage.root / "readme.txt").write_text("hello")

        stats = storage.get_storage_stats()

        assert stats["total_files"] == 3
        assert stats["images_count"] == 2
        assert stats["properties_count"] == 2
        assert stats["total_size_bytes"] == 205

    def test_disk_warning_above_ratio(self, tmp_path):
        manager = StorageManager(str(tmp_path), max_storage_mb=1, warning_ratio=0.5)
        (tmp_path / "big.bin").write_bytes(b"x" * 600 * 1024)

        warning = manager.get_disk_usage_warning()

        assert warning["warning"] is True
        assert "1 MB" in warning["message"]

    def test_no_warning_below_ratio(self, storage):
        assert storage.get_disk_usage_warning()["warning"] is False

    def test_recent_properties_newest_first(self, storage):
        older = storage.properties_root / "old"
        newer = storage.properties_root / "new"
        older.mkdir()
        newer.mkdir()
        os.utime(older, (1_000_000, 1_000_000))

        recent = storage.list_recent_properties(limit=5)

        assert [entry["property_id"] for entry in recent] == ["new", "old"]

    def test_missing_root_reports_zero(self, tmp_path):
        manager = StorageManager(str(tmp_path / "absent"))
        assert manager.get_storage_stats()["total_files"] == 0
        assert manager.list_recent_properties() == []


class TestResolveUploadPath:
    def test_inside_root(self, storage):
        path = storage.resolve_upload_path("properties/1/hero.jpg")
        assert path == storage.root / "properties" / "1" / "hero.jpg"

    def test_leading_slash_stays_inside(self, storage):
        path = storage.resolve_upload_path("/properties/1/hero.jpg")
        assert storage.root in path.parents

    @pytest.mark.parametrize("raw", ["../secret.txt", "properties/../../secret.txt"])
    def test_dot_dot_rejected(self, storage, raw):
        with pytest.raises(PathTraversalError):
            storage.resolve_upload_path(raw)

    def test_symlink_out_of_root_rejected(self, storage, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("x")
        (storage.root / "link.txt").symlink_to(outside)
        with pytest.raises(PathTraversalError):
            storage.resolve_upload_path("link.txt")
