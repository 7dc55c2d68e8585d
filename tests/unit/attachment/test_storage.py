"""Tests for blob storage helpers."""

import pytest

from commentboard.core.modules.attachment.storage import build_blob_url, delete_blob, get_blob_path, write_blob


class TestBlobPaths:
    """Tests for get_blob_path function."""

    def test_path_inside_storage(self, tmp_path):
        """Test that blob names resolve inside the storage directory."""
        path = get_blob_path(str(tmp_path), "images/1-abc-cat.jpg")
        assert path == (tmp_path / "images" / "1-abc-cat.jpg").resolve()

    @pytest.mark.parametrize("blob_name", ["../secret.txt", "images/../../secret.txt", ".", ""])
    def test_escaping_names_rejected(self, tmp_path, blob_name):
        """Test that names escaping the storage directory or naming it are rejected."""
        with pytest.raises(ValueError):
            get_blob_path(str(tmp_path), blob_name)


class TestWriteDelete:
    """Tests for writing and deleting blobs."""

    def test_write_creates_directories(self, tmp_path):
        """Test that writing creates the type directory."""
        path = write_blob(str(tmp_path), "texts/1-abc-notes.txt", b"hello")
        assert path.read_bytes() == b"hello"

    def test_delete_missing_is_noop(self, tmp_path):
        """Test that deleting a blob that does not exist succeeds."""
        delete_blob(str(tmp_path), "texts/missing.txt")

    def test_delete(self, tmp_path):
        """Test that a written blob can be removed."""
        path = write_blob(str(tmp_path), "texts/1-abc-notes.txt", b"hello")
        delete_blob(str(tmp_path), "texts/1-abc-notes.txt")
        assert not path.exists()


class TestBlobUrl:
    """Tests for build_blob_url function."""

    def test_joins_prefix(self):
        """Test that the locator is the public prefix plus the blob name."""
        assert build_blob_url("/api/v1/attachments/", "images/a.jpg") == "/api/v1/attachments/images/a.jpg"
