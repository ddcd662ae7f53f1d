"""
Tests for the local artifact store.
"""

from unittest.mock import patch

import pytest

from lessonscribe.extraction.errors import ArtifactPersistenceError
from lessonscribe.storage.artifact_store import LocalArtifactStore


class TestLocalArtifactStore:
    """Test writing artifacts under a root directory."""

    def test_put_creates_nested_file(self, tmp_path):
        store = LocalArtifactStore(tmp_path)
        store.put("comparison-reports/2.5-1.json", b'{"ok": true}', "application/json")
        assert (tmp_path / "comparison-reports" / "2.5-1.json").read_bytes() == b'{"ok": true}'

    def test_put_overwrites(self, tmp_path):
        store = LocalArtifactStore(tmp_path)
        store.put("a.json", b"1", "application/json")
        store.put("a.json", b"2", "application/json")
        assert (tmp_path / "a.json").read_bytes() == b"2"

    @pytest.mark.parametrize("key", ["../escape.json", "/etc/passwd", "a/../../b.json", ""])
    def test_rejects_keys_outside_root(self, tmp_path, key):
        with pytest.raises(ArtifactPersistenceError):
            LocalArtifactStore(tmp_path).put(key, b"x", "application/json")

    def test_os_error_wrapped(self, tmp_path):
        store = LocalArtifactStore(tmp_path)
        with patch("pathlib.Path.write_bytes", side_effect=PermissionError("read-only")):
            with pytest.raises(ArtifactPersistenceError) as exc_info:
                store.put("r.json", b"x", "application/json")
        assert exc_info.value.key == "r.json"
