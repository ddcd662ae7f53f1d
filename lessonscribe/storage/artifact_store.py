"""
Artifact stores for comparison reports.

A store maps a slash-separated key to a blob of bytes. The extraction
engine writes exactly one artifact per comparison and treats storage
failures as warnings.
"""

from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath

from lessonscribe.config import REPORTS_DIR
from lessonscribe.extraction.errors import ArtifactPersistenceError
from lessonscribe.logging_config import debug_log


class ArtifactStore(ABC):
    """Destination for comparison artifacts."""

    @abstractmethod
    def put(self, key: str, content: bytes, content_type: str) -> None:
        """
        Store content under key.

        Args:
            key: Slash-separated artifact key
            content: Encoded artifact
            content_type: MIME type of content

        Raises:
            ArtifactPersistenceError: If the artifact cannot be stored
        """
        pass


class LocalArtifactStore(ArtifactStore):
    """
    Stores artifacts as files under a root directory.

    Key segments become subdirectories. Keys that would escape the root
    (absolute paths or '..' segments) are rejected.

    Example:
        store = LocalArtifactStore()
        store.put("comparison-reports/2.5-1700000000000.json", data, "application/json")
    """

    def __init__(self, root: Path | str = REPORTS_DIR):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        """Resolve a key to a file path under the root."""
        parts = PurePosixPath(key).parts
        if not parts or PurePosixPath(key).is_absolute() or '..' in parts:
            raise ArtifactPersistenceError(key, "Invalid artifact key")
        return self.root.joinpath(*parts)

    def put(self, key: str, content: bytes, content_type: str) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise ArtifactPersistenceError(key, f"Could not write artifact: {e}") from e

        debug_log(f"[ArtifactStore] Wrote {len(content)} bytes ({content_type}) to {path}")
