"""Local object storage for uploaded files.

Objects are addressed by a relative path ("content/video/<uid>/<name>") and
stored under a root directory. The web app serves that directory under the
storage's base URL.
"""

from __future__ import annotations

import time
from pathlib import Path

import structlog

from skillforge.core.errors import InvalidArgumentError
from skillforge.utils.text_utils import safe_filename

logger = structlog.get_logger(__name__)


def build_storage_path(
    content_type: str, uid: str, filename: str, timestamp_ms: int | None = None
) -> str:
    """Storage path for an upload: content/{type}/{uid}/{epoch_ms}_{filename}."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"content/{content_type}/{safe_filename(uid)}/{timestamp_ms}_{safe_filename(filename)}"


class LocalObjectStorage:
    """Filesystem-backed object store."""

    def __init__(self, root: Path, base_url: str = "/media"):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise InvalidArgumentError(f"Storage path escapes the storage root: {path}")
        return target

    def put(self, path: str, data: bytes) -> str:
        """Write data at path and return its public URL."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("storage.put", path=path, size=len(data))
        return self.open_url(path)

    def get(self, path: str) -> bytes:
        """Read the object at path.

        Raises:
            FileNotFoundError: If no object exists at path
        """
        return self._resolve(path).read_bytes()

    def delete(self, path: str) -> bool:
        """Delete the object at path.

        Returns:
            True if deleted, False if it did not exist
        """
        target = self._resolve(path)
        if not target.exists():
            logger.warning("storage.delete_missing", path=path)
            return False
        target.unlink()
        logger.debug("storage.deleted", path=path)
        return True

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def open_url(self, path: str) -> str:
        """Public URL for an object."""
        self._resolve(path)
        return f"{self.base_url}/{path}"
