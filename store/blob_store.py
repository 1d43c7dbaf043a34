"""Filesystem blob store returning file:// URLs."""

import logging
from pathlib import Path

from config.exceptions import BlobPermissionError, BlobStoreError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Stores uploads under a root directory.

    References are the normalized relative upload path; ``get_url`` resolves
    them to ``file://`` URLs.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._denied: list[str] = []

    def deny(self, prefix: str) -> None:
        """Reject uploads below ``prefix`` (storage/unauthorized)."""
        self._denied.append(prefix.strip("/"))

    def _resolve(self, reference: str) -> Path:
        parts = [p for p in reference.strip("/").split("/") if p not in ("", ".", "..")]
        if not parts:
            raise BlobStoreError("Empty blob path", {"path": reference})
        return self.root.joinpath(*parts)

    def upload(self, path: str, data: bytes) -> str:
        reference = path.strip("/")
        for prefix in self._denied:
            if reference == prefix or reference.startswith(prefix + "/"):
                raise BlobPermissionError(path)
        target = self._resolve(reference)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise BlobStoreError(f"Upload failed: {e}", {"path": path}) from e
        logger.info("Uploaded %d bytes to %s", len(data), reference)
        return reference

    def get_url(self, reference: str) -> str:
        target = self._resolve(reference)
        if not target.exists():
            raise BlobStoreError(f"Blob not found: {reference}", {"path": reference})
        return target.resolve().as_uri()
