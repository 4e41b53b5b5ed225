"""
Media Store
Blob storage for audio, screenshots and screen recordings.
"""
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from uuid import uuid4

from config import StorageSettings, get_storage_settings
from utils.exceptions import MediaStorageError


logger = logging.getLogger(__name__)


class BaseMediaStore(ABC):
    """
    Media storage boundary.

    Paths are relative keys such as ``audio/<job>.mp3``; every stored blob has
    a public URL that downstream collaborators can fetch.
    """

    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store (or overwrite) a blob and return its public URL."""
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Remove a blob. Returns False when it did not exist."""
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        pass

    def path_from_url(self, url: Optional[str]) -> Optional[str]:
        """Map a public URL produced by this store back to its key."""
        prefix = self.public_url("")
        if url and url.startswith(prefix):
            return url[len(prefix):] or None
        return None


class LocalMediaStore(BaseMediaStore):
    """Filesystem store; writes are atomic (temp file then rename)."""

    def __init__(self, root: Optional[str] = None, public_base_url: Optional[str] = None):
        settings: Optional[StorageSettings] = None
        if root is None or public_base_url is None:
            settings = get_storage_settings()
        self.root = Path(root if root is not None else settings.media_root)
        self.public_base_url = str(
            public_base_url if public_base_url is not None else settings.public_base_url
        ).rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        key = str(path or "").strip().lstrip("/")
        if not key:
            raise MediaStorageError("Empty media path")
        target = (self.root / key).resolve()
        if self.root.resolve() not in target.parents:
            raise MediaStorageError(f"Media path escapes store root: {path}")
        return target

    def put(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.parent / f".{target.name}.{uuid4().hex}.tmp"
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except OSError as exc:
            raise MediaStorageError(f"Failed to upload {path}: {exc}") from exc
        logger.debug("media_put path=%s bytes=%s content_type=%s", path, len(data), content_type)
        return self.public_url(path)

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            return False
        try:
            target.unlink()
        except OSError as exc:
            raise MediaStorageError(f"Failed to delete {path}: {exc}") from exc
        return True

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.exists():
            raise MediaStorageError(f"Media not found: {path}")
        return target.read_bytes()

    def public_url(self, path: str) -> str:
        key = str(path or "").strip().lstrip("/")
        return f"{self.public_base_url}/{key}"
