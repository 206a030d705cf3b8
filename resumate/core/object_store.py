from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path, PurePosixPath

from resumate.core.config import settings

logger = logging.getLogger(__name__)


class ObjectStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredObject:
    url: str
    path: str


def object_path_for(owner_id: str, record_id: str) -> str:
    return f"resumes/{owner_id}/{record_id}.png"


class LocalObjectStore:
    """Filesystem-backed object store; uploads to an existing path overwrite it."""

    def __init__(self, root: str | Path, public_base_url: str = "/files"):
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise ObjectStoreError(f"Invalid object path '{path}'.")
        return self._root.joinpath(*relative.parts)

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}/{path}"

    def upload(self, data: bytes, path: str) -> StoredObject:
        target = self._resolve(path)
        tmp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, target)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ObjectStoreError(f"Failed to store object '{path}': {exc}") from exc
        logger.info("object_store_upload path=%s bytes=%s", path, len(data))
        return StoredObject(url=self.public_url(path), path=path)

    def read(self, path: str) -> bytes | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        return target.read_bytes()

    def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def delete_prefix(self, prefix: str) -> int:
        base = self._resolve(prefix)
        if not base.is_dir():
            return 0
        deleted = 0
        for item in sorted(base.rglob("*"), reverse=True):
            if item.is_file():
                item.unlink()
                deleted += 1
            elif item.is_dir():
                item.rmdir()
        base.rmdir()
        return deleted


@lru_cache(maxsize=1)
def get_object_store() -> LocalObjectStore:
    return LocalObjectStore(settings.object_store_dir, settings.object_store_public_base_url)
