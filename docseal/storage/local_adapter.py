import os
import uuid
from pathlib import Path

from docseal.core.errors import ArtifactExistsError, StorageError, StorageObjectMissingError
from docseal.storage.base import BaseObjectStorage


class LocalObjectStorage(BaseObjectStorage):
    """Stores objects as files under a root directory.

    Write-once puts are published with ``os.link``, which fails atomically when
    the target exists, so a concurrent writer can never replace an artifact or
    observe a half-written one.
    """

    def __init__(self, files_root: Path) -> None:
        self._files_root = files_root

    def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        *,
        overwrite: bool = False,
    ) -> str:
        _ = content_type  # the filesystem keeps no metadata
        target = self._resolve(path)
        temp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            temp.write_bytes(data)
            if overwrite:
                os.replace(temp, target)
            else:
                os.link(temp, target)
        except FileExistsError as exc:
            raise ArtifactExistsError(f"Object already exists: {path}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to store {path}: {exc.strerror}") from exc
        finally:
            temp.unlink(missing_ok=True)
        return path

    def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise StorageObjectMissingError(f"Object not found: {path}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc.strerror}") from exc

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path}: {exc.strerror}") from exc

    def _resolve(self, path: str) -> Path:
        root = self._files_root.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root) or target == root:
            raise StorageError(f"Invalid storage path: {path}")
        return target
