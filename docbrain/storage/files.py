# docbrain/storage/files.py

import logging
import os
import threading
from pathlib import Path
from typing import Iterable, List

from docbrain.config import UPLOAD_DIR
from docbrain.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class FileStorage:
    """
    Local-filesystem object store for uploaded files.

    Object paths are relative to the storage root; paths resolving
    outside of it are treated as missing.
    """

    def __init__(self, root: str = UPLOAD_DIR):

        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _resolve(self, path: str) -> Path:

        try:
            target = (self._root / path).resolve()

        except (OSError, ValueError) as e:
            raise NotFoundError(f"Invalid storage path: {path!r}") from e

        if target == self._root or self._root not in target.parents:
            raise NotFoundError(f"Invalid storage path: {path}")

        return target

    def download(self, path: str) -> bytes:

        target = self._resolve(path)

        try:

            data = target.read_bytes()

        except OSError as e:

            logger.warning(
                "Storage download failed",
                extra={"path": path, "error": str(e)},
            )

            raise NotFoundError(f"Object not found: {path}") from e

        logger.info(
            "Storage download complete",
            extra={"path": path, "size_bytes": len(data)},
        )

        return data

    def upload(self, path: str, data: bytes) -> str:

        target = self._resolve(path)

        with self._lock:

            if target.exists():
                raise ConflictError(f"Object already exists: {path}")

            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        logger.info(
            "Storage upload complete",
            extra={"path": path, "size_bytes": len(data)},
        )

        return path

    def remove(self, paths: Iterable[str]) -> List[str]:
        """Delete objects; returns the paths that were actually removed."""

        removed = []

        for path in paths:

            target = self._resolve(path)

            try:
                os.remove(target)
                removed.append(path)

            except FileNotFoundError:
                logger.warning("Storage remove: object missing", extra={"path": path})

        return removed
