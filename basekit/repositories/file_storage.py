"""File storage adapters for uploaded content."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from basekit.core.errors import UploadError

logger = logging.getLogger(__name__)


class FileStorage(Protocol):
    def save(self, rel_path: str, data: bytes) -> str:
        """Persist ``data`` under ``rel_path`` and return where it ended up."""
        ...


class LocalFileStorage:
    """Stores files below a root directory on the local filesystem."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    @staticmethod
    def safe_relative(rel_path: str) -> str:
        return rel_path.lstrip("/").replace("..", "_")

    def save(self, rel_path: str, data: bytes) -> str:
        full = self._root / self.safe_relative(rel_path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_bytes(data)
        except OSError as exc:
            logger.error("Failed to write %s: %s", full, exc)
            raise UploadError(f"write {full} failed: {exc}") from exc
        return str(full.resolve())
