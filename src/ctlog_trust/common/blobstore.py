"""Directory-backed blob map, one file per key, as a secret or configmap is mounted."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Mapping, Optional

import structlog

from .errors import BlobStoreError


LOGGER = structlog.get_logger("ctlog_trust.common.blobstore")


def _validate_name(name: str) -> None:
    if not name or name.startswith(".") or "/" in name or name in {".", ".."}:
        raise BlobStoreError(f"invalid blob key {name!r}")


class DirectoryBlobStore:
    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def load(self) -> dict[str, bytes]:
        if not self._root.is_dir():
            raise BlobStoreError(f"blob directory not found: {self._root}")
        blobs: dict[str, bytes] = {}
        try:
            # Kubernetes keeps its atomic-writer bookkeeping in dot entries (..data).
            for path in sorted(self._root.iterdir()):
                if path.name.startswith(".") or not path.is_file():
                    continue
                blobs[path.name] = path.read_bytes()
        except OSError as exc:
            raise BlobStoreError(f"failed to read blobs from {self._root}: {exc}") from exc
        return blobs

    def save(
        self,
        blobs: Mapping[str, bytes],
        *,
        prune: Optional[Callable[[str], bool]] = None,
    ) -> list[str]:
        """Write every blob, then delete stale files selected by ``prune``.

        Returns the names of the pruned files.
        """

        for name in blobs:
            _validate_name(name)
        pruned: list[str] = []
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            for name, data in blobs.items():
                staging = self._root / f".{name}.tmp"
                staging.write_bytes(data)
                os.replace(staging, self._root / name)
            if prune is not None:
                for path in sorted(self._root.iterdir()):
                    if path.name.startswith(".") or path.name in blobs or not path.is_file():
                        continue
                    if prune(path.name):
                        path.unlink()
                        pruned.append(path.name)
        except OSError as exc:
            raise BlobStoreError(f"failed to write blobs to {self._root}: {exc}") from exc
        LOGGER.info("blobs_saved", directory=str(self._root), keys=sorted(blobs), pruned=pruned)
        return pruned
