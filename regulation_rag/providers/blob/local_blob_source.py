"""Local-directory regulation document source."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from regulation_rag.interfaces.blob_source import IBlobSource
from regulation_rag.models.regulation import ALLOWED_EXTENSIONS
from regulation_rag.utils.errors import BlobSourceError

logger = structlog.get_logger(logger_name=__name__)


class LocalBlobSource(IBlobSource):
    """Serves the supported files directly inside one directory (not recursive).

    A missing directory lists as empty; it is common for deployments to keep
    documents only in object storage.
    """

    def __init__(self, directory: str | Path, max_bytes: int = 20 * 1024 * 1024) -> None:
        self._directory = Path(directory)
        self._max_bytes = max_bytes

    async def list(self, prefix: str = "") -> list[str]:
        return await asyncio.to_thread(self._list_sync, prefix)

    def _list_sync(self, prefix: str) -> list[str]:
        if not self._directory.is_dir():
            return []
        try:
            names = [
                entry.name
                for entry in self._directory.iterdir()
                if entry.is_file()
                and not entry.name.startswith(".")
                and entry.suffix.lower() in ALLOWED_EXTENSIONS
                and entry.name.startswith(prefix)
            ]
        except OSError as exc:
            raise BlobSourceError(
                f"Cannot list {self._directory}: {exc}", provider_name=self.get_provider_name()
            ) from exc
        return sorted(names)

    async def read(self, filename: str) -> bytes:
        path = (self._directory / filename).resolve()
        if path.parent != self._directory.resolve():
            raise BlobSourceError(
                f"Refusing to read outside {self._directory}: {filename}",
                provider_name=self.get_provider_name(),
            )
        try:
            size = path.stat().st_size
            if size > self._max_bytes:
                raise BlobSourceError(
                    f"{filename} is {size} bytes, over the {self._max_bytes} byte limit",
                    provider_name=self.get_provider_name(),
                )
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise BlobSourceError(
                f"Cannot read {filename}: {exc}", provider_name=self.get_provider_name()
            ) from exc

    def get_provider_name(self) -> str:
        return f"local:{self._directory}"
