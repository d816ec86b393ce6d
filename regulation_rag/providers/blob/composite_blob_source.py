"""Blob source that merges several others.

Sources are listed in order and a later source wins when two of them hold a
file with the same name.  A source whose listing fails is logged and skipped
so that, for example, a missing storage bucket does not hide local files.
"""

from __future__ import annotations

import structlog

from regulation_rag.interfaces.blob_source import IBlobSource
from regulation_rag.utils.errors import BlobSourceError

logger = structlog.get_logger(logger_name=__name__)


class CompositeBlobSource(IBlobSource):
    def __init__(self, sources: list[IBlobSource]) -> None:
        self._sources = list(sources)
        self._owners: dict[str, IBlobSource] = {}

    async def list(self, prefix: str = "") -> list[str]:
        owners: dict[str, IBlobSource] = {}
        for source in self._sources:
            try:
                names = await source.list(prefix)
            except BlobSourceError as exc:
                logger.warning(
                    "blob_source_list_failed",
                    source=source.get_provider_name(),
                    error=str(exc),
                )
                continue
            for name in names:
                owners[name] = source
        self._owners = owners
        return sorted(owners)

    async def read(self, filename: str) -> bytes:
        if filename not in self._owners:
            await self.list()
        source = self._owners.get(filename)
        if source is None:
            raise BlobSourceError(f"No configured source holds {filename}")
        return await source.read(filename)

    def get_provider_name(self) -> str:
        return "composite(" + ", ".join(s.get_provider_name() for s in self._sources) + ")"
