"""Supabase Storage regulation document source.

Talks to the Storage REST API with ``httpx``:

* ``POST {url}/storage/v1/object/list/{bucket}`` lists a folder
* ``GET  {url}/storage/v1/object/{bucket}/{folder}/{name}`` downloads a file

Uploaded files carry a millisecond timestamp prefix (``1712345678901-규정.pdf``);
names are returned as stored so that ``read`` can find them again.  The
extractor strips the prefix when it derives a title.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from regulation_rag.interfaces.blob_source import IBlobSource
from regulation_rag.models.regulation import ALLOWED_EXTENSIONS
from regulation_rag.utils.errors import BlobSourceError

logger = structlog.get_logger(logger_name=__name__)

_LIST_LIMIT = 100


class SupabaseStorageBlobSource(IBlobSource):
    """Lists and downloads regulation files from one bucket folder."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        service_key: str,
        bucket: str = "regulations",
        folder: str = "regulations",
        max_bytes: int = 20 * 1024 * 1024,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._bucket = bucket
        self._folder = folder.strip("/")
        self._max_bytes = max_bytes

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._service_key}",
            "apikey": self._service_key,
        }

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.status_code in (401, 403):
            raise BlobSourceError(
                f"Supabase rejected the service key while trying to {action}",
                provider_name=self.get_provider_name(),
            )
        if response.status_code >= 400:
            raise BlobSourceError(
                f"Supabase returned HTTP {response.status_code} while trying to {action}",
                provider_name=self.get_provider_name(),
            )

    async def list(self, prefix: str = "") -> list[str]:
        try:
            response = await self._http.post(
                f"{self._base_url}/storage/v1/object/list/{self._bucket}",
                headers=self._headers(),
                json={
                    "prefix": self._folder,
                    "limit": _LIST_LIMIT,
                    "offset": 0,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
        except httpx.HTTPError as exc:
            raise BlobSourceError(
                f"Cannot reach Supabase Storage: {exc}", provider_name=self.get_provider_name()
            ) from exc
        self._raise_for_status(response, f"list {self._bucket}/{self._folder}")

        names: list[str] = []
        for entry in response.json():
            name = entry.get("name") or ""
            if not name or name.startswith("."):
                continue
            dot = name.rfind(".")
            if dot < 0 or name[dot:].lower() not in ALLOWED_EXTENSIONS:
                continue
            if name.startswith(prefix):
                names.append(name)
        logger.debug("supabase_listed", bucket=self._bucket, count=len(names))
        return sorted(names)

    async def read(self, filename: str) -> bytes:
        object_path = f"{self._folder}/{filename}" if self._folder else filename
        try:
            response = await self._http.get(
                f"{self._base_url}/storage/v1/object/{self._bucket}/{quote(object_path)}",
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            raise BlobSourceError(
                f"Cannot download {filename}: {exc}", provider_name=self.get_provider_name()
            ) from exc
        self._raise_for_status(response, f"download {filename}")

        data = response.content
        if len(data) > self._max_bytes:
            raise BlobSourceError(
                f"{filename} is {len(data)} bytes, over the {self._max_bytes} byte limit",
                provider_name=self.get_provider_name(),
            )
        return data

    def get_provider_name(self) -> str:
        return f"supabase:{self._bucket}"
