from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from reportcard.backends.base import (
    SourceBackend,
    discard_partial,
    guard_acquisition,
    make_workspace,
    new_target_dir,
    now_ms,
)
from reportcard.core.config import settings
from reportcard.core.security import safe_extract_zip
from reportcard.domain.exceptions import ArchiveDownloadFailed, InvalidSource
from reportcard.domain.models import Fingerprint, Workspace
from reportcard.domain.schemas import ArchiveSource, SourceAuth, SourceKind

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "download.zip"


class ArchiveBackend(SourceBackend):
    """Downloads a zip archive over HTTP(S) and unpacks it into a workspace.

    ``transport`` lets tests plug in ``httpx.MockTransport``.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None, timeout: float | None = None) -> None:
        self._transport = transport
        self._timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SEC

    def name(self) -> str:
        return "zip"

    def can_handle(self, source) -> bool:
        return getattr(source, "kind", None) == SourceKind.ZIP

    @staticmethod
    def is_valid_url(url: str) -> bool:
        parts = urlsplit((url or "").strip())
        return parts.scheme in ("http", "https") and bool(parts.netloc)

    @staticmethod
    def auth_headers(auth: SourceAuth | None) -> dict[str, str]:
        if auth is None or not auth.token:
            return {}
        if auth.username:
            raw = f"{auth.username}:{auth.token}".encode("utf-8")
            return {"Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}"}
        return {"Authorization": f"Bearer {auth.token}"}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout, follow_redirects=True)

    async def acquire(self, source: ArchiveSource) -> Workspace:
        if not self.is_valid_url(source.url):
            raise InvalidSource(f"Invalid archive URL: {source.url!r}", SourceKind.ZIP.value)

        try:
            target = await asyncio.to_thread(new_target_dir)
        except OSError as e:
            raise ArchiveDownloadFailed(f"Could not create workspace: {e}", SourceKind.ZIP.value, cause=e) from e

        return await guard_acquisition(target, SourceKind.ZIP, self._fill(source, target))

    async def _fill(self, source: ArchiveSource, target: Path) -> Workspace:
        zip_path = target / ARCHIVE_NAME
        try:
            logger.info(
                "Downloading %s",
                source.url,
                extra={"source_kind": SourceKind.ZIP.value, "workspace": str(target)},
            )
            await self._download(source, zip_path)
            await asyncio.to_thread(safe_extract_zip, zip_path, target)
            await asyncio.to_thread(zip_path.unlink)
        except Exception as e:
            await discard_partial(target, SourceKind.ZIP)
            raise ArchiveDownloadFailed(
                f"Zip download/extraction failed: {e}", SourceKind.ZIP.value, cause=e
            ) from e

        fingerprint = None
        if source.cache_enabled:
            fingerprint = Fingerprint(
                version=await self.fingerprint(source),
                kind=SourceKind.ZIP,
                extra={"url": source.url},
            )

        return make_workspace(target, target, fingerprint)

    async def _download(self, source: ArchiveSource, dest: Path) -> None:
        written = 0
        async with self._client() as client:
            async with client.stream("GET", source.url, headers=self.auth_headers(source.auth)) as response:
                if not response.is_success:
                    raise RuntimeError(f"Failed to download: HTTP {response.status_code} {response.reason_phrase}")
                f = await asyncio.to_thread(dest.open, "wb")
                try:
                    async for chunk in response.aiter_bytes():
                        await asyncio.to_thread(f.write, chunk)
                        written += len(chunk)
                finally:
                    await asyncio.to_thread(f.close)

        if written == 0:
            raise RuntimeError("No response body received")

    async def fingerprint(self, source: ArchiveSource) -> str:
        """``zip:<url>:<etag or last-modified>``, or a timestamp when the server gives neither."""
        try:
            async with self._client() as client:
                response = await client.head(source.url, headers=self.auth_headers(source.auth))
            if response.is_success:
                validator = response.headers.get("etag") or response.headers.get("last-modified")
                if validator:
                    return "zip:{}:{}".format(source.url, validator.strip('"'))
        except httpx.HTTPError as e:
            logger.warning("HEAD %s failed: %s", source.url, e, extra={"source_kind": SourceKind.ZIP.value})
        return f"zip:{source.url}:{now_ms()}"
