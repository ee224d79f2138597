"""Source dispatcher: picks the backend for a descriptor and runs it.

Usage::

    dispatcher = SourceDispatcher()
    dispatcher.register("git", GitBackend())
    dispatcher.register("local", LocalBackend())

    workspace = await dispatcher.acquire(GitSource(url="https://github.com/o/r.git"))
    try:
        ...
    finally:
        await workspace.release()

Backends are consulted in registration order and the first whose
``can_handle`` accepts the descriptor wins. Registering under an existing id
replaces that backend in place.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from reportcard.backends.base import SourceBackend
from reportcard.domain.exceptions import DownloaderError, DownloaderNotFound, DownloadFailed, InvalidSource
from reportcard.domain.models import Workspace
from reportcard.domain.outcome import Outcome, capture
from reportcard.domain.schemas import SourceKind, parse_source

logger = logging.getLogger(__name__)

_KNOWN_KINDS = {k.value for k in SourceKind}


class SourceDispatcher:
    def __init__(self) -> None:
        self._backends: dict[str, SourceBackend] = {}

    def register(self, backend_id: str, backend: SourceBackend) -> None:
        self._backends[backend_id] = backend

    def unregister(self, backend_id: str) -> None:
        self._backends.pop(backend_id, None)

    def get(self, backend_id: str) -> SourceBackend | None:
        return self._backends.get(backend_id)

    def list(self) -> list[str]:
        """Registered backend ids, in consultation order."""
        return list(self._backends.keys())

    def _resolve(self, source: Any) -> tuple[Any, SourceBackend | None]:
        if source is None:
            raise InvalidSource("Invalid source: source cannot be None", "unknown")
        if isinstance(source, Mapping):
            source = parse_source(source)

        kind = getattr(source, "kind", None)
        if not kind:
            raise InvalidSource("Invalid source: missing source type", "unknown")
        if _kind_label(kind) not in _KNOWN_KINDS:
            raise InvalidSource(f"Invalid source: unknown source type {kind!r}", "unknown")

        for backend in self._backends.values():
            if backend.can_handle(source):
                return source, backend
        return source, None

    async def acquire(self, source: Any) -> Workspace:
        source, backend = self._resolve(source)
        kind = _kind_label(source.kind)

        if backend is None:
            raise DownloaderNotFound("No compatible downloader found", kind)

        logger.info("Acquiring via %s", backend.name(), extra={"source_kind": kind})
        try:
            workspace = await backend.acquire(source)
        except DownloaderError as e:
            logger.warning("Acquisition failed [%s]: %s", e.code, e.message, extra={"source_kind": kind})
            raise
        except Exception as e:
            logger.exception("Backend %s raised an untyped error", backend.name(), extra={"source_kind": kind})
            raise DownloadFailed(f"Download failed: {e}", kind, cause=e) from e

        logger.info(
            "Workspace ready at %s",
            workspace.path,
            extra={"source_kind": kind, "workspace": str(workspace.path)},
        )
        return workspace

    async def try_acquire(self, source: Any) -> Outcome[Workspace]:
        return await capture(self.acquire(source))

    async def fingerprint(self, source: Any) -> str | None:
        """Cache key for ``source`` from the backend that would acquire it."""
        source, backend = self._resolve(source)
        if backend is None:
            return None
        try:
            return await backend.fingerprint(source)
        except DownloaderError:
            raise
        except Exception as e:
            raise DownloadFailed(f"Fingerprint failed: {e}", _kind_label(source.kind), cause=e) from e


def _kind_label(kind: Any) -> str:
    return kind.value if isinstance(kind, SourceKind) else str(kind)
