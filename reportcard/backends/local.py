from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from reportcard.backends.base import (
    SourceBackend,
    discard_partial,
    guard_acquisition,
    make_workspace,
    new_target_dir,
    now_ms,
)
from reportcard.domain.exceptions import InvalidSource, LocalCopyFailed
from reportcard.domain.models import Fingerprint, Workspace
from reportcard.domain.schemas import LocalSource, SourceKind

logger = logging.getLogger(__name__)


class LocalBackend(SourceBackend):
    """Copies a directory from the local filesystem into a fresh workspace.

    The original tree is only ever read, so the workspace can be released
    like any downloaded one.
    """

    def name(self) -> str:
        return "local"

    def can_handle(self, source) -> bool:
        return getattr(source, "kind", None) == SourceKind.LOCAL

    async def acquire(self, source: LocalSource) -> Workspace:
        if not source.path or not source.path.strip():
            raise InvalidSource("Invalid local path: path is empty", SourceKind.LOCAL.value)

        src = Path(source.path).expanduser()
        if not await asyncio.to_thread(src.exists):
            raise InvalidSource(f"Invalid local path: {source.path} does not exist", SourceKind.LOCAL.value)

        try:
            target = await asyncio.to_thread(new_target_dir)
        except OSError as e:
            raise LocalCopyFailed(f"Could not create workspace: {e}", SourceKind.LOCAL.value, cause=e) from e

        return await guard_acquisition(target, SourceKind.LOCAL, self._fill(source, src, target))

    async def _fill(self, source: LocalSource, src: Path, target: Path) -> Workspace:
        try:
            logger.info(
                "Copying %s",
                src,
                extra={"source_kind": SourceKind.LOCAL.value, "workspace": str(target)},
            )
            await asyncio.to_thread(_copy_into, src, target)
        except Exception as e:
            await discard_partial(target, SourceKind.LOCAL)
            raise LocalCopyFailed(f"Local copy failed: {e}", SourceKind.LOCAL.value, cause=e) from e

        fingerprint = None
        if source.cache_enabled:
            fingerprint = Fingerprint(
                version=await self.fingerprint(source),
                kind=SourceKind.LOCAL,
                extra={"path": source.path},
            )

        return make_workspace(target, target, fingerprint)

    async def fingerprint(self, source: LocalSource) -> str:
        """``local:<path>:<mtime ms>``; the current time if the path can't be stat'ed."""
        try:
            st = await asyncio.to_thread(Path(source.path).expanduser().stat)
            return f"local:{source.path}:{int(st.st_mtime * 1000)}"
        except OSError:
            return f"local:{source.path}:{now_ms()}"


def _copy_into(src: Path, target: Path) -> None:
    if src.is_dir():
        shutil.copytree(src, target, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(src, target / src.name)
