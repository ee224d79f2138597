from __future__ import annotations

import asyncio
import logging
import shutil
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable

from reportcard.core.config import settings
from reportcard.domain.models import Fingerprint, Workspace
from reportcard.domain.schemas import SourceKind

logger = logging.getLogger(__name__)


class SourceBackend(ABC):
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def can_handle(self, source: Any) -> bool: ...

    @abstractmethod
    async def acquire(self, source: Any) -> Workspace: ...

    async def fingerprint(self, source: Any) -> str | None:
        return None


def now_ms() -> int:
    return int(time.time() * 1000)


def new_target_dir() -> Path:
    """Create and return ``<WORKSPACE_ROOT>/<uuid>``; names are never reused."""
    target = Path(settings.WORKSPACE_ROOT) / uuid.uuid4().hex
    target.mkdir(parents=True, exist_ok=False)
    return target


def remove_tree(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)


async def discard_partial(path: Path, kind: SourceKind) -> None:
    """Best-effort removal of a half-built workspace. Never raises."""
    try:
        await asyncio.to_thread(remove_tree, path)
    except Exception:
        logger.exception(
            "Failed to clean up %s after failed acquisition",
            path,
            extra={"source_kind": kind.value, "workspace": str(path)},
        )


def make_workspace(path: Path, root: Path, fingerprint: Fingerprint | None = None) -> Workspace:
    """Wrap ``path`` in a Workspace whose release removes ``root``."""

    async def _teardown() -> None:
        await asyncio.to_thread(shutil.rmtree, root, ignore_errors=True)

    return Workspace(path=path, teardown=_teardown, fingerprint=fingerprint)


async def guard_acquisition(target: Path, kind: SourceKind, work: Awaitable[Workspace]) -> Workspace:
    """Await ``work``, which fills ``target``; remove ``target`` if the caller cancels.

    Worker threads outlive a cancelled await, so the directory is only removed
    once ``work`` has settled.
    """
    task = asyncio.ensure_future(work)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        logger.info(
            "Acquisition cancelled, discarding %s",
            target,
            extra={"source_kind": kind.value, "workspace": str(target)},
        )
        await asyncio.shield(_settle_and_discard(task, target, kind))
        raise


async def _settle_and_discard(task: asyncio.Future, target: Path, kind: SourceKind) -> None:
    await asyncio.wait({task})
    if not task.cancelled() and task.exception() is None:
        # finished after all; the workspace it built is unreachable
        await task.result().release()
    await discard_partial(target, kind)
