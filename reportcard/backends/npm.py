from __future__ import annotations

import asyncio
import logging
import subprocess
from pathlib import Path

from reportcard.backends.base import (
    SourceBackend,
    discard_partial,
    guard_acquisition,
    make_workspace,
    new_target_dir,
    now_ms,
)
from reportcard.core.config import settings
from reportcard.core.security import safe_extract_tar
from reportcard.core.util import run_cmd_async
from reportcard.domain.exceptions import RegistryDownloadFailed
from reportcard.domain.models import Fingerprint, Workspace
from reportcard.domain.schemas import NpmSource, SourceKind

logger = logging.getLogger(__name__)


class NpmBackend(SourceBackend):
    """Fetches a published npm package with ``npm pack`` and unpacks it.

    npm tarballs nest everything under ``package/``, which becomes the
    workspace root; releasing the workspace removes the whole target dir.
    """

    def name(self) -> str:
        return "npm"

    def can_handle(self, source) -> bool:
        return getattr(source, "kind", None) == SourceKind.NPM

    async def acquire(self, source: NpmSource) -> Workspace:
        try:
            target = await asyncio.to_thread(new_target_dir)
        except OSError as e:
            raise RegistryDownloadFailed(f"Could not create workspace: {e}", SourceKind.NPM.value, cause=e) from e

        return await guard_acquisition(target, SourceKind.NPM, self._fill(source, target))

    async def _fill(self, source: NpmSource, target: Path) -> Workspace:
        try:
            logger.info(
                "Packing %s",
                source.package_id,
                extra={"source_kind": SourceKind.NPM.value, "workspace": str(target)},
            )
            tarball = await self._pack(source.package_id, target)
            await asyncio.to_thread(safe_extract_tar, tarball, target)
            await asyncio.to_thread(tarball.unlink)
        except Exception as e:
            await discard_partial(target, SourceKind.NPM)
            raise RegistryDownloadFailed(f"NPM download failed: {e}", SourceKind.NPM.value, cause=e) from e

        package_dir = target / "package"
        if not await asyncio.to_thread(package_dir.is_dir):
            package_dir = target

        fingerprint = None
        if source.cache_enabled:
            fingerprint = Fingerprint(
                version=await self.fingerprint(source),
                kind=SourceKind.NPM,
                extra={"package": source.package_name, "requested_version": source.version},
            )

        return make_workspace(package_dir, target, fingerprint)

    async def _pack(self, package_id: str, target: Path) -> Path:
        r = await run_cmd_async(
            [settings.NPM_BIN, "pack", package_id, "--pack-destination", str(target)],
            cwd=target,
            timeout_sec=settings.NPM_TIMEOUT_SEC,
        )
        if not r.ok:
            raise RuntimeError(f"npm pack exited with {r.exit_code}: {r.stderr.strip() or r.stdout.strip()}")

        # npm prints notices before the tarball name; the name is the last line
        lines = [ln.strip() for ln in r.stdout.splitlines() if ln.strip()]
        if not lines:
            raise RuntimeError("npm pack produced no tarball name")

        tarball = target / lines[-1]
        if not await asyncio.to_thread(tarball.is_file):
            raise RuntimeError(f"npm pack reported {lines[-1]!r} but no such file exists")
        return tarball

    async def fingerprint(self, source: NpmSource) -> str:
        version = source.version
        if not version:
            try:
                r = await run_cmd_async(
                    [settings.NPM_BIN, "view", source.package_name, "version"],
                    timeout_sec=settings.NPM_TIMEOUT_SEC,
                )
                if r.ok:
                    version = r.stdout.strip() or None
            except (OSError, subprocess.SubprocessError) as e:
                logger.warning(
                    "npm view %s failed: %s",
                    source.package_name,
                    e,
                    extra={"source_kind": SourceKind.NPM.value},
                )

        if not version:
            return f"npm:{source.package_name}:{now_ms()}"
        return f"npm:{source.package_name}:{version}"
