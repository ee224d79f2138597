import asyncio
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence


@dataclass
class CmdResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def run_cmd(cmd: Sequence[str], cwd: Path | None = None, timeout_sec: int = 60) -> CmdResult:
    """Run a command to completion, capturing text output.

    Raises ``FileNotFoundError`` when the executable is missing and
    ``subprocess.TimeoutExpired`` on timeout; callers translate both.
    """
    p = subprocess.run(
        list(cmd),
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        timeout=timeout_sec,
    )
    return CmdResult(p.returncode, p.stdout or "", p.stderr or "")


async def run_cmd_async(cmd: Sequence[str], cwd: Path | None = None, timeout_sec: int = 60) -> CmdResult:
    return await asyncio.to_thread(run_cmd, cmd, cwd, timeout_sec)
