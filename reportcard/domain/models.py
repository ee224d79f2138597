from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable

from reportcard.domain.schemas import AnalyzerConfig, SourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fingerprint:
    """Identifies one version of a source; ``version`` is the cache key."""

    version: str
    kind: SourceKind
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "kind": self.kind.value, "extra": dict(self.extra)}


@dataclass(eq=False)
class Workspace:
    """A disposable local copy of a project, owned by whoever received it.

    ``release()`` must be awaited once the caller is done; the path must not
    be read afterwards. Extra calls are harmless.
    """

    path: Path
    teardown: Callable[[], Awaitable[None]] = field(repr=False)
    fingerprint: Fingerprint | None = None
    released: bool = field(default=False, init=False)

    async def release(self) -> None:
        if self.released:
            return
        self.released = True
        await self.teardown()
        logger.debug("Released workspace %s", self.path, extra={"workspace": str(self.path)})

    async def __aenter__(self) -> "Workspace":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.release()


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class AnalysisIssue:
    severity: IssueSeverity
    message: str
    rule: str
    file: str
    line: int
    column: int
    source: str | None = None
    suggestion: str | None = None

    def __post_init__(self) -> None:
        if self.line < 1 or self.column < 1:
            raise ValueError(f"line and column are 1-based, got {self.line}:{self.column}")
        self.severity = IssueSeverity(self.severity)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["severity"] = self.severity.value
        return d


@dataclass
class AnalyzerResult:
    analyzer_id: str
    score: float
    issues: list[AnalysisIssue] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError(f"score must be within 0-100, got {self.score}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "analyzer_id": self.analyzer_id,
            "score": self.score,
            "issues": [i.to_dict() for i in self.issues],
            "metadata": dict(self.metadata),
        }


@dataclass
class AnalysisContext:
    """What an analyzer gets to look at.

    The orchestrator fills ``config`` per analyzer; callers build the context
    without it. ``workspace`` is optional and only its fingerprint is used,
    to key the result cache.
    """

    project_root: Path
    files: list[str] = field(default_factory=list)
    config: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    workspace: Workspace | None = None

    @property
    def fingerprint(self) -> Fingerprint | None:
        return self.workspace.fingerprint if self.workspace else None

    def with_config(self, config: AnalyzerConfig) -> "AnalysisContext":
        return replace(self, config=config)

    @classmethod
    def for_workspace(cls, workspace: Workspace, files: list[str] | None = None) -> "AnalysisContext":
        """Build a context over a workspace, listing its files when none are given."""
        if files is None:
            files = sorted(
                p.relative_to(workspace.path).as_posix()
                for p in workspace.path.rglob("*")
                if p.is_file() and ".git" not in p.relative_to(workspace.path).parts
            )
        return cls(project_root=workspace.path, files=files, workspace=workspace)


@dataclass(frozen=True)
class CacheEntry:
    timestamp: float
    source: Fingerprint
    results: tuple[AnalyzerResult, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "source": self.source.to_dict(),
            "results": [r.to_dict() for r in self.results],
        }
