from __future__ import annotations

from typing import Iterable

from reportcard.analyzers.base import Analyzer
from reportcard.analyzers.registry import AnalyzerRegistry
from reportcard.backends.archive import ArchiveBackend
from reportcard.backends.git import GitBackend
from reportcard.backends.local import LocalBackend
from reportcard.backends.npm import NpmBackend
from reportcard.cache.base import ResultCache
from reportcard.cache.memory import MemoryCache
from reportcard.services.analysis_service import AnalysisService
from reportcard.services.dispatcher import SourceDispatcher


def build_dispatcher() -> SourceDispatcher:
    """Dispatcher with every built-in backend.

    To add a new origin:
    1. Subclass ``SourceBackend`` in ``reportcard/backends/``
    2. ``dispatcher.register("<id>", MyBackend())`` here
    """
    dispatcher = SourceDispatcher()
    dispatcher.register("git", GitBackend())
    dispatcher.register("npm", NpmBackend())
    dispatcher.register("zip", ArchiveBackend())
    dispatcher.register("local", LocalBackend())
    return dispatcher


def build_analysis_service(
    analyzers: Iterable[Analyzer] = (),
    cache: ResultCache | None = None,
    max_cache_age: float | None = None,
) -> AnalysisService:
    """Orchestrator over ``analyzers``; caches in memory unless given another store."""
    return AnalysisService(
        AnalyzerRegistry(analyzers),
        cache=cache if cache is not None else MemoryCache(),
        max_cache_age=max_cache_age,
    )
