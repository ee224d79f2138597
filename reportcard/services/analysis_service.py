from __future__ import annotations

import asyncio
import copy
import logging
import time
from typing import Any, Callable, Mapping

from reportcard.analyzers.base import Analyzer
from reportcard.analyzers.registry import AnalyzerRegistry
from reportcard.cache.base import ResultCache
from reportcard.core.config import settings
from reportcard.domain.exceptions import AnalysisFailed, AnalyzerError, InvalidConfig
from reportcard.domain.models import AnalysisContext, AnalyzerResult, CacheEntry
from reportcard.domain.outcome import Outcome, capture
from reportcard.domain.schemas import AnalyzerConfig

logger = logging.getLogger(__name__)


class AnalysisService:
    """
    Orchestrates: cache lookup → run enabled analyzers in order → store results.

    The cache is keyed by the workspace fingerprint's ``version``. An entry
    younger than ``max_cache_age`` seconds is returned as is, whatever set of
    analyzers produced it.
    """

    def __init__(
        self,
        registry: AnalyzerRegistry | None = None,
        cache: ResultCache | None = None,
        max_cache_age: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.analyzers = registry if registry is not None else AnalyzerRegistry()
        self.cache = cache
        self.max_cache_age = max_cache_age if max_cache_age is not None else settings.CACHE_MAX_AGE_SEC
        self._clock = clock

    def register_analyzer(self, analyzer: Analyzer) -> None:
        self.analyzers.register(analyzer)

    def get_analyzer(self, analyzer_id: str) -> Analyzer | None:
        return self.analyzers.get(analyzer_id)

    def require_analyzer(self, analyzer_id: str) -> Analyzer:
        return self.analyzers.pick(analyzer_id)

    def list_analyzers(self) -> list[Analyzer]:
        return self.analyzers.all()

    async def run_analysis(
        self,
        context: AnalysisContext,
        configs: Mapping[str, AnalyzerConfig | Mapping[str, Any]] | None = None,
    ) -> list[AnalyzerResult]:
        fingerprint = context.fingerprint
        key = fingerprint.version if (self.cache is not None and fingerprint is not None) else None

        if key is not None:
            cached = await self.cache.get(key)
            if cached is not None and self._is_fresh(cached):
                logger.info("Cache hit", extra={"cache_key": key})
                return copy.deepcopy(list(cached.results))
            logger.info("Cache miss", extra={"cache_key": key})

        results = await self._run_analyzers(context, configs or {})

        if key is not None:
            await self.cache.set(
                key,
                CacheEntry(timestamp=self._clock(), source=fingerprint, results=tuple(copy.deepcopy(results))),
            )

        logger.info("Analysis complete: %d analyzer results", len(results))
        return results

    async def try_run_analysis(
        self,
        context: AnalysisContext,
        configs: Mapping[str, AnalyzerConfig | Mapping[str, Any]] | None = None,
    ) -> Outcome[list[AnalyzerResult]]:
        return await capture(self.run_analysis(context, configs))

    async def cleanup(self) -> None:
        """Run every analyzer's cleanup hook and wait for all of them.

        Failures are logged once all hooks have settled; the first one is then
        raised as :class:`AnalysisFailed`.
        """
        items = self.analyzers.items()
        outcomes = await asyncio.gather(*(a.cleanup() for _, a in items), return_exceptions=True)

        first: AnalysisFailed | None = None
        for (aid, _), outcome in zip(items, outcomes):
            if not isinstance(outcome, BaseException):
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error("Cleanup failed for %s: %s", aid, outcome, extra={"analyzer_id": aid})
            if first is None:
                first = AnalysisFailed(f'Cleanup failed for analyzer "{aid}": {outcome}', aid, cause=outcome)

        if first is not None:
            raise first

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp < self.max_cache_age

    async def _run_analyzers(
        self,
        context: AnalysisContext,
        configs: Mapping[str, AnalyzerConfig | Mapping[str, Any]],
    ) -> list[AnalyzerResult]:
        results: list[AnalyzerResult] = []

        for aid, analyzer in self.analyzers.items():
            config = _coerce_config(aid, configs.get(aid))
            if not config.enabled:
                logger.info("Skipping %s (disabled)", aid, extra={"analyzer_id": aid})
                continue

            if config.rules is not None:
                try:
                    await analyzer.validate_config(config.rules)
                except Exception as e:
                    raise InvalidConfig(f'Invalid config for analyzer "{aid}": {e}', aid, cause=e) from e

            logger.info("Running %s ...", aid, extra={"analyzer_id": aid})
            try:
                result = await analyzer.analyze(context.with_config(config))
            except Exception as e:
                message = e.message if isinstance(e, AnalyzerError) else str(e)
                raise AnalysisFailed(f'Analysis failed for analyzer "{aid}": {message}', aid, cause=e) from e

            results.append(result)

        return results


def _coerce_config(analyzer_id: str, raw: AnalyzerConfig | Mapping[str, Any] | None) -> AnalyzerConfig:
    if raw is None:
        return AnalyzerConfig()
    if isinstance(raw, AnalyzerConfig):
        return raw
    try:
        return AnalyzerConfig.model_validate(dict(raw))
    except ValueError as e:
        raise InvalidConfig(f'Invalid config for analyzer "{analyzer_id}": {e}', analyzer_id, cause=e) from e
