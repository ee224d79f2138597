from __future__ import annotations

from typing import Iterable

from reportcard.domain.exceptions import AnalyzerNotFound, DuplicateAnalyzer

from .base import Analyzer


class AnalyzerRegistry:
    """Analyzers by id, in registration order."""

    def __init__(self, analyzers: Iterable[Analyzer] = ()) -> None:
        self._by_id: dict[str, Analyzer] = {}
        for a in analyzers:
            self.register(a)

    def register(self, analyzer: Analyzer) -> None:
        aid = analyzer.analyzer_id
        if aid in self._by_id:
            raise DuplicateAnalyzer(f'Analyzer with ID "{aid}" is already registered', aid)
        self._by_id[aid] = analyzer

    def list(self) -> list[str]:
        return list(self._by_id.keys())

    def all(self) -> list[Analyzer]:
        return list(self._by_id.values())

    def items(self) -> list[tuple[str, Analyzer]]:
        return list(self._by_id.items())

    def get(self, analyzer_id: str) -> Analyzer | None:
        return self._by_id.get(analyzer_id)

    def pick(self, analyzer_id: str) -> Analyzer:
        a = self.get(analyzer_id)
        if a is None:
            available = ", ".join(self.list())
            raise AnalyzerNotFound(f"Unknown analyzer '{analyzer_id}'. Available: {available}", analyzer_id)
        return a

    def __len__(self) -> int:
        return len(self._by_id)
