from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from reportcard.domain.models import AnalysisContext, AnalyzerResult


class Analyzer(ABC):
    """A code analyzer plugin.

    ``analyzer_id`` must be unique within an :class:`AnalyzerRegistry`.
    ``validate_config`` and ``cleanup`` default to accepting anything and
    doing nothing.
    """

    name: str = ""
    description: str = ""

    @property
    @abstractmethod
    def analyzer_id(self) -> str: ...

    @abstractmethod
    async def analyze(self, context: AnalysisContext) -> AnalyzerResult: ...

    async def validate_config(self, rules: dict[str, Any]) -> None:
        return None

    async def cleanup(self) -> None:
        return None
