from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Generic, TypeVar

from reportcard.domain.exceptions import ReportCardError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a typed error, never both."""

    value: T | None = None
    error: ReportCardError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict:
        if self.error is not None:
            return {"ok": False, "error": self.error.to_dict()}
        return {"ok": True}


async def capture(awaitable: Awaitable[T]) -> Outcome[T]:
    """Await and fold a :class:`ReportCardError` into an :class:`Outcome`.

    Anything else is a bug and propagates.
    """
    try:
        return Outcome(value=await awaitable)
    except ReportCardError as e:
        return Outcome(error=e)
