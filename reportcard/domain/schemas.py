from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from reportcard.domain.exceptions import InvalidSource


class SourceKind(str, Enum):
    GIT = "git"
    ZIP = "zip"
    NPM = "npm"
    LOCAL = "local"


class SourceAuth(BaseModel):
    """Credentials for a private remote. At least one field must be set."""

    model_config = ConfigDict(frozen=True)

    username: str | None = None
    token: str | None = None

    @model_validator(mode="after")
    def _require_one(self) -> "SourceAuth":
        if not self.username and not self.token:
            raise ValueError("auth requires a username or a token")
        return self


class _SourceBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    cache_enabled: bool = True


class GitSource(_SourceBase):
    kind: Literal["git"] = "git"
    url: str
    ref: str | None = None
    depth: int | None = Field(None, ge=1)
    auth: SourceAuth | None = None


class ArchiveSource(_SourceBase):
    kind: Literal["zip"] = "zip"
    url: str
    auth: SourceAuth | None = None


class NpmSource(_SourceBase):
    kind: Literal["npm"] = "npm"
    package_name: str = Field(..., min_length=1)
    version: str | None = None

    @field_validator("package_name")
    @classmethod
    def _not_an_option(cls, v: str) -> str:
        # npm would parse a leading dash as a CLI flag
        if v.startswith("-"):
            raise ValueError("must not start with '-'")
        return v

    @property
    def package_id(self) -> str:
        return f"{self.package_name}@{self.version}" if self.version else self.package_name


class LocalSource(_SourceBase):
    kind: Literal["local"] = "local"
    path: str


SourceDescriptor = Annotated[
    Union[GitSource, ArchiveSource, NpmSource, LocalSource],
    Field(discriminator="kind"),
]

_source_adapter: TypeAdapter[SourceDescriptor] = TypeAdapter(SourceDescriptor)


def parse_source(data: Mapping[str, Any]) -> SourceDescriptor:
    """Build a typed descriptor from a plain mapping (e.g. decoded JSON).

    Raises :class:`InvalidSource` for a missing/unknown ``kind`` or any
    field that fails validation.
    """
    kind = data.get("kind") if isinstance(data, Mapping) else None
    if not kind:
        raise InvalidSource("Invalid source: missing source type", "unknown")
    try:
        return _source_adapter.validate_python(dict(data))
    except ValidationError as e:
        known = {k.value for k in SourceKind}
        raise InvalidSource(
            f"Invalid source: {e.errors()[0].get('msg', 'validation failed')}",
            str(kind) if kind in known else "unknown",
            cause=e,
        ) from e


class AnalyzerConfig(BaseModel):
    """Per-analyzer settings supplied by the caller, keyed by analyzer id."""

    enabled: bool = True
    rules: dict[str, Any] | None = None
    include: list[str] | None = None
    exclude: list[str] | None = None
