"""Tests for source descriptor parsing and validation."""

import pytest
from pydantic import ValidationError

from reportcard.domain.exceptions import InvalidSource
from reportcard.domain.schemas import (
    AnalyzerConfig,
    ArchiveSource,
    GitSource,
    LocalSource,
    NpmSource,
    SourceAuth,
    SourceKind,
    parse_source,
)


def test_parse_git_source():
    src = parse_source({"kind": "git", "url": "https://example.com/repo.git", "ref": "main", "depth": 5})
    assert isinstance(src, GitSource)
    assert src.kind == SourceKind.GIT
    assert src.ref == "main"
    assert src.depth == 5
    assert src.cache_enabled is True


def test_parse_each_kind():
    assert isinstance(parse_source({"kind": "zip", "url": "https://x/a.zip"}), ArchiveSource)
    assert isinstance(parse_source({"kind": "npm", "package_name": "left-pad"}), NpmSource)
    assert isinstance(parse_source({"kind": "local", "path": "/tmp/x"}), LocalSource)


def test_parse_missing_kind_is_invalid_source():
    with pytest.raises(InvalidSource) as exc:
        parse_source({"url": "https://example.com/repo.git"})
    assert exc.value.code == "INVALID_SOURCE"
    assert exc.value.source_kind == "unknown"


def test_parse_unknown_kind_is_invalid_source():
    with pytest.raises(InvalidSource) as exc:
        parse_source({"kind": "svn", "url": "svn://example.com/repo"})
    assert exc.value.source_kind == "unknown"


def test_parse_missing_required_field_names_kind():
    with pytest.raises(InvalidSource) as exc:
        parse_source({"kind": "npm"})
    assert exc.value.source_kind == "npm"
    assert isinstance(exc.value.cause, ValidationError)


def test_auth_requires_username_or_token():
    with pytest.raises(ValidationError):
        SourceAuth()
    assert SourceAuth(token="T").token == "T"
    assert SourceAuth(username="u").username == "u"


def test_empty_auth_rejected_through_parse():
    with pytest.raises(InvalidSource):
        parse_source({"kind": "git", "url": "https://example.com/r.git", "auth": {}})


def test_depth_must_be_positive():
    with pytest.raises(ValidationError):
        GitSource(url="https://example.com/r.git", depth=0)


def test_descriptors_are_immutable():
    src = GitSource(url="https://example.com/r.git")
    with pytest.raises(ValidationError):
        src.url = "https://evil.example.com/r.git"


def test_npm_package_id():
    assert NpmSource(package_name="left-pad").package_id == "left-pad"
    assert NpmSource(package_name="@types/node", version="18.0.0").package_id == "@types/node@18.0.0"


def test_analyzer_config_defaults_to_enabled():
    cfg = AnalyzerConfig()
    assert cfg.enabled is True
    assert cfg.rules is None


@pytest.mark.parametrize("name", ["-rf", "--registry=https://evil.example.com"])
def test_npm_name_cannot_look_like_a_flag(name):
    with pytest.raises(ValidationError):
        NpmSource(package_name=name)
    with pytest.raises(InvalidSource) as exc:
        parse_source({"kind": "npm", "package_name": name})
    assert exc.value.source_kind == "npm"
