"""Tests for the git backend. GitPython is replaced with a fake Repo."""

import asyncio
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from git import GitCommandError

from reportcard.backends.git import GitBackend
from reportcard.domain.exceptions import CloneFailed, InvalidSource
from reportcard.domain.schemas import GitSource, SourceAuth, SourceKind


class FakeRepo:
    clones: list = []
    fail_clone: Exception | None = None
    fail_checkout: Exception | None = None
    head_sha = "3f786850e387550fdab836ed7e6dc881de23001b"

    def __init__(self, path=None):
        self.path = path
        self.git = MagicMock()
        if FakeRepo.fail_checkout is not None:
            self.git.checkout.side_effect = FakeRepo.fail_checkout
        self.head = SimpleNamespace(commit=SimpleNamespace(hexsha=FakeRepo.head_sha))

    @classmethod
    def clone_from(cls, url, to_path, **kwargs):
        cls.clones.append((url, Path(to_path), kwargs))
        (Path(to_path) / "README.md").write_text("hello", encoding="utf-8")
        if cls.fail_clone is not None:
            raise cls.fail_clone
        return cls(to_path)


@pytest.fixture(autouse=True)
def fake_repo(monkeypatch):
    FakeRepo.clones = []
    FakeRepo.fail_clone = None
    FakeRepo.fail_checkout = None
    monkeypatch.setattr("reportcard.backends.git.Repo", FakeRepo)
    return FakeRepo


# ---------- URL handling ----------

class TestUrls:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/owner/repo.git",
            "ssh://git@github.com/owner/repo.git",
            "git+ssh://git@example.com/repo.git",
            "git@github.com:owner/repo.git",
        ],
    )
    def test_accepts_secure_and_ssh_urls(self, url):
        assert GitBackend.is_valid_url(url)

    @pytest.mark.parametrize("url", ["http://example.com/repo.git", "git://example.com/repo.git", "file:///tmp/repo", "not a url", ""])
    def test_rejects_other_urls(self, url):
        assert not GitBackend.is_valid_url(url)

    def test_token_only_becomes_username(self):
        url = GitBackend.with_auth("https://example.com/repo.git", SourceAuth(token="T"))
        assert url == "https://T@example.com/repo.git"

    def test_username_and_token_basic_style(self):
        url = GitBackend.with_auth("https://example.com/repo.git", SourceAuth(username="u", token="T"))
        assert url == "https://u:T@example.com/repo.git"

    def test_username_only_leaves_url(self):
        url = GitBackend.with_auth("https://example.com/repo.git", SourceAuth(username="u"))
        assert url == "https://example.com/repo.git"

    def test_existing_userinfo_is_replaced(self):
        url = GitBackend.with_auth("https://old@example.com:8443/repo.git", SourceAuth(token="T"))
        assert url == "https://T@example.com:8443/repo.git"


# ---------- acquire ----------

def test_acquire_rejects_http_before_any_io(workspace_root):
    with pytest.raises(InvalidSource):
        asyncio.run(GitBackend().acquire(GitSource(url="http://example.com/repo.git")))
    assert FakeRepo.clones == []
    assert not workspace_root.exists()


def test_acquire_clones_shallow_into_fresh_dir(workspace_root):
    ws = asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git")))

    url, target, kwargs = FakeRepo.clones[0]
    assert url == "https://example.com/repo.git"
    assert kwargs["depth"] == 1
    assert target == ws.path
    assert ws.path.parent == workspace_root
    assert (ws.path / "README.md").exists()

    asyncio.run(ws.release())
    assert not ws.path.exists()


def test_acquire_uses_descriptor_depth():
    ws = asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git", depth=20)))
    assert FakeRepo.clones[0][2]["depth"] == 20
    asyncio.run(ws.release())


def test_acquire_embeds_auth_without_touching_descriptor():
    src = GitSource(url="https://example.com/repo.git", auth=SourceAuth(token="T"))
    ws = asyncio.run(GitBackend().acquire(src))
    assert FakeRepo.clones[0][0] == "https://T@example.com/repo.git"
    assert src.url == "https://example.com/repo.git"
    asyncio.run(ws.release())


def test_acquire_checks_out_ref():
    ws = asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git", ref="v1.2.0")))
    assert ws.fingerprint.version.startswith("git:https://example.com/repo.git:v1.2.0:")
    asyncio.run(ws.release())


def test_acquire_attaches_head_fingerprint():
    ws = asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git")))
    assert ws.fingerprint.kind == SourceKind.GIT
    assert ws.fingerprint.version == f"git:https://example.com/repo.git:{FakeRepo.head_sha}"
    asyncio.run(ws.release())


def test_acquire_without_cache_has_no_fingerprint():
    ws = asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git", cache_enabled=False)))
    assert ws.fingerprint is None
    asyncio.run(ws.release())


def test_clone_failure_cleans_up_and_raises_clone_failed(workspace_root):
    FakeRepo.fail_clone = GitCommandError(["git", "clone"], 128, "fatal: repository not found")

    with pytest.raises(CloneFailed) as exc:
        asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git")))

    assert exc.value.code == "GIT_CLONE_FAILED"
    assert exc.value.source_kind == "git"
    assert isinstance(exc.value.cause, GitCommandError)
    assert list(workspace_root.iterdir()) == []


def test_checkout_failure_is_terminal(workspace_root):
    FakeRepo.fail_checkout = GitCommandError(["git", "checkout"], 1, "pathspec did not match")

    with pytest.raises(CloneFailed):
        asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git", ref="nope")))
    assert list(workspace_root.iterdir()) == []


def test_clone_error_message_hides_token():
    FakeRepo.fail_clone = RuntimeError("could not read https://SECRET@example.com/repo.git")
    src = GitSource(url="https://example.com/repo.git", auth=SourceAuth(token="SECRET"))

    with pytest.raises(CloneFailed) as exc:
        asyncio.run(GitBackend().acquire(src))
    assert "SECRET" not in exc.value.message


def test_cleanup_failure_does_not_mask_clone_error(monkeypatch, workspace_root):
    FakeRepo.fail_clone = RuntimeError("network down")

    def broken_remove(path):
        raise PermissionError("cannot remove")

    monkeypatch.setattr("reportcard.backends.base.remove_tree", broken_remove)

    with pytest.raises(CloneFailed) as exc:
        asyncio.run(GitBackend().acquire(GitSource(url="https://example.com/repo.git")))
    assert "network down" in exc.value.message


# ---------- fingerprint ----------

def test_fingerprint_from_remote(monkeypatch):
    fake_git = MagicMock()
    fake_git.return_value.ls_remote.return_value = "abc123\trefs/heads/main\n"
    monkeypatch.setattr("reportcard.backends.git.Git", fake_git)

    key = asyncio.run(GitBackend().fingerprint(GitSource(url="https://example.com/repo.git", ref="main")))
    assert key == "git:https://example.com/repo.git:main:abc123"
    fake_git.return_value.ls_remote.assert_called_once_with("https://example.com/repo.git", "main")


def test_fingerprint_falls_back_to_timestamp(monkeypatch):
    fake_git = MagicMock()
    fake_git.return_value.ls_remote.side_effect = GitCommandError(["git", "ls-remote"], 128)
    monkeypatch.setattr("reportcard.backends.git.Git", fake_git)
    monkeypatch.setattr("reportcard.backends.git.now_ms", lambda: 1700000000000)

    key = asyncio.run(GitBackend().fingerprint(GitSource(url="https://example.com/repo.git")))
    assert key == "git:https://example.com/repo.git:1700000000000"
