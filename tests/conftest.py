import io
import zipfile
from pathlib import Path

import pytest

from reportcard.core.config import settings


@pytest.fixture(autouse=True)
def workspace_root(tmp_path, monkeypatch) -> Path:
    """Redirect all workspaces to a temp directory so tests never touch the real temp root."""
    root = tmp_path / "workspaces"
    monkeypatch.setattr(settings, "WORKSPACE_ROOT", str(root))
    return root


@pytest.fixture
def sample_project(tmp_path) -> Path:
    """A small project tree on disk."""
    proj = tmp_path / "project"
    (proj / "src").mkdir(parents=True)
    (proj / "src" / "index.js").write_text("module.exports = 1;\n", encoding="utf-8")
    (proj / "package.json").write_text('{"name": "sample"}\n', encoding="utf-8")
    return proj


@pytest.fixture
def sample_zip() -> bytes:
    """An in-memory zip containing a small project."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("sample/index.js", "console.log('hi');\n")
        zf.writestr("sample/lib/util.js", "exports.add = (a, b) => a + b;\n")
    return buf.getvalue()
