from pathlib import Path
import tarfile
import zipfile


class UnsafeArchiveError(ValueError):
    """An archive member would land outside the extraction directory."""


def _ensure_inside(dest: Path, member_name: str) -> None:
    root = dest.resolve()
    p = (dest / member_name).resolve()
    if p != root and root not in p.parents:
        raise UnsafeArchiveError(f"Unsafe archive member {member_name!r}: path traversal detected")


def safe_extract_zip(zip_path: Path, dest: Path) -> None:
    with zipfile.ZipFile(zip_path) as z:
        for m in z.infolist():
            _ensure_inside(dest, m.filename)
        z.extractall(dest)


def safe_extract_tar(tar_path: Path, dest: Path) -> None:
    with tarfile.open(tar_path, "r:*") as t:
        for m in t.getmembers():
            _ensure_inside(dest, m.name)
        if hasattr(tarfile, "data_filter"):
            t.extractall(dest, filter="data")
        else:
            t.extractall(dest)
