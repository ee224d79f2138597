"""Error taxonomy shared by acquisition and analysis.

Two families hang off :class:`ReportCardError`:

* :class:`DownloaderError` and its subclasses carry the ``source_kind`` of
  the descriptor being acquired.
* :class:`AnalyzerError` and its subclasses carry the ``analyzer_id`` that
  failed.

Every error has a stable ``code`` string and an optional ``cause``. Raising
with ``raise NewError(..., cause=e) from e`` keeps the chain intact for
tracebacks as well.
"""

from __future__ import annotations

from typing import Any


class ReportCardError(Exception):
    code: str = "REPORT_CARD_ERROR"

    def __init__(self, message: str, cause: BaseException | Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def subject(self) -> str:
        return ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "subject": self.subject,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


# ── Acquisition ───────────────────────────────────────────────────


class DownloaderError(ReportCardError):
    code = "DOWNLOAD_FAILED"

    def __init__(self, message: str, source_kind: str = "unknown", cause: BaseException | Any | None = None) -> None:
        super().__init__(message, cause)
        self.source_kind = source_kind

    @property
    def subject(self) -> str:
        return self.source_kind


class InvalidSource(DownloaderError):
    code = "INVALID_SOURCE"


class DownloaderNotFound(DownloaderError):
    code = "DOWNLOADER_NOT_FOUND"


class DownloadFailed(DownloaderError):
    code = "DOWNLOAD_FAILED"


class CloneFailed(DownloaderError):
    code = "GIT_CLONE_FAILED"


class ArchiveDownloadFailed(DownloaderError):
    code = "ZIP_DOWNLOAD_FAILED"


class RegistryDownloadFailed(DownloaderError):
    code = "NPM_DOWNLOAD_FAILED"


class LocalCopyFailed(DownloaderError):
    code = "LOCAL_COPY_FAILED"


# ── Analysis ──────────────────────────────────────────────────────


class AnalyzerError(ReportCardError):
    code = "ANALYSIS_FAILED"

    def __init__(self, message: str, analyzer_id: str, cause: BaseException | Any | None = None) -> None:
        super().__init__(message, cause)
        self.analyzer_id = analyzer_id

    @property
    def subject(self) -> str:
        return self.analyzer_id


class DuplicateAnalyzer(AnalyzerError):
    code = "DUPLICATE_ANALYZER"


class AnalysisFailed(AnalyzerError):
    code = "ANALYSIS_FAILED"


class InvalidConfig(AnalysisFailed):
    """Rule validation failed; still aborts the run like any analysis failure."""

    code = "INVALID_CONFIG"


class AnalyzerNotFound(AnalyzerError):
    code = "ANALYZER_NOT_FOUND"
