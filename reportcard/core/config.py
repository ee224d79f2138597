import os
import tempfile

from pydantic import BaseModel


class Settings(BaseModel):
    # Workspaces: every acquisition gets its own uuid-named dir under this root
    WORKSPACE_ROOT: str = os.getenv("WORKSPACE_ROOT", os.path.join(tempfile.gettempdir(), "report-card"))

    # Git
    GIT_CLONE_DEPTH: int = int(os.getenv("GIT_CLONE_DEPTH", "1"))

    # Archive downloads
    HTTP_TIMEOUT_SEC: float = float(os.getenv("HTTP_TIMEOUT_SEC", "60"))

    # npm registry
    NPM_BIN: str = os.getenv("NPM_BIN", "npm")
    NPM_TIMEOUT_SEC: int = int(os.getenv("NPM_TIMEOUT_SEC", "120"))

    # Result cache (24h)
    CACHE_MAX_AGE_SEC: float = float(os.getenv("CACHE_MAX_AGE_SEC", "86400"))


settings = Settings()
