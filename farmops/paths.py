from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "FARMOPS_HOME"
APP_ENV_DB = "FARMOPS_DB"


def project_root() -> Path:
    """
    Repository/project root directory.
    Contains farmops/, api/, cli/, config/, tests/.
    """
    return Path(__file__).parent.parent.resolve()


def app_home() -> Path:
    """
    User-writable home for farmops.
    Override with FARMOPS_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".farmops").resolve()


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical DB path for farmops.

    Resolution order:
    1. FARMOPS_DB env var (explicit override)
    2. ~/.farmops/data/farmops.db (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / "farmops.db"
