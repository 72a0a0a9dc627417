"""
Path configuration for the scripture store.

Default layout (relative to the project root):

    data/KJV.db             bundled read-only corpus asset
    data/KJV_source.db      writable copy of the asset (import source)
    data/scripture.sqlite   canonical local store

Each location can be overridden through an environment variable; explicit
arguments (e.g. the CLI's --db) win over the environment.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .config import ENV_ASSET, ENV_DB, ENV_LOCAL_ASSET

# Project root is one level up from kjvstore/
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
REPORTS_DIR = PROJECT_ROOT / "reports"

ASSET_PATH = DATA_DIR / "KJV.db"
LOCAL_ASSET_PATH = DATA_DIR / "KJV_source.db"
DB_PATH = DATA_DIR / "scripture.sqlite"


def _resolve(arg: Optional[str | Path], env_name: str, default: Path) -> Path:
    if arg:
        return Path(arg)
    env = os.getenv(env_name, "")
    if env:
        return Path(env)
    return default


def resolve_db_path(db_arg: Optional[str | Path] = None) -> Path:
    """Resolve the local store path from an argument, $KJVSTORE_DB or the default."""
    return _resolve(db_arg, ENV_DB, DB_PATH)


def resolve_asset_path(asset_arg: Optional[str | Path] = None) -> Path:
    """Resolve the bundled asset path from an argument, $KJVSTORE_ASSET or the default."""
    return _resolve(asset_arg, ENV_ASSET, ASSET_PATH)


def resolve_local_asset_path(local_arg: Optional[str | Path] = None) -> Path:
    """Resolve where the writable asset copy lives."""
    return _resolve(local_arg, ENV_LOCAL_ASSET, LOCAL_ASSET_PATH)


def ensure_basic_dirs() -> None:
    """
    Ensure essential directories exist:
    - data/
    - reports/
    """
    DATA_DIR.mkdir(exist_ok=True)
    REPORTS_DIR.mkdir(exist_ok=True)
