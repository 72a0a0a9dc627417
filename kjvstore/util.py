"""
Console output helpers.

Every module reports through these four functions so the CLI and the
library share one format. Set KJVSTORE_QUIET=1 to silence info/ok lines.
"""

import os
import sys

from .config import ENV_QUIET


def _quiet() -> bool:
    return os.getenv(ENV_QUIET, "") not in ("", "0")


def info(msg: str) -> None:
    """Print an info message."""
    if not _quiet():
        print(f"[info] {msg}")


def warn(msg: str) -> None:
    """Print a warning message."""
    print(f"[warn] {msg}")


def ok(msg: str) -> None:
    """Print a success message."""
    if not _quiet():
        print(f"[ok] {msg}")


def error(msg: str) -> None:
    """Print an error message to stderr."""
    print(f"[error] {msg}", file=sys.stderr)
