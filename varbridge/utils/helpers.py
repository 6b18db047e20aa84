"""Utility functions for varbridge runtime paths."""

import os
from pathlib import Path

DATA_DIR_NAME = ".varbridge"


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """
    Get the runtime data directory.

    Priority:
    1. `VARBRIDGE_DATA_DIR` env override
    2. `~/.varbridge`
    """
    env_path = str(os.environ.get("VARBRIDGE_DATA_DIR") or "").strip()
    if env_path:
        return ensure_dir(Path(env_path).expanduser())
    return ensure_dir(Path.home() / DATA_DIR_NAME)


def resolve_path(value: str) -> Path:
    """Expand ``~`` in a configured path."""
    return Path(str(value or "")).expanduser()
