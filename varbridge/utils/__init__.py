"""Utility helpers."""

from varbridge.utils.helpers import ensure_dir, get_data_path, resolve_path

__all__ = ["ensure_dir", "get_data_path", "resolve_path"]
