"""Persistent storage backends."""

from varbridge.storage.sqlite_registry import SQLiteDeviceRegistryStore

__all__ = ["SQLiteDeviceRegistryStore"]
