"""Object store adapters for the automation host."""

from __future__ import annotations

from typing import TYPE_CHECKING

from varbridge.store.base import (
    ObjectInfo,
    ObjectKind,
    ObjectStore,
    ObjectStoreError,
    VariableInfo,
    VariableType,
)
from varbridge.store.memory import MemoryObjectStore
from varbridge.store.symcon import SymconObjectStore

if TYPE_CHECKING:
    from varbridge.config.schema import HostConfig

__all__ = [
    "MemoryObjectStore",
    "ObjectInfo",
    "ObjectKind",
    "ObjectStore",
    "ObjectStoreError",
    "SymconObjectStore",
    "VariableInfo",
    "VariableType",
    "create_store_from_config",
]


def create_store_from_config(config: "HostConfig") -> ObjectStore:
    """Factory helper to build the selected host backend."""
    backend = (config.backend or "memory").strip().lower()
    if backend == "symcon":
        return SymconObjectStore(
            url=config.url,
            username=config.username,
            password=config.password,
            timeout_seconds=config.timeout_seconds,
        )
    snapshot = str(config.snapshot_path or "").strip()
    if snapshot:
        return MemoryObjectStore.load_snapshot(snapshot)
    return MemoryObjectStore()
