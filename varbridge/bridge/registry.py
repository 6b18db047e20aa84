"""User-curated device view over raw variables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from varbridge.store.base import ObjectStore, ObjectStoreError, VariableType

if TYPE_CHECKING:
    from varbridge.storage.sqlite_registry import SQLiteDeviceRegistryStore

CAP_ON_OFF = "on_off"
CAP_LEVEL = "level"
CAP_VALUE = "value"
_NUMERIC_TYPES = {VariableType.INTEGER, VariableType.FLOAT}


def device_id_for(var_id: int) -> str:
    return f"var-{int(var_id)}"


@dataclass(slots=True)
class DeviceRegistryEntry:
    """Persisted mapping of one variable onto a logical device."""

    var_id: int
    kind: str = ""
    floor: str = ""
    room: str = ""
    name: str = ""
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, var_id: int | None = None) -> "DeviceRegistryEntry":
        raw_id = var_id if var_id is not None else data.get("var_id", data.get("varId"))
        try:
            parsed_id = int(raw_id)  # type: ignore[arg-type]
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError("var_id must be an integer") from e
        if parsed_id <= 0:
            raise ValueError("var_id must be positive")
        enabled = data.get("enabled", True)
        return cls(
            var_id=parsed_id,
            kind=str(data.get("kind") or "").strip(),
            floor=str(data.get("floor") or "").strip(),
            room=str(data.get("room") or "").strip(),
            name=str(data.get("name") or "").strip(),
            enabled=True if enabled is None else bool(enabled),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "var_id": self.var_id,
            "kind": self.kind,
            "floor": self.floor,
            "room": self.room,
            "name": self.name,
            "enabled": self.enabled,
        }


@dataclass(slots=True)
class Device:
    """Synthesized device; never persisted."""

    var_id: int
    name: str
    kind: str
    floor: str
    room: str
    type: VariableType
    profile: str
    capabilities: list[str] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return device_id_for(self.var_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "location": {"floor": self.floor, "room": self.room},
            "capabilities": list(self.capabilities),
            "state": dict(self.state),
            "var_id": self.var_id,
            "type": int(self.type),
            "profile": self.profile,
        }


def infer_capabilities(var_type: VariableType, profile: str) -> list[str]:
    if var_type == VariableType.BOOLEAN:
        return [CAP_ON_OFF]
    if "intensity" in (profile or "").lower() or var_type in _NUMERIC_TYPES:
        return [CAP_LEVEL]
    return [CAP_VALUE]


def build_state(var_type: VariableType, value: Any) -> dict[str, Any]:
    if var_type == VariableType.BOOLEAN:
        return {"on": bool(value)}
    if var_type in _NUMERIC_TYPES:
        return {"level": value}
    return {"value": value}


class DeviceRegistry:
    """Joins registry entries with live variables to produce devices."""

    def __init__(self, store: ObjectStore, entries: "SQLiteDeviceRegistryStore") -> None:
        self.store = store
        self.entries = entries

    def list_devices(self) -> list[Device]:
        devices: list[Device] = []
        for entry in self.entries.list_entries():
            if not entry.enabled:
                continue
            device = self._materialize(entry)
            if device is not None:
                devices.append(device)
        return devices

    def _materialize(self, entry: DeviceRegistryEntry) -> Device | None:
        var = self.store.get_variable(entry.var_id)
        obj = self.store.get_object(entry.var_id)
        if var is None or obj is None:
            return None
        try:
            value = self.store.get_value(entry.var_id)
        except ObjectStoreError:
            return None
        profile = var.effective_profile
        return Device(
            var_id=entry.var_id,
            name=entry.name or obj.name,
            kind=entry.kind,
            floor=entry.floor,
            room=entry.room,
            type=var.type,
            profile=profile,
            capabilities=infer_capabilities(var.type, profile),
            state=build_state(var.type, value),
        )

    def get_entry(self, var_id: int) -> DeviceRegistryEntry | None:
        return self.entries.get(var_id)

    def upsert(self, entry: DeviceRegistryEntry) -> DeviceRegistryEntry:
        self.entries.upsert(entry)
        return entry

    def delete(self, var_id: int) -> bool:
        return self.entries.delete(var_id)

    def room_options(self) -> list[str]:
        return self.entries.room_options()
