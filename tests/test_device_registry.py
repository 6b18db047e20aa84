from pathlib import Path

import pytest

from varbridge.bridge.registry import (
    CAP_LEVEL,
    CAP_ON_OFF,
    CAP_VALUE,
    DeviceRegistry,
    DeviceRegistryEntry,
    infer_capabilities,
)
from varbridge.storage import SQLiteDeviceRegistryStore
from varbridge.store import MemoryObjectStore, VariableType


def _registry(tmp_path: Path) -> tuple[DeviceRegistry, MemoryObjectStore]:
    store = MemoryObjectStore()
    room = store.add_category("Kitchen", object_id=10)
    store.add_variable("Light", "bool", parent_id=room, object_id=11, value=True)
    store.add_variable("Dimmer", "int", parent_id=room, object_id=12, value=40, profile="~Intensity.100")
    store.add_variable("Note", "string", parent_id=room, object_id=13, value="hello")
    store.add_variable("Temp", "float", parent_id=room, object_id=14, value=21.5)
    entries = SQLiteDeviceRegistryStore(tmp_path / "registry.db")
    return DeviceRegistry(store, entries), store


def test_list_devices_synthesizes_capabilities_and_state(tmp_path: Path) -> None:
    registry, _ = _registry(tmp_path)
    registry.upsert(DeviceRegistryEntry(var_id=11, kind="light", floor="EG", room="Kitchen"))
    registry.upsert(DeviceRegistryEntry(var_id=12, kind="dimmer", floor="EG", room="Kitchen"))
    registry.upsert(DeviceRegistryEntry(var_id=13, kind="note", room="Hall"))

    devices = {d.var_id: d for d in registry.list_devices()}

    assert devices[11].capabilities == [CAP_ON_OFF]
    assert devices[11].state == {"on": True}
    assert devices[12].capabilities == [CAP_LEVEL]
    assert devices[12].state == {"level": 40}
    assert devices[13].capabilities == [CAP_VALUE]
    assert devices[13].state == {"value": "hello"}


def test_device_to_dict_shape(tmp_path: Path) -> None:
    registry, _ = _registry(tmp_path)
    registry.upsert(DeviceRegistryEntry(var_id=11, kind="light", floor="EG", room="Kitchen"))

    item = registry.list_devices()[0].to_dict()

    assert item == {
        "id": "var-11",
        "name": "Light",
        "kind": "light",
        "location": {"floor": "EG", "room": "Kitchen"},
        "capabilities": ["on_off"],
        "state": {"on": True},
        "var_id": 11,
        "type": 0,
        "profile": "",
    }


def test_entry_name_overrides_variable_name(tmp_path: Path) -> None:
    registry, _ = _registry(tmp_path)
    registry.upsert(DeviceRegistryEntry(var_id=14, kind="sensor", name="Kitchen temperature"))

    devices = registry.list_devices()

    assert devices[0].name == "Kitchen temperature"
    assert devices[0].state == {"level": 21.5}


def test_disabled_and_missing_entries_are_skipped(tmp_path: Path) -> None:
    registry, store = _registry(tmp_path)
    registry.upsert(DeviceRegistryEntry(var_id=11, kind="light", enabled=False))
    registry.upsert(DeviceRegistryEntry(var_id=12, kind="dimmer"))
    registry.upsert(DeviceRegistryEntry(var_id=999, kind="ghost"))
    registry.upsert(DeviceRegistryEntry(var_id=10, kind="category-not-variable"))

    assert [d.var_id for d in registry.list_devices()] == [12]

    store.remove(12)
    assert registry.list_devices() == []


def test_devices_reflect_live_values(tmp_path: Path) -> None:
    registry, store = _registry(tmp_path)
    registry.upsert(DeviceRegistryEntry(var_id=11, kind="light"))

    store.set_value(11, False)

    assert registry.list_devices()[0].state == {"on": False}


def test_infer_capabilities_intensity_profile_wins_for_non_numeric() -> None:
    assert infer_capabilities(VariableType.STRING, "~Intensity.255") == [CAP_LEVEL]
    assert infer_capabilities(VariableType.BOOLEAN, "~Intensity.100") == [CAP_ON_OFF]
    assert infer_capabilities(VariableType.FLOAT, "") == [CAP_LEVEL]
    assert infer_capabilities(VariableType.STRING, "") == [CAP_VALUE]


def test_room_options_and_delete(tmp_path: Path) -> None:
    registry, _ = _registry(tmp_path)
    registry.upsert(DeviceRegistryEntry(var_id=11, room="Kitchen"))
    registry.upsert(DeviceRegistryEntry(var_id=12, room="Attic"))
    registry.upsert(DeviceRegistryEntry(var_id=13, room="Kitchen"))
    registry.upsert(DeviceRegistryEntry(var_id=14))

    assert registry.room_options() == ["Attic", "Kitchen"]
    assert registry.delete(12) is True
    assert registry.delete(12) is False
    assert registry.get_entry(12) is None
    assert registry.room_options() == ["Kitchen"]


def test_entry_from_dict_validates_var_id() -> None:
    entry = DeviceRegistryEntry.from_dict({"varId": "15", "room": " Hall ", "enabled": None})

    assert entry.var_id == 15
    assert entry.room == "Hall"
    assert entry.enabled is True

    with pytest.raises(ValueError):
        DeviceRegistryEntry.from_dict({"var_id": 0})
    with pytest.raises(ValueError):
        DeviceRegistryEntry.from_dict({"var_id": "abc"})
    with pytest.raises(ValueError):
        DeviceRegistryEntry.from_dict({})
    with pytest.raises(ValueError):
        DeviceRegistryEntry.from_dict({"var_id": float("inf")})
