import pytest

from varbridge.bridge.errors import NotFoundError, WriteFailed
from varbridge.bridge.writer import write_variable
from varbridge.store import MemoryObjectStore, ObjectStoreError, VariableType


def _store_with_instance() -> tuple[MemoryObjectStore, int]:
    store = MemoryObjectStore()
    instance = store.add_instance("Dimmer", object_id=500)
    return store, instance


def test_actuate_path_used_when_instance_accepts() -> None:
    store, instance = _store_with_instance()
    var_id = store.add_variable(
        "Status", VariableType.BOOLEAN, parent_id=instance, ident="STATE", action_enabled=True
    )

    result = write_variable(store, var_id, "on")

    assert result.used == "actuate"
    assert result.value is True
    assert store.get_value(var_id) is True


def test_actuate_receives_coerced_value_and_instance_address() -> None:
    store, instance = _store_with_instance()
    var_id = store.add_variable("Level", VariableType.INTEGER, parent_id=instance, ident="LEVEL")
    calls: list[object] = []

    def handler(value: object) -> bool:
        calls.append(value)
        store.set_value(var_id, value)
        return True

    store.register_action(instance, "LEVEL", handler)

    result = write_variable(store, var_id, "42.9")

    assert calls == [42]
    assert result.used == "actuate"
    assert result.value == 42


def test_refused_actuate_falls_back_to_direct_set() -> None:
    store, instance = _store_with_instance()
    var_id = store.add_variable("Level", VariableType.INTEGER, parent_id=instance, ident="LEVEL")

    result = write_variable(store, var_id, 17)

    assert result.used == "actuate -> direct-set"
    assert result.value == 17


def test_raising_actuate_falls_back_to_direct_set() -> None:
    store, instance = _store_with_instance()
    var_id = store.add_variable("Mode", VariableType.STRING, parent_id=instance, ident="MODE")

    def handler(value: object) -> bool:
        raise RuntimeError("instance offline")

    store.register_action(instance, "MODE", handler)

    result = write_variable(store, var_id, {"mode": "eco"})

    assert result.used == "actuate -> direct-set"
    assert result.value == '{"mode":"eco"}'


def test_without_ident_only_direct_set_is_tried() -> None:
    store, instance = _store_with_instance()
    var_id = store.add_variable("Plain", VariableType.FLOAT, parent_id=instance)

    result = write_variable(store, var_id, "2.5")

    assert result.used == "direct-set"
    assert result.value == 2.5


def test_without_instance_ancestor_only_direct_set_is_tried() -> None:
    store = MemoryObjectStore()
    cat = store.add_category("Scripts")
    var_id = store.add_variable("Counter", VariableType.INTEGER, parent_id=cat, ident="COUNTER")

    result = write_variable(store, var_id, 3)

    assert result.used == "direct-set"


def test_missing_variable_raises_not_found() -> None:
    store, _ = _store_with_instance()

    with pytest.raises(NotFoundError) as exc_info:
        write_variable(store, 123456, 1)

    assert exc_info.value.code == 404
    assert exc_info.value.data == {"var_id": 123456}


def test_both_paths_failing_raises_write_failed() -> None:
    store, instance = _store_with_instance()
    var_id = store.add_variable(
        "Locked", VariableType.INTEGER, parent_id=instance, ident="LOCKED", read_only=True
    )

    with pytest.raises(WriteFailed) as exc_info:
        write_variable(store, var_id, 5)

    error = exc_info.value
    assert error.code == 500
    assert error.data["var_id"] == var_id
    assert error.data["used"] == "actuate -> direct-set"
    assert "read-only" in error.data["error"]


def test_result_value_is_reread_from_store() -> None:
    store, _ = _store_with_instance()
    var_id = store.add_variable("Temp", VariableType.FLOAT, value=20.0)
    original_get_value = store.get_value

    def normalizing_get_value(object_id: int) -> object:
        value = original_get_value(object_id)
        return round(value, 1) if object_id == var_id else value

    store.get_value = normalizing_get_value  # type: ignore[method-assign]

    result = write_variable(store, var_id, "21.456")

    assert result.value == 21.5


def test_store_error_on_set_is_reported() -> None:
    store, _ = _store_with_instance()
    var_id = store.add_variable("Broken", VariableType.STRING)

    def failing_set(object_id: int, value: object) -> None:
        raise ObjectStoreError("host rejected write")

    store.set_value = failing_set  # type: ignore[method-assign]

    with pytest.raises(WriteFailed) as exc_info:
        write_variable(store, var_id, "x")

    assert exc_info.value.data["used"] == "direct-set"
    assert exc_info.value.data["error"] == "host rejected write"
