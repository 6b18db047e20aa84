from varbridge.bridge.walker import (
    build_path,
    find_instance_id,
    read_record,
    value_text,
    walk_variables,
)
from varbridge.store import MemoryObjectStore, ObjectInfo, VariableType


def _nested_store() -> tuple[MemoryObjectStore, int]:
    store = MemoryObjectStore()
    root = store.add_category("Root", object_id=100)
    mid = store.add_instance("Mid", parent_id=root, object_id=200)
    leaf = store.add_variable("Leaf", VariableType.INTEGER, parent_id=mid, object_id=300, value=7)
    return store, leaf


def test_walk_nested_variable_builds_full_path() -> None:
    store, leaf = _nested_store()

    records = walk_variables(store, 0)

    assert len(records) == 1
    record = records[0]
    assert record.var_id == leaf
    assert record.path == "Root / Mid / Leaf"
    assert record.name == "Leaf"
    assert record.parent_id == 200
    assert record.instance_id == 200
    assert record.value == 7
    assert record.type_text == "Integer"


def test_walk_descends_below_variables_and_keeps_host_order() -> None:
    store = MemoryObjectStore()
    cat = store.add_category("Home")
    outer = store.add_variable("Outer", "string", parent_id=cat, value="x")
    store.add_variable("Inner", "bool", parent_id=outer, value=True)
    store.add_variable("Second", "float", parent_id=cat, value=1.5)

    names = [r.name for r in walk_variables(store, 0)]

    assert names == ["Outer", "Inner", "Second"]


def test_walk_from_subtree_root() -> None:
    store = MemoryObjectStore()
    a = store.add_category("A")
    b = store.add_category("B")
    store.add_variable("InA", "int", parent_id=a)
    store.add_variable("InB", "int", parent_id=b)

    records = walk_variables(store, b)

    assert [r.name for r in records] == ["InB"]
    assert records[0].path == "B / InB"


def test_walk_negative_or_missing_root_is_empty() -> None:
    store, _ = _nested_store()

    assert walk_variables(store, -1) == []
    assert walk_variables(store, 999999) == []


def test_walk_skips_objects_that_vanish_mid_walk() -> None:
    store = MemoryObjectStore()
    cat = store.add_category("Cat")
    gone = store.add_variable("Gone", "int", parent_id=cat)
    store.add_variable("Kept", "int", parent_id=cat)

    original_get_object = store.get_object

    def flaky_get_object(object_id: int) -> ObjectInfo | None:
        if object_id == gone:
            return None
        return original_get_object(object_id)

    store.get_object = flaky_get_object  # type: ignore[method-assign]

    records = walk_variables(store, 0)

    assert [r.name for r in records] == ["Kept"]


def test_build_path_and_instance_lookup() -> None:
    store, leaf = _nested_store()

    assert build_path(store, leaf) == "Root / Mid / Leaf"
    assert build_path(store, 100) == "Root"
    assert find_instance_id(store, leaf) == 200
    assert find_instance_id(store, 100) == 0


def test_record_uses_custom_profile_when_profile_empty() -> None:
    store = MemoryObjectStore()
    var_id = store.add_variable("Dimmer", "int", custom_profile="~Intensity.100")

    record = read_record(store, var_id)

    assert record is not None
    assert record.profile == "~Intensity.100"


def test_read_record_returns_none_for_non_variable() -> None:
    store, _ = _nested_store()

    assert read_record(store, 100) is None
    assert read_record(store, 424242) is None


def test_value_text_is_bounded_with_ellipsis() -> None:
    long_text = "x" * 200

    rendered = value_text(long_text)

    assert len(rendered) == 80
    assert rendered.endswith("…")
    assert value_text("short") == "short"
    assert value_text(True) == "true"
    assert value_text(None) == ""
    assert value_text({"a": 1}) == '{"a":1}'


def test_record_to_dict_shape() -> None:
    store, leaf = _nested_store()

    item = walk_variables(store)[0].to_dict()

    assert item == {
        "var_id": leaf,
        "name": "Leaf",
        "path": "Root / Mid / Leaf",
        "type": 1,
        "type_text": "Integer",
        "value": 7,
        "value_text": "7",
        "profile": "",
        "ident": "",
        "parent_id": 200,
        "instance_id": 200,
    }
