"""In-memory object store used for local simulation and tests."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from varbridge.store.base import (
    ObjectInfo,
    ObjectKind,
    ObjectStore,
    ObjectStoreError,
    VariableInfo,
    VariableType,
)

ActionHandler = Callable[[Any], bool]

_FIRST_OBJECT_ID = 10000
_KIND_ALIASES = {
    "category": ObjectKind.CATEGORY,
    "instance": ObjectKind.INSTANCE,
    "variable": ObjectKind.VARIABLE,
    "script": ObjectKind.SCRIPT,
    "event": ObjectKind.EVENT,
    "media": ObjectKind.MEDIA,
    "link": ObjectKind.LINK,
}
_TYPE_ALIASES = {
    "bool": VariableType.BOOLEAN,
    "boolean": VariableType.BOOLEAN,
    "int": VariableType.INTEGER,
    "integer": VariableType.INTEGER,
    "float": VariableType.FLOAT,
    "string": VariableType.STRING,
}


@dataclass(slots=True)
class _Node:
    object_id: int
    name: str
    kind: ObjectKind
    parent_id: int
    ident: str = ""
    children: list[int] = field(default_factory=list)
    var_type: VariableType = VariableType.STRING
    value: Any = None
    profile: str = ""
    custom_profile: str = ""
    action_enabled: bool = False
    read_only: bool = False
    changed_at: int = 0
    updated_at: int = 0


def _now_s() -> int:
    return int(time.time())


def _default_value(var_type: VariableType) -> Any:
    return {
        VariableType.BOOLEAN: False,
        VariableType.INTEGER: 0,
        VariableType.FLOAT: 0.0,
        VariableType.STRING: "",
    }[var_type]


def _normalize_value(var_type: VariableType, value: Any) -> Any:
    try:
        if var_type == VariableType.BOOLEAN:
            return bool(value)
        if var_type == VariableType.INTEGER:
            return int(value)
        if var_type == VariableType.FLOAT:
            return float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ObjectStoreError(f"value {value!r} does not fit {var_type.label}") from e
    return "" if value is None else str(value)


def _parse_kind(value: Any) -> ObjectKind:
    if isinstance(value, str) and value.strip().lower() in _KIND_ALIASES:
        return _KIND_ALIASES[value.strip().lower()]
    try:
        return ObjectKind(int(value))
    except (TypeError, ValueError, OverflowError):
        return ObjectKind.CATEGORY


def _parse_var_type(value: Any) -> VariableType:
    if isinstance(value, str) and value.strip().lower() in _TYPE_ALIASES:
        return _TYPE_ALIASES[value.strip().lower()]
    return VariableType.parse(value)


class MemoryObjectStore(ObjectStore):
    """Thread-safe tree of objects held in process memory."""

    name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: dict[int, _Node] = {}
        self._root_children: list[int] = []
        self._profiles: dict[str, dict[str, Any]] = {}
        self._handlers: dict[tuple[int, str], ActionHandler] = {}
        self._next_id = _FIRST_OBJECT_ID

    # -- builders -------------------------------------------------------

    def _allocate_id(self, object_id: int | None) -> int:
        if object_id is None:
            while self._next_id in self._nodes:
                self._next_id += 1
            object_id = self._next_id
            self._next_id += 1
        object_id = int(object_id)
        if object_id <= 0:
            raise ValueError("object id must be positive")
        if object_id in self._nodes:
            raise ValueError(f"object id {object_id} already exists")
        return object_id

    def _attach(self, node: _Node) -> int:
        if node.parent_id != 0 and node.parent_id not in self._nodes:
            raise ValueError(f"parent {node.parent_id} does not exist")
        self._nodes[node.object_id] = node
        siblings = self._root_children if node.parent_id == 0 else self._nodes[node.parent_id].children
        siblings.append(node.object_id)
        return node.object_id

    def add_category(self, name: str, *, parent_id: int = 0, object_id: int | None = None) -> int:
        with self._lock:
            oid = self._allocate_id(object_id)
            return self._attach(_Node(oid, name, ObjectKind.CATEGORY, int(parent_id)))

    def add_instance(
        self,
        name: str,
        *,
        parent_id: int = 0,
        object_id: int | None = None,
        ident: str = "",
    ) -> int:
        with self._lock:
            oid = self._allocate_id(object_id)
            return self._attach(_Node(oid, name, ObjectKind.INSTANCE, int(parent_id), ident=ident))

    def add_variable(
        self,
        name: str,
        var_type: VariableType | int | str,
        *,
        parent_id: int = 0,
        object_id: int | None = None,
        value: Any = None,
        ident: str = "",
        profile: str = "",
        custom_profile: str = "",
        action_enabled: bool = False,
        read_only: bool = False,
    ) -> int:
        vtype = var_type if isinstance(var_type, VariableType) else _parse_var_type(var_type)
        stored = _default_value(vtype) if value is None else _normalize_value(vtype, value)
        now = _now_s()
        with self._lock:
            oid = self._allocate_id(object_id)
            return self._attach(
                _Node(
                    oid,
                    name,
                    ObjectKind.VARIABLE,
                    int(parent_id),
                    ident=ident,
                    var_type=vtype,
                    value=stored,
                    profile=profile,
                    custom_profile=custom_profile,
                    action_enabled=action_enabled,
                    read_only=read_only,
                    changed_at=now,
                    updated_at=now,
                )
            )

    def add_profile(self, name: str, info: dict[str, Any] | None = None) -> None:
        with self._lock:
            self._profiles[name] = {"ProfileName": name, **dict(info or {})}

    def register_action(self, instance_id: int, ident: str, handler: ActionHandler) -> None:
        """Route actuation of ``ident`` on ``instance_id`` through ``handler``."""
        with self._lock:
            self._handlers[(int(instance_id), ident)] = handler

    def remove(self, object_id: int) -> None:
        """Delete an object and its whole subtree."""
        with self._lock:
            node = self._nodes.get(int(object_id))
            if node is None:
                return
            for child_id in list(node.children):
                self.remove(child_id)
            siblings = self._root_children if node.parent_id == 0 else self._nodes[node.parent_id].children
            if node.object_id in siblings:
                siblings.remove(node.object_id)
            del self._nodes[node.object_id]

    # -- snapshots ------------------------------------------------------

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "MemoryObjectStore":
        """Build a store from ``{"profiles": {...}, "objects": [tree...]}``."""
        store = cls()
        profiles = data.get("profiles") or {}
        if isinstance(profiles, dict):
            for name, info in profiles.items():
                store.add_profile(str(name), info if isinstance(info, dict) else {})
        objects = data.get("objects") or []
        if not isinstance(objects, list):
            raise ValueError("snapshot objects must be a list")
        for item in objects:
            store._load_node(item, parent_id=0)
        return store

    @classmethod
    def load_snapshot(cls, path: str | Path) -> "MemoryObjectStore":
        with Path(path).expanduser().open(encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} must be a JSON object")
        return cls.from_snapshot(data)

    def _load_node(self, item: Any, *, parent_id: int) -> None:
        if not isinstance(item, dict):
            raise ValueError("snapshot object entries must be objects")
        name = str(item.get("name") or "").strip()
        if not name:
            raise ValueError("snapshot object is missing a name")
        raw_id = item.get("id")
        object_id = int(raw_id) if raw_id is not None else None
        kind = _parse_kind(item.get("kind", "category"))
        ident = str(item.get("ident") or "")
        if kind == ObjectKind.VARIABLE:
            oid = self.add_variable(
                name,
                item.get("type", VariableType.STRING),
                parent_id=parent_id,
                object_id=object_id,
                value=item.get("value"),
                ident=ident,
                profile=str(item.get("profile") or ""),
                custom_profile=str(item.get("custom_profile") or ""),
                action_enabled=bool(item.get("action_enabled", False)),
                read_only=bool(item.get("read_only", False)),
            )
        elif kind == ObjectKind.INSTANCE:
            oid = self.add_instance(name, parent_id=parent_id, object_id=object_id, ident=ident)
        else:
            with self._lock:
                oid = self._attach(_Node(self._allocate_id(object_id), name, kind, parent_id, ident=ident))
        for child in item.get("children") or []:
            self._load_node(child, parent_id=oid)

    # -- ObjectStore ----------------------------------------------------

    def object_exists(self, object_id: int) -> bool:
        with self._lock:
            return int(object_id) in self._nodes

    def get_object(self, object_id: int) -> ObjectInfo | None:
        with self._lock:
            node = self._nodes.get(int(object_id))
            if node is None:
                return None
            return ObjectInfo(
                object_id=node.object_id,
                name=node.name,
                kind=node.kind,
                parent_id=node.parent_id,
                ident=node.ident,
                children=list(node.children),
            )

    def variable_exists(self, var_id: int) -> bool:
        with self._lock:
            node = self._nodes.get(int(var_id))
            return node is not None and node.kind == ObjectKind.VARIABLE

    def get_variable(self, var_id: int) -> VariableInfo | None:
        with self._lock:
            node = self._nodes.get(int(var_id))
            if node is None or node.kind != ObjectKind.VARIABLE:
                return None
            return VariableInfo(
                var_id=node.object_id,
                type=node.var_type,
                profile=node.profile,
                custom_profile=node.custom_profile,
                changed_at=node.changed_at,
                updated_at=node.updated_at,
            )

    def get_value(self, var_id: int) -> Any:
        with self._lock:
            return self._variable_node(var_id).value

    def set_value(self, var_id: int, value: Any) -> None:
        with self._lock:
            node = self._variable_node(var_id)
            if node.read_only:
                raise ObjectStoreError(f"variable {node.object_id} is read-only")
            self._store_value(node, value)

    def profile_exists(self, name: str) -> bool:
        with self._lock:
            return name in self._profiles

    def get_profile(self, name: str) -> dict[str, Any] | None:
        with self._lock:
            info = self._profiles.get(name)
            return dict(info) if info is not None else None

    def children_of(self, object_id: int) -> list[int]:
        with self._lock:
            if int(object_id) == 0:
                return list(self._root_children)
            node = self._nodes.get(int(object_id))
            return list(node.children) if node else []

    def request_action(self, instance_id: int, ident: str, value: Any) -> bool:
        with self._lock:
            handler = self._handlers.get((int(instance_id), ident))
            instance = self._nodes.get(int(instance_id))
        if handler is not None:
            return bool(handler(value))
        if instance is None or instance.kind != ObjectKind.INSTANCE:
            return False
        with self._lock:
            target = self._find_owned_variable(instance, ident)
            if target is None or not target.action_enabled:
                return False
            self._store_value(target, value)
            return True

    def _find_owned_variable(self, instance: _Node, ident: str) -> _Node | None:
        """Variable with ``ident`` anywhere below ``instance``, not crossing nested instances."""
        pending = list(instance.children)
        while pending:
            node = self._nodes.get(pending.pop(0))
            if node is None or node.kind == ObjectKind.INSTANCE:
                continue
            if node.kind == ObjectKind.VARIABLE and node.ident == ident:
                return node
            pending.extend(node.children)
        return None

    def _variable_node(self, var_id: int) -> _Node:
        node = self._nodes.get(int(var_id))
        if node is None or node.kind != ObjectKind.VARIABLE:
            raise ObjectStoreError(f"variable {var_id} does not exist")
        return node

    @staticmethod
    def _store_value(node: _Node, value: Any) -> None:
        normalized = _normalize_value(node.var_type, value)
        now = _now_s()
        if normalized != node.value:
            node.changed_at = now
        node.value = normalized
        node.updated_at = now
