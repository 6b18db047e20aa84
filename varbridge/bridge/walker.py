"""Flatten the host's object tree into addressable variable records."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from loguru import logger

from varbridge.bridge.coercion import stringify
from varbridge.store.base import ObjectStore, ObjectStoreError, VariableType

PATH_SEPARATOR = " / "
VALUE_TEXT_MAX_CHARS = 80
_ELLIPSIS = "…"


def value_text(value: Any, max_chars: int = VALUE_TEXT_MAX_CHARS) -> str:
    """Human rendering of ``value`` bounded to ``max_chars`` characters."""
    text = stringify(value)
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - 1)] + _ELLIPSIS


@dataclass(slots=True, frozen=True)
class VariableRecord:
    """Read projection of one variable, built per request."""

    var_id: int
    name: str
    path: str
    type: VariableType
    value: Any
    profile: str = ""
    ident: str = ""
    parent_id: int = 0
    instance_id: int = 0

    @property
    def type_text(self) -> str:
        return self.type.label

    @property
    def value_text(self) -> str:
        return value_text(self.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "var_id": self.var_id,
            "name": self.name,
            "path": self.path,
            "type": int(self.type),
            "type_text": self.type_text,
            "value": self.value,
            "value_text": self.value_text,
            "profile": self.profile,
            "ident": self.ident,
            "parent_id": self.parent_id,
            "instance_id": self.instance_id,
        }


def build_path(store: ObjectStore, object_id: int) -> str:
    """Ancestor names from the root down to ``object_id``, joined."""
    parts: list[str] = []
    current = int(object_id)
    seen: set[int] = set()
    while current > 0 and current not in seen:
        seen.add(current)
        obj = store.get_object(current)
        if obj is None:
            break
        parts.append(obj.name)
        current = obj.parent_id
    return PATH_SEPARATOR.join(reversed(parts))


def find_instance_id(store: ObjectStore, object_id: int) -> int:
    """Nearest instance ancestor of ``object_id`` (itself included), 0 if none."""
    current = int(object_id)
    seen: set[int] = set()
    while current > 0 and current not in seen:
        seen.add(current)
        obj = store.get_object(current)
        if obj is None:
            return 0
        if obj.is_instance:
            return current
        current = obj.parent_id
    return 0


def read_record(store: ObjectStore, var_id: int) -> VariableRecord | None:
    """Build the record for ``var_id``; ``None`` if it is not (or no longer) a variable."""
    obj = store.get_object(var_id)
    var = store.get_variable(var_id)
    if obj is None or var is None:
        return None
    try:
        value = store.get_value(var_id)
    except ObjectStoreError as e:
        logger.debug(f"variable {var_id} value unreadable: {e}")
        return None
    return VariableRecord(
        var_id=int(var_id),
        name=obj.name,
        path=build_path(store, var_id),
        type=var.type,
        value=value,
        profile=var.effective_profile,
        ident=obj.ident,
        parent_id=obj.parent_id,
        instance_id=find_instance_id(store, var_id),
    )


def iter_variables(store: ObjectStore, root_id: int) -> Iterator[VariableRecord]:
    """Yield every variable below ``root_id`` in host child order (pre-order).

    Failures listing the root propagate; a descendant whose children can no
    longer be listed is skipped.
    """
    root_id = int(root_id)
    if root_id < 0:
        return
    if root_id != 0 and not store.object_exists(root_id):
        return
    yield from _iter_children(store, store.children_of(root_id))


def _iter_children(store: ObjectStore, child_ids: list[int]) -> Iterator[VariableRecord]:
    for child_id in child_ids:
        obj = store.get_object(child_id)
        if obj is None:
            logger.debug(f"object {child_id} vanished during walk, skipped")
            continue
        if obj.is_variable:
            record = read_record(store, child_id)
            if record is not None:
                yield record
        try:
            grandchildren = store.children_of(child_id)
        except ObjectStoreError as e:
            logger.debug(f"children of {child_id} unreadable, skipped: {e}")
            continue
        yield from _iter_children(store, grandchildren)


def walk_variables(store: ObjectStore, root_id: int = 0) -> list[VariableRecord]:
    return list(iter_variables(store, root_id))
