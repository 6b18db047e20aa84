"""Type-aware coercion of untyped wire values before a write."""

from __future__ import annotations

import json
import math
import re
from enum import StrEnum
from typing import Any, Callable

from varbridge.store.base import VariableType

TRUTHY_TOKENS = frozenset({"1", "true", "yes", "on", "ein", "an"})
_INT_TEXT = re.compile(r"[+-]?\d+", re.ASCII)
_NUMBER_TEXT = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


class RawKind(StrEnum):
    """Shape of a decoded JSON value."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    NULL = "null"
    COMPOSITE = "composite"


def classify(raw: Any) -> RawKind:
    if raw is None:
        return RawKind.NULL
    if isinstance(raw, bool):
        return RawKind.BOOL
    if isinstance(raw, int):
        return RawKind.INT
    if isinstance(raw, float):
        return RawKind.FLOAT
    if isinstance(raw, (dict, list, tuple)):
        return RawKind.COMPOSITE
    return RawKind.STRING


def compact_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _parse_number(raw: Any) -> float | None:
    """Finite number carried by ``raw`` (numeric strings included), else None."""
    kind = classify(raw)
    if kind == RawKind.STRING:
        text = str(raw).strip()
        if not _NUMBER_TEXT.fullmatch(text):
            return None
        raw = text
    elif kind not in {RawKind.BOOL, RawKind.INT, RawKind.FLOAT}:
        return None
    try:
        number = float(raw)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def stringify(raw: Any) -> str:
    kind = classify(raw)
    if kind == RawKind.NULL:
        return ""
    if kind == RawKind.BOOL:
        return "true" if raw else "false"
    if kind == RawKind.COMPOSITE:
        return compact_json(raw)
    return str(raw)


def _to_bool(raw: Any) -> bool:
    kind = classify(raw)
    if kind == RawKind.BOOL:
        return raw
    if kind == RawKind.INT:
        return raw != 0
    number = _parse_number(raw)
    if number is not None:
        return number != 0
    return stringify(raw).lower() in TRUTHY_TOKENS


def _to_int(raw: Any) -> int:
    kind = classify(raw)
    if kind == RawKind.INT:
        return raw
    if kind == RawKind.STRING:
        text = str(raw).strip()
        if _INT_TEXT.fullmatch(text):
            try:
                return int(text)
            except ValueError:
                return 0  # beyond the interpreter digit limit
    number = _parse_number(raw)
    return int(number) if number is not None else 0


def _to_float(raw: Any) -> float:
    number = _parse_number(raw)
    return number if number is not None else 0.0


_COERCERS: dict[VariableType, Callable[[Any], Any]] = {
    VariableType.BOOLEAN: _to_bool,
    VariableType.INTEGER: _to_int,
    VariableType.FLOAT: _to_float,
    VariableType.STRING: stringify,
}


def coerce_value(raw: Any, declared: VariableType | int) -> Any:
    """Convert ``raw`` into the representation ``declared`` requires.

    Never raises: inputs that cannot be read as the target type collapse to
    that type's zero value (``False``, ``0``, ``0.0``). Unknown type codes are
    treated as strings.
    """
    target = declared if isinstance(declared, VariableType) else VariableType.parse(declared)
    return _COERCERS[target](raw)
