import json

from varbridge.bridge.coercion import RawKind, classify, coerce_value
from varbridge.store import VariableType


def test_classify_tags_raw_values() -> None:
    assert classify(None) == RawKind.NULL
    assert classify(True) == RawKind.BOOL
    assert classify(3) == RawKind.INT
    assert classify(3.5) == RawKind.FLOAT
    assert classify("x") == RawKind.STRING
    assert classify({"a": 1}) == RawKind.COMPOSITE
    assert classify([1, 2]) == RawKind.COMPOSITE


def test_bool_coercion() -> None:
    assert coerce_value(True, VariableType.BOOLEAN) is True
    assert coerce_value(False, VariableType.BOOLEAN) is False
    assert coerce_value(5, VariableType.BOOLEAN) is True
    assert coerce_value(0, VariableType.BOOLEAN) is False
    assert coerce_value(0.5, VariableType.BOOLEAN) is True
    assert coerce_value("on", VariableType.BOOLEAN) is True
    assert coerce_value("ON", VariableType.BOOLEAN) is True
    assert coerce_value("Ein", VariableType.BOOLEAN) is True
    assert coerce_value("an", VariableType.BOOLEAN) is True
    assert coerce_value("yes", VariableType.BOOLEAN) is True
    assert coerce_value("off", VariableType.BOOLEAN) is False
    assert coerce_value("maybe", VariableType.BOOLEAN) is False
    assert coerce_value("0", VariableType.BOOLEAN) is False
    assert coerce_value("1", VariableType.BOOLEAN) is True
    assert coerce_value(None, VariableType.BOOLEAN) is False


def test_int_coercion_truncates_toward_zero() -> None:
    assert coerce_value("42", VariableType.INTEGER) == 42
    assert coerce_value(3.9, VariableType.INTEGER) == 3
    assert coerce_value(-3.9, VariableType.INTEGER) == -3
    assert coerce_value("-2.7", VariableType.INTEGER) == -2
    assert coerce_value(True, VariableType.INTEGER) == 1
    assert coerce_value("abc", VariableType.INTEGER) == 0
    assert coerce_value(None, VariableType.INTEGER) == 0
    assert coerce_value({"a": 1}, VariableType.INTEGER) == 0
    assert coerce_value("nan", VariableType.INTEGER) == 0


def test_float_coercion() -> None:
    assert coerce_value("2.5", VariableType.FLOAT) == 2.5
    assert coerce_value(3, VariableType.FLOAT) == 3.0
    assert isinstance(coerce_value(3, VariableType.FLOAT), float)
    assert coerce_value("abc", VariableType.FLOAT) == 0.0
    assert coerce_value("inf", VariableType.FLOAT) == 0.0


def test_string_coercion_renders_composites_as_compact_json() -> None:
    text = coerce_value({"a": 1, "path": "x/y", "name": "Küche"}, VariableType.STRING)

    assert json.loads(text) == {"a": 1, "path": "x/y", "name": "Küche"}
    assert "Küche" in text
    assert "x/y" in text
    assert " " not in text
    assert coerce_value([1, 2], VariableType.STRING) == "[1,2]"
    assert coerce_value(12, VariableType.STRING) == "12"
    assert coerce_value(None, VariableType.STRING) == ""
    assert coerce_value(True, VariableType.STRING) == "true"


def test_unknown_type_code_falls_back_to_string() -> None:
    assert coerce_value(5, 99) == "5"
    assert coerce_value("on", 0) is True


def test_numeric_strings_use_plain_decimal_syntax() -> None:
    assert coerce_value("1_000", VariableType.INTEGER) == 0
    assert coerce_value("1_000", VariableType.FLOAT) == 0.0
    assert coerce_value("1_000", VariableType.BOOLEAN) is False
    assert coerce_value("٣", VariableType.INTEGER) == 0
    assert coerce_value(" +17 ", VariableType.INTEGER) == 17
    assert coerce_value("1e3", VariableType.INTEGER) == 1000
    assert coerce_value(".5", VariableType.FLOAT) == 0.5
    assert coerce_value("12abc", VariableType.INTEGER) == 0


def test_huge_integers_do_not_overflow() -> None:
    huge = 10**400

    assert coerce_value(huge, VariableType.BOOLEAN) is True
    assert coerce_value(huge, VariableType.FLOAT) == 0.0
    assert coerce_value(huge, VariableType.INTEGER) == huge
