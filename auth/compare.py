"""
auth/compare.py -- Relational checks between a claim value and an expected value.

Claims arrive as decoded JSON, so every operand is one of: None, bool, number
(int or float), str, list, dict. Guards use JavaScript-style operators, so
loose and strict equality are kept distinct and their coercion rules are part
of the public contract:

  ===, !==   Same kind and equal value. int and float are one kind (number);
             bool is its own kind, so True !== 1.

  ==, !=     None equals only None. A bool becomes 1 / 0. Number vs string
             compares numerically after parsing the trimmed string ("" -> 0,
             unparseable -> NaN, which equals nothing). Anything else falls
             back to strict equality.

  < <= > >=  None or a list / dict operand -> False. Two strings compare
             lexicographically. Otherwise both sides become numbers (bool ->
             1 / 0, strings parsed as above) and NaN makes the check False.

A missing claim and a JSON null are both None here.

Lists and dicts are compared by value under both equalities, so a claim of
["admin"] equals an expected ["admin"]. JavaScript compares them by reference,
which would make such a guard unsatisfiable for decoded claims.
"""

from __future__ import annotations

import math
import operator as _op
from typing import Any

from auth.errors import ConfigurationError

DEFAULT_OPERATOR = "=="
DEFAULT_EXPECTED = True

OPERATORS = ("==", "===", "!=", "!==", "<", "<=", ">", ">=")

_RELATIONAL = {"<": _op.lt, "<=": _op.le, ">": _op.gt, ">=": _op.ge}


def validate_operator(operator: str) -> str:
    if operator not in OPERATORS:
        raise ConfigurationError(f"Invalid operator: {operator}")
    return operator


def _kind(value: Any) -> str:
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _to_number(value: Any) -> float:
    kind = _kind(value)
    if kind == "bool":
        return 1.0 if value else 0.0
    if kind == "number":
        return float(value)
    if kind == "string":
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def strict_equals(actual: Any, expected: Any) -> bool:
    if _kind(actual) != _kind(expected):
        return False
    return actual == expected


def loose_equals(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return actual is None and expected is None

    a_kind, e_kind = _kind(actual), _kind(expected)
    if a_kind == e_kind:
        return actual == expected
    if "bool" in (a_kind, e_kind) or {a_kind, e_kind} == {"number", "string"}:
        # Only primitives take part in numeric coercion.
        if a_kind in ("list", "object") or e_kind in ("list", "object"):
            return False
        return _to_number(actual) == _to_number(expected)
    return False


def _relational(actual: Any, symbol: str, expected: Any) -> bool:
    a_kind, e_kind = _kind(actual), _kind(expected)
    if "none" in (a_kind, e_kind) or {a_kind, e_kind} & {"list", "object"}:
        return False
    fn = _RELATIONAL[symbol]
    if a_kind == "string" and e_kind == "string":
        return fn(actual, expected)
    # NaN compares False against everything.
    return fn(_to_number(actual), _to_number(expected))


def compare(actual: Any, operator: str, expected: Any) -> bool:
    """Evaluate `actual <operator> expected` under the rules above."""
    if operator == "==":
        return loose_equals(actual, expected)
    if operator == "===":
        return strict_equals(actual, expected)
    if operator == "!=":
        return not loose_equals(actual, expected)
    if operator == "!==":
        return not strict_equals(actual, expected)
    if operator in _RELATIONAL:
        return _relational(actual, operator, expected)
    raise ConfigurationError(f"Invalid operator: {operator}")
