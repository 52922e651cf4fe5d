"""Comparison operators shared by the filter engine and criteria search.

Operators are a closed enum; every member must have a handler in
``_HANDLERS`` or the module refuses to import. Unknown operator names
resolve to ``Operator.EQ``.

Operators:
    eq, =, ==          strict equality (True never equals 1)
    ne, !=             strict inequality
    gt, gte, lt, lte   ordering (also >, >=, <, <=)
    in, nin            membership in a list/tuple/set
    between            inclusive [min, max] range
    contains, startsWith, endsWith
                       case-insensitive string tests on str() of both sides
    regex              case-insensitive re.search on str(item)

String tests and regex never match a missing (None) item value.
"""

import logging
import re
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from graphsift.errors import InvalidCriteriaError

logger = logging.getLogger(__name__)


class Operator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NIN = "nin"
    BETWEEN = "between"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    REGEX = "regex"


_ALIASES: dict[str, Operator] = {
    "=": Operator.EQ,
    "==": Operator.EQ,
    "!=": Operator.NE,
    ">": Operator.GT,
    ">=": Operator.GTE,
    "<": Operator.LT,
    "<=": Operator.LTE,
}

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def resolve_operator(name: Any) -> Operator:
    """Map an operator name or alias to an Operator, defaulting to EQ."""
    if isinstance(name, Operator):
        return name
    if isinstance(name, str):
        if name in _ALIASES:
            return _ALIASES[name]
        try:
            return Operator(name)
        except ValueError:
            pass
    logger.debug("Unknown operator %r, falling back to equality", name)
    return Operator.EQ


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that keeps booleans apart from numbers."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def strict_contains(collection: Any, item: Any) -> bool:
    """Membership test using ``strict_equals``."""
    return any(strict_equals(item, candidate) for candidate in collection)


def _require_collection(value: Any, operator: Operator) -> Any:
    if not isinstance(value, _COLLECTION_TYPES):
        raise InvalidCriteriaError(
            f"Operator {operator.value!r} needs a list of values, got: {type(value).__name__}"
        )
    return value


def _between(item: Any, bounds: Any) -> bool:
    if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
        raise InvalidCriteriaError(f"Operator 'between' needs a [min, max] pair, got: {bounds!r}")
    low, high = bounds
    return low <= item <= high


def _string_test(test: Callable[[str, str], bool]) -> Callable[[Any, Any], bool]:
    def handler(item: Any, value: Any) -> bool:
        if item is None:
            return False
        return test(str(item).lower(), str(value).lower())
    return handler


def _regex(item: Any, pattern: Any) -> bool:
    if item is None:
        return False
    try:
        compiled = re.compile(str(pattern), re.IGNORECASE)
    except re.error as exc:
        raise InvalidCriteriaError(f"Invalid regex {pattern!r}: {exc}") from exc
    return compiled.search(str(item)) is not None


_HANDLERS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: strict_equals,
    Operator.NE: lambda item, value: not strict_equals(item, value),
    Operator.GT: lambda item, value: item > value,
    Operator.GTE: lambda item, value: item >= value,
    Operator.LT: lambda item, value: item < value,
    Operator.LTE: lambda item, value: item <= value,
    Operator.IN: lambda item, value: strict_contains(_require_collection(value, Operator.IN), item),
    Operator.NIN: lambda item, value: not strict_contains(_require_collection(value, Operator.NIN), item),
    Operator.BETWEEN: _between,
    Operator.CONTAINS: _string_test(lambda item, value: value in item),
    Operator.STARTS_WITH: _string_test(str.startswith),
    Operator.ENDS_WITH: _string_test(str.endswith),
    Operator.REGEX: _regex,
}

_unhandled = set(Operator) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"Operators without a handler: {sorted(op.value for op in _unhandled)}")


def evaluate_operator(item_value: Any, filter_value: Any, operator: Any) -> bool:
    """Evaluate one comparison, raising on mis-shaped filter values.

    Raises:
        InvalidCriteriaError: If filter_value does not fit the operator
        TypeError: If the operands cannot be compared
    """
    return bool(_HANDLERS[resolve_operator(operator)](item_value, filter_value))


def apply_operator(item_value: Any, filter_value: Any, operator: Any) -> bool:
    """Evaluate one comparison, failing closed on bad input."""
    try:
        return evaluate_operator(item_value, filter_value, operator)
    except (InvalidCriteriaError, TypeError) as exc:
        logger.debug("Operator %r failed closed: %s", operator, exc)
        return False


def is_operator_filter(value: Any) -> bool:
    """True for ``{"operator": ..., "value": ...}`` style criteria."""
    return isinstance(value, Mapping) and bool(value.get("operator"))


def match_properties(properties: Mapping[str, Any] | None, criteria: Any) -> bool:
    """Check that every criteria key is present in properties and matches.

    Each criterion is either a literal (equality) or an operator filter.
    """
    if not isinstance(criteria, Mapping):
        return False
    properties = properties or {}
    for key, expected in criteria.items():
        if key not in properties:
            return False
        actual = properties[key]
        if is_operator_filter(expected):
            if not apply_operator(actual, expected.get("value"), expected["operator"]):
                return False
        elif not strict_equals(actual, expected):
            return False
    return True
