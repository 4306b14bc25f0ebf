"""
Condition evaluation for template applicability and inline template branches.

Both grammars produce the same `Condition` type:

* Group conditions are stored on a template as
  ``[{"operator": "AND", "conditions": [{"field": ..., "operator": "=", "value": ...}]}]``.
  Only ``=`` and ``!=`` are accepted. The literals ``"true"``/``"false"`` are
  coerced to booleans and values are compared loosely (``5 = "5"``).
* Inline conditions appear in ``{{if ...}}`` tags, e.g. ``examination.price >= 100``.
  ``==`` and ``!=`` compare string forms, ``>``, ``<``, ``>=``, ``<=`` compare
  numerically.
"""
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from clinic_mail.errors import ConditionParseError
from clinic_mail.utils.fields import resolve

logger = logging.getLogger(__name__)

GROUP_OPERATORS = ('=', '!=')
INLINE_OPERATORS = ('==', '!=', '>=', '<=', '>', '<')

_INLINE_SPLIT = re.compile(r'\s*(==|!=|>=|<=|>|<)\s*')
_QUOTED = re.compile(r'''^['"](.*)['"]$''', re.DOTALL)


def _to_number(value):
    """Numeric view of a value, or None when it has none."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _as_text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _loose_equals(actual, expected) -> bool:
    if actual is None or expected is None:
        return actual is None and expected is None
    if isinstance(actual, str) and isinstance(expected, str):
        return actual == expected
    if isinstance(actual, bool) and isinstance(expected, bool):
        return actual == expected
    # Mixed types meet on their numeric value
    left, right = _to_number(actual), _to_number(expected)
    if left is None or right is None:
        return _as_text(actual) == _as_text(expected)
    return left == right


def _compare_loose(actual, operator, expected) -> bool:
    if operator == '=':
        return _loose_equals(actual, expected)
    if operator == '!=':
        return not _loose_equals(actual, expected)
    logger.warning("Unsupported condition group operator %r", operator)
    return False


def _compare_inline(actual, operator, expected) -> bool:
    if operator == '==':
        return _as_text(actual) == _as_text(expected)
    if operator == '!=':
        return _as_text(actual) != _as_text(expected)

    left, right = _to_number(actual), _to_number(expected)
    if left is None or right is None:
        return False
    if operator == '>':
        return left > right
    if operator == '<':
        return left < right
    if operator == '>=':
        return left >= right
    if operator == '<=':
        return left <= right
    return False


@dataclass(frozen=True)
class Condition:
    """A single `field OP value` comparison."""

    field: str
    operator: str
    value: object = None
    loose: bool = False

    @classmethod
    def parse(cls, expression: str) -> 'Condition':
        """Parse an inline condition such as ``patient.gender == "female"``."""
        parts = _INLINE_SPLIT.split((expression or '').strip())
        if len(parts) < 3 or not parts[0]:
            raise ConditionParseError(f'Invalid condition: {expression!r}')

        raw_value = ''.join(parts[2:])
        match = _QUOTED.match(raw_value)
        value = match.group(1) if match else raw_value
        return cls(field=parts[0], operator=parts[1], value=value)

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Condition':
        """Build a group condition from its stored JSON form."""
        value = data.get('value')
        if value == 'true':
            value = True
        elif value == 'false':
            value = False
        return cls(
            field=str(data.get('field') or ''),
            operator=str(data.get('operator') or ''),
            value=value,
            loose=True,
        )

    def evaluate(self, record) -> bool:
        actual = resolve(record, self.field)
        if self.loose:
            return _compare_loose(actual, self.operator, self.value)
        return _compare_inline(actual, self.operator, self.value)


@dataclass(frozen=True)
class ConditionGroup:
    """Conditions joined by AND (all must hold) or OR (one must hold)."""

    operator: str = 'AND'
    conditions: tuple = ()

    @classmethod
    def from_dict(cls, data: Mapping) -> 'ConditionGroup':
        return cls(
            operator=str(data.get('operator') or 'AND').upper(),
            conditions=tuple(Condition.from_dict(c) for c in data.get('conditions') or ()),
        )

    def evaluate(self, record) -> bool:
        if not self.conditions:
            return True
        results = (condition.evaluate(record) for condition in self.conditions)
        if self.operator == 'AND':
            return all(results)
        return any(results)


def evaluate_comparison(field, operator, raw_value, record) -> bool:
    """Evaluate one group-style comparison against `record`."""
    return Condition.from_dict(
        {'field': field, 'operator': operator, 'value': raw_value}
    ).evaluate(record)


def evaluate_groups(groups, record) -> bool:
    """
    True when any group holds. An empty or missing group list applies
    unconditionally.
    """
    if not groups:
        return True

    for group in groups:
        if isinstance(group, Mapping):
            group = ConditionGroup.from_dict(group)
        if not isinstance(group, ConditionGroup):
            logger.warning("Ignoring malformed condition group: %r", group)
            continue
        if group.evaluate(record):
            return True
    return False


def evaluate_inline(expression: str, record) -> bool:
    """Evaluate an ``{{if ...}}`` condition; malformed ones count as not met."""
    try:
        return Condition.parse(expression).evaluate(record)
    except ConditionParseError:
        logger.warning("Malformed template condition %r treated as false", expression)
        return False
