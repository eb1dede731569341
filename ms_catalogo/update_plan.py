"""Field-driven partial updates.

The builder turns a sparse request body into the ordered list of
``(field, value)`` assignments that ``ProductRepository.update`` writes.
It is pure data transformation: nothing here talks to DynamoDB.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, DecimalException, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Sequence, Tuple

from boto3.dynamodb.types import DYNAMODB_CONTEXT

from ms_catalogo.errors import Err, ErrorKind, Ok


class Rule(Enum):
    IDENTITY = "identity"
    POSITIVE_NUMBER = "positive_number"
    NON_EMPTY_STRING = "non_empty_string"
    BOOLEAN = "boolean"
    NON_NEGATIVE_INT = "non_negative_int"


TRUE_STRINGS = {"true", "1", "yes", "si", "sí"}
FALSE_STRINGS = {"false", "0", "no"}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _invalid(field: str, message: str) -> Err:
    return Err(ErrorKind.VALIDATION, message, field=field)


def _storable(number: Decimal) -> bool:
    """DynamoDB numbers carry at most 38 significant digits and a bounded exponent."""
    try:
        DYNAMODB_CONTEXT.create_decimal(number)
    except DecimalException:
        return False
    return True


def _positive_number(field, value):
    if isinstance(value, bool):
        return _invalid(field, f"{field} must be a positive number")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return _invalid(field, f"{field} must be a positive number")
    if not number.is_finite() or number <= 0:
        return _invalid(field, f"{field} must be a positive number")
    if not _storable(number):
        return _invalid(field, f"{field} is out of range")
    return Ok(number)


def _non_empty_string(field, value):
    if not isinstance(value, str) or not value.strip():
        return _invalid(field, f"{field} must not be empty")
    return Ok(value.strip())


def _boolean(field, value):
    if isinstance(value, bool):
        return Ok(value)
    if isinstance(value, (int, Decimal)) and value in (0, 1):
        return Ok(bool(value))
    if isinstance(value, str) and value.strip().lower() in TRUE_STRINGS | FALSE_STRINGS:
        return Ok(value.strip().lower() in TRUE_STRINGS)
    return _invalid(field, f"{field} must be a boolean")


def _non_negative_int(field, value):
    if isinstance(value, bool):
        return _invalid(field, f"{field} must be a non-negative integer")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return _invalid(field, f"{field} must be a non-negative integer")
    if not number.is_finite() or number < 0 or number % 1 != 0:
        return _invalid(field, f"{field} must be a non-negative integer")
    if not _storable(Decimal(int(number))):
        return _invalid(field, f"{field} is out of range")
    return Ok(int(number))


COERCERS = {
    Rule.IDENTITY: lambda field, value: Ok(value),
    Rule.POSITIVE_NUMBER: _positive_number,
    Rule.NON_EMPTY_STRING: _non_empty_string,
    Rule.BOOLEAN: _boolean,
    Rule.NON_NEGATIVE_INT: _non_negative_int,
}


def coerce(field: str, rule: Rule, value: Any):
    """Validate ``value`` for ``field`` and return ``Ok(final_value)`` or ``Err``."""
    return COERCERS[rule](field, value)


def coerce_fields(fields: Sequence[Tuple[str, Rule]], data: Mapping[str, Any]):
    """Coerce every allowlisted field present in ``data``, in allowlist order.

    Stops at the first invalid field, so either every value is returned or
    none is.
    """
    values = []
    for field, rule in fields:
        if field not in data:
            continue
        result = coerce(field, rule, data[field])
        if isinstance(result, Err):
            return result
        values.append((field, result.value))
    return Ok(values)


def build_update_plan(
    fields: Sequence[Tuple[str, Rule]],
    data: Mapping[str, Any],
    timestamp_field: str = "updated_at",
    now: str | None = None,
):
    """Build the assignment list for a partial update.

    The modification timestamp always comes first, even when ``data`` holds
    no updatable field. Fields missing from ``data`` are left out entirely;
    fields not in the allowlist are ignored.
    """
    result = coerce_fields(fields, data)
    if isinstance(result, Err):
        return result
    assignments = [(timestamp_field, now or now_iso())]
    assignments.extend((field, value) for field, value in result.value if field != timestamp_field)
    return Ok(assignments)
