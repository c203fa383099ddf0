"""Type checkers for single values.

Each checker looks at one value and the definition it must satisfy, and
nothing else: type correctness does not depend on the operator or on other
keys. The declared type was resolved when the schema was built, so the
checker is picked from a dispatch table keyed by DataType.

A checker first verifies the value's kind (EXPECTED_TYPE with a dataType
detail on mismatch), then any refinements declared on the definition:
string length and patterns, numeric bounds and whole-number-ness, array
length, and date bounds.
"""

import math
import numbers
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from modschema.context import TraversalContext
from modschema.errors import CheckFailure, ErrorDescriptor
from modschema.schema import FieldDefinition
from modschema.types import DataType, ErrorKind, Operator

TypeChecker = Callable[[FieldDefinition, Any, bool], Optional[CheckFailure]]


def _expected(definition: FieldDefinition) -> CheckFailure:
    return CheckFailure(ErrorKind.EXPECTED_TYPE, {"dataType": definition.type.name})


def _date_string(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d")


def check_string(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    if not isinstance(value, str):
        return _expected(definition)

    if definition.max is not None and len(value) > definition.max:
        return CheckFailure(ErrorKind.MAX_STRING, {"max": definition.max})

    if definition.min is not None and len(value) < definition.min:
        return CheckFailure(ErrorKind.MIN_STRING, {"min": definition.min})

    if definition.skip_regex_for_empty_strings and value == "":
        return None

    for pattern in definition.regex:
        if not pattern.search(value):
            return CheckFailure(ErrorKind.FAILED_REGULAR_EXPRESSION, {"regExp": pattern.pattern})

    return None


def is_number(value: Any) -> bool:
    """Whether value is a real number (bools excluded, NaN rejected)."""
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        return False
    if isinstance(value, Decimal):
        return not value.is_nan()
    return not math.isnan(value)


def check_number(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    if not is_number(value):
        return _expected(definition)

    if enforce_ranges and definition.max is not None:
        if definition.exclusive_max and value >= definition.max:
            return CheckFailure(ErrorKind.MAX_NUMBER_EXCLUSIVE, {"max": definition.max})
        if not definition.exclusive_max and value > definition.max:
            return CheckFailure(ErrorKind.MAX_NUMBER, {"max": definition.max})

    if enforce_ranges and definition.min is not None:
        if definition.exclusive_min and value <= definition.min:
            return CheckFailure(ErrorKind.MIN_NUMBER_EXCLUSIVE, {"min": definition.min})
        if not definition.exclusive_min and value < definition.min:
            return CheckFailure(ErrorKind.MIN_NUMBER, {"min": definition.min})

    if definition.type.kind == DataType.INTEGER:
        whole = isinstance(value, numbers.Integral) or (math.isfinite(value) and float(value).is_integer())
        if not whole:
            return CheckFailure(ErrorKind.MUST_BE_INTEGER)

    return None


def check_boolean(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    if isinstance(value, bool):
        return None
    return _expected(definition)


def check_object(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    # Dates are their own category even where they look like objects
    if isinstance(value, Mapping) and not isinstance(value, datetime):
        return None
    return _expected(definition)


def check_array(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    if not isinstance(value, (list, tuple)):
        return _expected(definition)

    if definition.min_count is not None and len(value) < definition.min_count:
        return CheckFailure(ErrorKind.MIN_COUNT, {"minCount": definition.min_count})

    if definition.max_count is not None and len(value) > definition.max_count:
        return CheckFailure(ErrorKind.MAX_COUNT, {"maxCount": definition.max_count})

    return None


def check_date_value(definition: FieldDefinition, value: datetime) -> Optional[CheckFailure]:
    """Check a datetime against the definition's date bounds."""
    try:
        if definition.min is not None and value < definition.min:
            return CheckFailure(ErrorKind.MIN_DATE, {"min": _date_string(definition.min)})
        if definition.max is not None and value > definition.max:
            return CheckFailure(ErrorKind.MAX_DATE, {"max": _date_string(definition.max)})
    except TypeError:
        # naive and timezone-aware datetimes cannot be ordered
        return CheckFailure(ErrorKind.BAD_DATE)
    return None


def check_date(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    if not isinstance(value, datetime):
        return _expected(definition)
    return check_date_value(definition, value)


def check_instance(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    constructor = definition.type.constructor
    if constructor is None or not isinstance(value, constructor):
        return _expected(definition)
    if definition.type.is_date_like:
        return check_date_value(definition, value)
    return None


TYPE_CHECKERS: Dict[DataType, TypeChecker] = {
    DataType.STRING: check_string,
    DataType.NUMBER: check_number,
    DataType.INTEGER: check_number,
    DataType.BOOLEAN: check_boolean,
    DataType.OBJECT: check_object,
    DataType.ARRAY: check_array,
    DataType.DATE: check_date,
    DataType.CUSTOM: check_instance,
}


def check_type(definition: FieldDefinition, value: Any, enforce_ranges: bool = True) -> Optional[CheckFailure]:
    """Check a value against the definition's declared type.

    Args:
        definition: Resolved definition for the key
        value: Value to check (never MISSING)
        enforce_ranges: Whether numeric min/max bounds apply

    Returns:
        CheckFailure describing the first failed check, or None

    Examples:
        >>> from modschema.schema import resolve_definition
        >>> check_type(resolve_definition("n", {"type": "Integer"}), 2.5)
        CheckFailure(type=<ErrorKind.MUST_BE_INTEGER: 'noDecimal'>, extra={})
        >>> check_type(resolve_definition("n", {"type": "Integer"}), 2.0) is None
        True
    """
    return TYPE_CHECKERS[definition.type.kind](definition, value, enforce_ranges)


def is_current_date_spec(value: Any) -> bool:
    """Whether value is a $currentDate argument that stores a date.

    Examples:
        >>> is_current_date_spec(True), is_current_date_spec({"$type": "date"})
        (True, True)
        >>> is_current_date_spec({"$type": "timestamp"})
        False
    """
    if value is True:
        return True
    return isinstance(value, Mapping) and dict(value) == {"$type": "date"}


def check_current_date(definition: FieldDefinition) -> Optional[CheckFailure]:
    """Check the date bounds against the time the update would store."""
    bound = definition.min if definition.min is not None else definition.max
    now = datetime.now(bound.tzinfo if bound is not None else None)
    return check_date_value(definition, now)


def type_validator(ctx: TraversalContext) -> Optional[ErrorDescriptor]:
    """Run the type check for a key, if its value should be checked."""
    if not ctx.value_should_be_checked:
        return None
    if (
        ctx.operator == Operator.CURRENT_DATE.value
        and ctx.definition.type.kind == DataType.DATE
        and is_current_date_spec(ctx.value)
    ):
        failure = check_current_date(ctx.definition)
        return failure.to_descriptor(ctx.key, ctx.value) if failure else None
    # $inc values are deltas, not the stored value
    failure = check_type(ctx.definition, ctx.value, enforce_ranges=ctx.operator != Operator.INC.value)
    return failure.to_descriptor(ctx.key, ctx.value) if failure else None


__all__ = [
    "TYPE_CHECKERS",
    "check_type",
    "check_string",
    "check_number",
    "check_boolean",
    "check_object",
    "check_array",
    "check_date",
    "check_date_value",
    "check_instance",
    "check_current_date",
    "is_current_date_spec",
    "is_number",
    "type_validator",
]
