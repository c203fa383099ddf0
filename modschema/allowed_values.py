"""Allowed-value checking.

Membership is tested by equality against the definition's allow-list. A key
without an allow-list accepts any value; an empty allow-list accepts none.
"""

from typing import Any, Optional

from modschema.context import TraversalContext
from modschema.errors import CheckFailure, ErrorDescriptor
from modschema.schema import FieldDefinition
from modschema.types import ErrorKind


def check_allowed_values(definition: FieldDefinition, value: Any) -> Optional[CheckFailure]:
    """Return VALUE_NOT_ALLOWED if the value is not in the allow-list.

    Examples:
        >>> from modschema.schema import resolve_definition
        >>> definition = resolve_definition("n", {"type": "Integer", "allowedValues": [1, 2, 3]})
        >>> check_allowed_values(definition, 2) is None
        True
        >>> check_allowed_values(definition, 4).type
        <ErrorKind.VALUE_NOT_ALLOWED: 'notAllowed'>
    """
    allowed = definition.allowed_values
    if allowed is None:
        return None
    if any(value == candidate for candidate in allowed):
        return None
    return CheckFailure(ErrorKind.VALUE_NOT_ALLOWED)


def allowed_values_validator(ctx: TraversalContext) -> Optional[ErrorDescriptor]:
    if not ctx.value_should_be_checked:
        return None
    failure = check_allowed_values(ctx.definition, ctx.value)
    return failure.to_descriptor(ctx.key, ctx.value) if failure else None


__all__ = ["check_allowed_values", "allowed_values_validator"]
