"""Required-ness resolution for a single key path.

Whether an absent value is an error depends on more than the value itself.
In a document, a missing required key is always an error. In a modifier, an
absent key may simply be untouched by the update, may be created implicitly
by an assignment to one of its descendants, or may be set by another
operator block. The rules are evaluated in a fixed order; changing the order
changes which partial modifiers are accepted.
"""

from typing import Optional

from modschema.context import TraversalContext
from modschema.errors import ErrorDescriptor
from modschema.types import MISSING, REMOVING_OPERATORS, SETTING_OPERATORS, ErrorKind


def _required_error(ctx: TraversalContext) -> ErrorDescriptor:
    return ErrorDescriptor(name=ctx.key, type=ErrorKind.REQUIRED, value=None)


def check_required(ctx: TraversalContext) -> Optional[ErrorDescriptor]:
    """Return a REQUIRED descriptor if the key's value counts as missing.

    Args:
        ctx: Traversal context for the key path

    Returns:
        ErrorDescriptor with kind REQUIRED, or None when the key passes

    Examples:
        A $set on "a.b" implicitly creates "a", so a required "a" passes even
        though the modifier never mentions it; a required "a.c" reached
        inside that object does not.
    """
    if ctx.definition.optional:
        return None

    # null is an explicit "no value" no matter where it appears
    if ctx.value is None:
        return _required_error(ctx)

    if ctx.operator in REMOVING_OPERATORS:
        return _required_error(ctx)

    if ctx.value is not MISSING:
        return None

    if ctx.operator is None:
        return _required_error(ctx)

    if ctx.lookup.has_assignment_below(ctx.key):
        return None

    info = ctx.field(ctx.key)
    if info.is_set and info.value is not None:
        return None

    if ctx.is_in_array_item_object or ctx.is_in_sub_object:
        return _required_error(ctx)

    if ctx.operator in SETTING_OPERATORS:
        return _required_error(ctx)

    return None


__all__ = ["check_required"]
