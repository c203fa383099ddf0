"""Key-path walker: the orchestrator of a validation run.

The walker enumerates every concrete key path the input touches (and the
required key paths it should have touched), looks up each one's definition,
builds a TraversalContext, and runs the checkers in a fixed order:

    required-ness -> type -> allowed values

The first failing checker ends the evaluation of that key path. Failures are
collected as ErrorDescriptors in evaluation order; a failure at one key path
never stops the walk. A key path with no definition is a schema problem, not
a data problem, and aborts the run with KeyNotInSchemaError.

Documents are walked structurally from the root. Modifiers are walked one
operator block at a time, using each block's keys as concrete key paths.
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from modschema.allowed_values import allowed_values_validator
from modschema.context import FieldLookup, TraversalContext
from modschema.errors import ErrorDescriptor, InvalidInputError, KeyNotInSchemaError
from modschema.required import check_required
from modschema.schema import Schema, make_key_generic
from modschema.type_checks import type_validator
from modschema.types import (
    MISSING,
    SETTING_OPERATORS,
    UNCHECKED_OPERATORS,
    DataType,
    ErrorKind,
    KeyPath,
    Operator,
)

logger = logging.getLogger(__name__)

Validator = Callable[[TraversalContext], Optional[ErrorDescriptor]]

# Order matters: each key stops at the first failure
BUILT_IN_VALIDATORS: Tuple[Validator, ...] = (
    check_required,
    type_validator,
    allowed_values_validator,
)

_ARRAY_OPERATORS = frozenset({Operator.PUSH.value, Operator.ADD_TO_SET.value})


def looks_like_modifier(obj: Mapping[str, Any]) -> bool:
    """Whether any top-level key is operator-shaped ("$...")."""
    return any(isinstance(key, str) and key.startswith("$") for key in obj)


def append_affected_key(affected_key: Optional[KeyPath], key: str) -> Optional[KeyPath]:
    if key == "$each":
        return affected_key
    return f"{affected_key}.{key}" if affected_key else key


class _WalkRun:
    """State of one walk over one input. Discarded when the walk ends."""

    def __init__(
        self,
        schema: Schema,
        obj: Mapping[str, Any],
        is_modifier: bool,
        is_upsert: bool,
        keys_to_validate: Optional[Sequence[KeyPath]],
        ignore_types: frozenset,
    ) -> None:
        self.schema = schema
        self.obj = obj
        self.is_modifier = is_modifier
        self.is_upsert = is_upsert
        self.keys_to_validate = keys_to_validate
        self.ignore_types = ignore_types
        self.lookup = FieldLookup.build(obj, is_modifier)
        self.errors: List[ErrorDescriptor] = []

    def should_validate_key(self, key: KeyPath, generic_key: KeyPath) -> bool:
        if self.keys_to_validate is None:
            return True
        return any(
            selected == key
            or selected == generic_key
            or key.startswith(f"{selected}.")
            or generic_key.startswith(f"{selected}.")
            for selected in self.keys_to_validate
        )

    def evaluate(
        self,
        value: Any,
        key: KeyPath,
        generic_key: KeyPath,
        operator: Optional[str],
        is_in_array_item_object: bool,
        is_in_sub_object: bool,
    ) -> None:
        definition = self.schema.get_definition(key)
        if definition is None:
            # unsetting a key the schema does not know is harmless, and so
            # is the $type argument of $currentDate
            if operator == Operator.UNSET.value:
                return
            if operator == Operator.CURRENT_DATE.value and key.endswith(".$type"):
                return
            raise KeyNotInSchemaError(key, value)

        if operator == Operator.RENAME.value and not self.schema.allows_key(value):
            raise KeyNotInSchemaError(str(value))

        ctx = TraversalContext(
            key=key,
            generic_key=generic_key,
            value=value,
            definition=definition,
            operator=operator,
            is_in_array_item_object=is_in_array_item_object,
            is_in_sub_object=is_in_sub_object,
            is_modifier=self.is_modifier,
            obj=self.obj,
            lookup=self.lookup,
        )

        for validator in BUILT_IN_VALIDATORS:
            error = validator(ctx)
            if error is None:
                continue
            if error.type not in self.ignore_types:
                self.errors.append(error)
            return

    def check_obj(
        self,
        value: Any,
        key: Optional[KeyPath] = None,
        operator: Optional[str] = None,
        is_in_array_item_object: bool = False,
        is_in_sub_object: bool = False,
    ) -> None:
        generic_key: Optional[KeyPath] = None
        definition = None

        if key is not None:
            if self.schema.key_is_in_blackbox(key):
                return
            generic_key = make_key_generic(key)
            definition = self.schema.get_definition(key)
            if self.should_validate_key(key, generic_key):
                self.evaluate(value, key, generic_key, operator, is_in_array_item_object, is_in_sub_object)

        child_keys = self.schema.object_keys(generic_key)

        # Stand in an empty object for a missing one so that its required
        # descendants are still reached. A missing array has no items.
        if value is MISSING or value is None:
            if definition is None or (
                not definition.optional and child_keys and definition.type.kind != DataType.ARRAY
            ):
                value = {}

        # Only descend into values of the declared shape; a mismatch was
        # already reported as a type error
        kind = definition.type.kind if definition is not None else DataType.OBJECT
        if isinstance(value, (list, tuple)) and kind == DataType.ARRAY:
            for i, item in enumerate(value):
                self.check_obj(item, f"{key}.{i}", operator)
        elif isinstance(value, Mapping) and kind == DataType.OBJECT and not (definition and definition.blackbox):
            item_object = generic_key is not None and generic_key.endswith(".$")
            for child_key, child_value in self._object_entries(value, child_keys):
                self.check_obj(
                    child_value,
                    append_affected_key(key, child_key),
                    operator,
                    is_in_array_item_object=item_object,
                    is_in_sub_object=True,
                )

    @staticmethod
    def _object_entries(value: Mapping[Any, Any], child_keys: Iterable[str]) -> List[Tuple[str, Any]]:
        """Present keys in input order, then declared keys not present."""
        entries: List[Tuple[str, Any]] = []
        seen = set()
        for present_key, present_value in value.items():
            name = str(present_key)
            if name not in seen:
                seen.add(name)
                entries.append((name, present_value))
        for child_key in child_keys:
            if child_key not in seen:
                seen.add(child_key)
                entries.append((child_key, value.get(child_key, MISSING)))
        return entries

    def check_modifier(self) -> None:
        for operator, block in self.obj.items():
            if not isinstance(operator, str) or not operator.startswith("$"):
                raise InvalidInputError(f"Expected '{operator}' to be a modifier operator like '$set'")
            if operator == Operator.PUSH_ALL.value:
                raise InvalidInputError("$pushAll is not supported; use $push + $each")
            if operator in UNCHECKED_OPERATORS:
                continue
            if not isinstance(block, Mapping):
                raise InvalidInputError(f"Operator '{operator}' must map key paths to values")

            # An upsert may insert, and then untouched keys would be missing
            if self.is_upsert and operator in SETTING_OPERATORS:
                for schema_key in self.schema.object_keys():
                    if schema_key not in block:
                        self.check_obj(MISSING, schema_key, operator)

            for key, value in block.items():
                if operator in _ARRAY_OPERATORS:
                    if isinstance(value, Mapping) and "$each" in value:
                        value = value["$each"]
                    else:
                        key = f"{key}.0"
                self.check_obj(value, key, operator)


class KeyPathWalker:
    """Walks an input against a schema and collects error descriptors.

    The walker holds no per-run state, so one instance may serve any number
    of concurrent walks against the same schema.

    Attributes:
        schema: The resolved schema to validate against

    Examples:
        >>> schema = Schema({"tags": {"type": list}, "tags.$": {"type": str}})
        >>> errors = KeyPathWalker(schema).walk({"tags": ["a", 5]})
        >>> [(e.name, e.type.value) for e in errors]
        [('tags.1', 'expectedType')]
    """

    def __init__(
        self,
        schema: Schema,
        is_upsert: bool = False,
        keys_to_validate: Optional[Sequence[KeyPath]] = None,
        ignore_types: Iterable[ErrorKind] = (),
    ) -> None:
        self.schema = schema
        self.is_upsert = is_upsert
        self.keys_to_validate = list(keys_to_validate) if keys_to_validate is not None else None
        self.ignore_types = frozenset(ErrorKind(t) for t in ignore_types)

    def walk(self, obj: Mapping[str, Any]) -> List[ErrorDescriptor]:
        """Validate a document or modifier.

        Args:
            obj: Document or modifier; the shape is detected from its top-level keys

        Returns:
            Error descriptors in evaluation order (empty when valid)

        Raises:
            InvalidInputError: If the input is not a mapping or mixes shapes
            KeyNotInSchemaError: If the input reaches an undefined key path
        """
        if not isinstance(obj, Mapping):
            raise InvalidInputError(f"Expected a mapping to validate, got {type(obj).__name__}")

        is_modifier = looks_like_modifier(obj)
        logger.debug("Validating %s with %d top-level keys", "modifier" if is_modifier else "document", len(obj))

        run = _WalkRun(
            self.schema,
            obj,
            is_modifier=is_modifier,
            is_upsert=self.is_upsert,
            keys_to_validate=self.keys_to_validate,
            ignore_types=self.ignore_types,
        )
        if is_modifier:
            run.check_modifier()
        else:
            run.check_obj(obj)

        logger.debug("Validation finished with %d errors", len(run.errors))
        return run.errors


__all__ = [
    "BUILT_IN_VALIDATORS",
    "KeyPathWalker",
    "looks_like_modifier",
    "append_affected_key",
]
