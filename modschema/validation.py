"""Validation engine for documents and modifiers.

This module provides a ValidationEngine that validates a document or a
MongoDB-style modifier against a modschema Schema and produces a structured
ValidationResult.

The engine resolves the schema once, then runs the key-path walker for each
input. Per-key failures come back as ErrorDescriptors; schema problems and
unusable inputs raise instead.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from modschema.errors import ErrorDescriptor
from modschema.messages import DefaultMessageFormatter, MessageFormatter
from modschema.schema import Schema
from modschema.types import ErrorKind, KeyPath
from modschema.walker import KeyPathWalker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationOptions:
    """Options for a validation run.

    Attributes:
        is_upsert: Validate a modifier as if it may insert a new document, so
            required top-level keys not assigned by $set/$setOnInsert are missing
        keys_to_validate: Only evaluate these key paths and their descendants
            (None evaluates every key)
        ignore_types: Error kinds to leave out of the result

    Examples:
        >>> options = ValidationOptions(is_upsert=True)
        >>> options.replace(ignore_types=["required"]).ignore_types
        (<ErrorKind.REQUIRED: 'required'>,)
    """
    is_upsert: bool = False
    keys_to_validate: Optional[Tuple[KeyPath, ...]] = None
    ignore_types: Tuple[ErrorKind, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.keys_to_validate is not None:
            object.__setattr__(self, "keys_to_validate", tuple(self.keys_to_validate))
        object.__setattr__(self, "ignore_types", tuple(ErrorKind(t) for t in self.ignore_types))

    def replace(self, **overrides: Any) -> "ValidationOptions":
        """Return a copy with the given options changed."""
        return replace(self, **overrides)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a document or modifier.

    Attributes:
        is_valid: Whether the input passed all validation checks
        errors: Error descriptors in evaluation order (empty if valid)
        missing_fields: Key paths reported as REQUIRED
        invalid_fields: Key paths that failed any other check

    Examples:
        >>> engine = ValidationEngine({"name": {"type": str}})
        >>> result = engine.validate({"name": "test"})
        >>> result.is_valid
        True
        >>> result.errors
        []
    """
    is_valid: bool
    errors: List[ErrorDescriptor]
    missing_fields: List[KeyPath] = field(default_factory=list)
    invalid_fields: List[KeyPath] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[ErrorDescriptor]) -> "ValidationResult":
        missing_fields: List[KeyPath] = []
        invalid_fields: List[KeyPath] = []
        for error in errors:
            if error.type == ErrorKind.REQUIRED:
                missing_fields.append(error.name)
            else:
                invalid_fields.append(error.name)
        return cls(
            is_valid=not errors,
            errors=list(errors),
            missing_fields=missing_fields,
            invalid_fields=invalid_fields,
        )

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def errors_for(self, key: KeyPath) -> List[ErrorDescriptor]:
        """Return the errors reported for one concrete key path."""
        return [error for error in self.errors if error.name == key]

    def messages(
        self,
        schema: Optional[Schema] = None,
        formatter: Optional[MessageFormatter] = None,
    ) -> List[str]:
        """Render every error with a message formatter.

        Args:
            schema: Used for key labels when given
            formatter: Defaults to DefaultMessageFormatter
        """
        formatter = formatter or DefaultMessageFormatter()
        rendered = []
        for error in self.errors:
            definition = schema.get_definition(error.name) if schema is not None else None
            label = definition.label if definition is not None else None
            rendered.append(formatter.format(error, label))
        return rendered

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "missingFields": self.missing_fields,
            "invalidFields": self.invalid_fields,
        }


class ValidationEngine:
    """Validation engine for documents and modifiers.

    Resolves the schema once and validates any number of inputs against it.
    The engine keeps no per-run state, so it may be shared between threads.

    Attributes:
        schema: The resolved Schema
        options: Default options for every run

    Examples:
        >>> engine = ValidationEngine({
        ...     "name": {"type": "String"},
        ...     "age": {"type": "Integer", "optional": True, "min": 0},
        ... })
        >>> engine.validate({"name": "Alice", "age": 30}).is_valid
        True
        >>> result = engine.validate({"$unset": {"name": ""}})
        >>> result.missing_fields
        ['name']
    """

    def __init__(
        self,
        schema: Union[Schema, Mapping[KeyPath, Any]],
        options: Optional[ValidationOptions] = None,
    ) -> None:
        """Initialize the validation engine.

        Args:
            schema: A Schema, or raw definitions to resolve into one
            options: Default options for every run

        Raises:
            SchemaDefinitionError: If the schema definitions are invalid
        """
        self.schema = schema if isinstance(schema, Schema) else Schema(schema)
        self.options = options or ValidationOptions()

    def validate(self, obj: Mapping[str, Any], **overrides: Any) -> ValidationResult:
        """Validate a document or modifier.

        Args:
            obj: The document or modifier to validate
            **overrides: ValidationOptions fields to change for this run

        Returns:
            ValidationResult with is_valid flag and error descriptors

        Raises:
            InvalidInputError: If the input is not a usable document or modifier
            KeyNotInSchemaError: If the input reaches a key the schema does not define
        """
        options = self.options.replace(**overrides) if overrides else self.options
        walker = KeyPathWalker(
            self.schema,
            is_upsert=options.is_upsert,
            keys_to_validate=options.keys_to_validate,
            ignore_types=options.ignore_types,
        )
        errors = walker.walk(obj)
        if errors:
            logger.debug("Input failed validation: %s", [(e.name, e.type.value) for e in errors])
        return ValidationResult.from_errors(errors)

    def is_valid(self, obj: Mapping[str, Any], **overrides: Any) -> bool:
        return self.validate(obj, **overrides).is_valid


def validate(
    schema: Union[Schema, Mapping[KeyPath, Any]],
    obj: Mapping[str, Any],
    *,
    is_upsert: bool = False,
    keys_to_validate: Optional[Iterable[KeyPath]] = None,
    ignore_types: Iterable[ErrorKind] = (),
) -> ValidationResult:
    """Validate one input against a schema in a single call.

    Examples:
        >>> validate({"n": {"type": "Integer", "allowedValues": [1, 2, 3]}}, {"n": 4}).errors[0].type
        <ErrorKind.VALUE_NOT_ALLOWED: 'notAllowed'>
    """
    options = ValidationOptions(
        is_upsert=is_upsert,
        keys_to_validate=tuple(keys_to_validate) if keys_to_validate is not None else None,
        ignore_types=tuple(ignore_types),
    )
    return ValidationEngine(schema, options).validate(obj)


__all__ = [
    "ValidationOptions",
    "ValidationResult",
    "ValidationEngine",
    "validate",
]
