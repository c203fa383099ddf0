"""modschema: schema validation for documents and update modifiers.

modschema validates a document, or a MongoDB-style update modifier such as
``{"$set": {...}, "$unset": {...}}``, against a schema of dotted key paths:
- Declared types, optionality and allowed values per key path
- Array items declared once with the ``$`` marker (``tags.$``)
- Modifier-aware required checks ($set, $setOnInsert, $unset, $rename, ...)
- Structured error descriptors instead of exceptions for bad data

Basic usage:
    >>> from modschema import ValidationEngine
    >>> engine = ValidationEngine({
    ...     "name": {"type": "String"},
    ...     "tags": {"type": "Array", "optional": True},
    ...     "tags.$": {"type": "String"},
    ... })
    >>> result = engine.validate({"name": "Alice", "tags": ["a", 5]})
    >>> [(e.name, e.type.value) for e in result.errors]
    [('tags.1', 'expectedType')]
"""

__version__ = "0.1.0"
__author__ = "modschema developers"

# Version info
VERSION = (0, 1, 0)

# Core exports
from modschema.errors import (
    ErrorDescriptor,
    InvalidInputError,
    KeyNotInSchemaError,
    ModSchemaError,
    SchemaDefinitionError,
)
from modschema.schema import FieldDefinition, Schema, TypeDescriptor
from modschema.types import MISSING, DataType, ErrorKind, Operator
from modschema.validation import ValidationEngine, ValidationOptions, ValidationResult, validate

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "ErrorDescriptor",
    "ErrorKind",
    "DataType",
    "Operator",
    "MISSING",
    "FieldDefinition",
    "TypeDescriptor",
    "Schema",
    "ValidationEngine",
    "ValidationOptions",
    "ValidationResult",
    "validate",
    "ModSchemaError",
    "SchemaDefinitionError",
    "KeyNotInSchemaError",
    "InvalidInputError",
]
