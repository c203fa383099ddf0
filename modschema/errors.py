"""Error descriptors and exception types for modschema.

Validation failures are data: every failing key path yields one
ErrorDescriptor, and a run returns them in key-path evaluation order.
Exceptions are reserved for problems with the schema itself or with the shape
of the input, which abort the run instead of being collected.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from modschema.types import ErrorKind, KeyPath


@dataclass(frozen=True)
class ErrorDescriptor:
    """One validation failure at one key path.

    Attributes:
        name: Concrete key path that failed (e.g. "tags.1", "address.city")
        type: Error kind
        value: The offending value (None for required errors)
        extra: Kind-specific details such as dataType, min, max or regExp

    Examples:
        >>> err = ErrorDescriptor(
        ...     name="age",
        ...     type=ErrorKind.EXPECTED_TYPE,
        ...     value="ten",
        ...     extra={"dataType": "Integer"},
        ... )
        >>> err.to_dict()["dataType"]
        'Integer'
    """
    name: KeyPath
    type: ErrorKind
    value: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # descriptors are read-only once emitted
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def data_type(self) -> Optional[str]:
        """Expected type name for EXPECTED_TYPE errors."""
        return self.extra.get("dataType")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the flat dict shape used by message formatters."""
        result: Dict[str, Any] = {
            "name": self.name,
            "type": self.type.value if isinstance(self.type, ErrorKind) else self.type,
            "value": self.value,
        }
        result.update(self.extra)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ErrorDescriptor":
        """Create ErrorDescriptor from dict."""
        kind = data["type"]
        if isinstance(kind, str):
            kind = ErrorKind(kind)
        extra = {k: v for k, v in data.items() if k not in ("name", "type", "value")}
        return cls(
            name=data["name"],
            type=kind,
            value=data.get("value"),
            extra=extra,
        )


@dataclass(frozen=True)
class CheckFailure:
    """Outcome of a failed value check, before it is tied to a key path.

    Value checkers only see a definition and a value, so they report the
    error kind and details; the walker turns that into an ErrorDescriptor.
    """
    type: ErrorKind
    extra: Mapping[str, Any] = field(default_factory=dict)

    def to_descriptor(self, name: KeyPath, value: Any) -> ErrorDescriptor:
        return ErrorDescriptor(name=name, type=self.type, value=value, extra=dict(self.extra))


class ModSchemaError(Exception):
    """Base class for errors that abort a validation run."""


class SchemaDefinitionError(ModSchemaError):
    """Raised when a schema definition is invalid.

    Attributes:
        key: The key path whose definition is at fault (None for the schema as a whole)
        problems: Individual problems found for that key
    """

    def __init__(self, key: Optional[KeyPath], problems: List[str]):
        self.key = key
        self.problems = list(problems)
        where = f"Invalid definition for key '{key}'" if key is not None else "Invalid schema"
        super().__init__(f"{where}: {'; '.join(self.problems)}")


class KeyNotInSchemaError(SchemaDefinitionError):
    """Raised when the input reaches a key path the schema does not define.

    Attributes:
        key: The concrete key path encountered in the input
        value: The value found at that key path
    """

    def __init__(self, key: KeyPath, value: Any = None):
        self.value = value
        super().__init__(key, [f"{ErrorKind.KEY_NOT_IN_SCHEMA.value}: key is not allowed by the schema"])


class InvalidInputError(ModSchemaError):
    """Raised when the object to validate has an unusable shape.

    Examples are a non-mapping input, a modifier mixing operator and
    non-operator keys, or an unsupported operator such as $pushAll.
    """


__all__ = [
    "ErrorDescriptor",
    "CheckFailure",
    "ModSchemaError",
    "SchemaDefinitionError",
    "KeyNotInSchemaError",
    "InvalidInputError",
]
