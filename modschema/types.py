"""Core type definitions for modschema.

This module defines the fundamental vocabulary shared by every validation
component:
- ErrorKind: Stable error identifiers emitted in error descriptors
- DataType: The closed set of type categories a key can declare
- Operator: Update operators recognized in modifiers
- MISSING: Sentinel for "no value at this key path" (distinct from None)
- FieldInfo: Result of looking up a key path elsewhere in the same input

These types form the contract between the checkers, the key-path walker,
and callers that consume the resulting error descriptors.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from typing_extensions import TypeAlias


KeyPath: TypeAlias = str


class ErrorKind(str, Enum):
    """Error kinds emitted by the validation checkers.

    Values are stable and are used as-is in serialized error descriptors.
    """
    REQUIRED = "required"
    EXPECTED_TYPE = "expectedType"
    VALUE_NOT_ALLOWED = "notAllowed"
    MUST_BE_INTEGER = "noDecimal"
    BAD_DATE = "badDate"
    MIN_STRING = "minString"
    MAX_STRING = "maxString"
    MIN_NUMBER = "minNumber"
    MAX_NUMBER = "maxNumber"
    MIN_NUMBER_EXCLUSIVE = "minNumberExclusive"
    MAX_NUMBER_EXCLUSIVE = "maxNumberExclusive"
    MIN_DATE = "minDate"
    MAX_DATE = "maxDate"
    MIN_COUNT = "minCount"
    MAX_COUNT = "maxCount"
    FAILED_REGULAR_EXPRESSION = "regEx"
    KEY_NOT_IN_SCHEMA = "keyNotInSchema"


class DataType(str, Enum):
    """Type categories a schema key can declare.

    INTEGER is a refinement of NUMBER. CUSTOM stands for "instance of a
    specific class" and is always paired with that class in a TypeDescriptor.
    """
    STRING = "String"
    NUMBER = "Number"
    INTEGER = "Integer"
    BOOLEAN = "Boolean"
    OBJECT = "Object"
    ARRAY = "Array"
    DATE = "Date"
    CUSTOM = "Custom"


class Operator(str, Enum):
    """Update operators with special meaning during modifier validation."""
    SET = "$set"
    SET_ON_INSERT = "$setOnInsert"
    UNSET = "$unset"
    RENAME = "$rename"
    INC = "$inc"
    PUSH = "$push"
    ADD_TO_SET = "$addToSet"
    PULL = "$pull"
    PULL_ALL = "$pullAll"
    POP = "$pop"
    SLICE = "$slice"
    PUSH_ALL = "$pushAll"
    CURRENT_DATE = "$currentDate"


# Operators whose blocks assign values that implicitly create ancestors
SETTING_OPERATORS = frozenset({Operator.SET.value, Operator.SET_ON_INSERT.value})

# Operators after which the key no longer exists
REMOVING_OPERATORS = frozenset({Operator.UNSET.value, Operator.RENAME.value})

# Operators whose blocks are never checked against the schema
UNCHECKED_OPERATORS = frozenset({
    Operator.PULL.value,
    Operator.PULL_ALL.value,
    Operator.POP.value,
    Operator.SLICE.value,
})


class _Missing:
    """Marker type for an absent value."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(frozen=True)
class FieldInfo:
    """What the input holds at some key path.

    Attributes:
        value: The value found, or MISSING
        operator: The operator block the value was found in (None for documents)

    Examples:
        >>> info = FieldInfo(value=5, operator="$set")
        >>> info.is_set
        True
        >>> FieldInfo().is_set
        False
    """
    value: Any = MISSING
    operator: Optional[str] = None

    @property
    def is_set(self) -> bool:
        return self.value is not MISSING


__all__ = [
    "KeyPath",
    "ErrorKind",
    "DataType",
    "Operator",
    "SETTING_OPERATORS",
    "REMOVING_OPERATORS",
    "UNCHECKED_OPERATORS",
    "MISSING",
    "FieldInfo",
]
