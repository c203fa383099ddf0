"""Schema definitions for modschema.

A Schema maps dotted key paths to definition records. Key paths use a literal
``$`` segment for "any array index", so ``tags.$`` describes every item of the
``tags`` array and ``items.$.name`` describes the ``name`` key of every object
in the ``items`` array.

Raw definition records are resolved once, when the Schema is built:

* the record shape is checked against a JSON Schema (via ``jsonschema``),
* the declared ``type`` is resolved into a closed TypeDescriptor,
* date bounds given as ISO-8601 strings are parsed (via ``python-dateutil``),
* regular expressions are compiled,
* missing ancestors of declared keys are added as optional Object/Array keys.

Anything wrong raises SchemaDefinitionError immediately, so a validation run
never has to deal with an unsupported declared type.

Usage:
    >>> schema = Schema({
    ...     "name": {"type": str},
    ...     "tags": {"type": list, "optional": True},
    ...     "tags.$": {"type": str},
    ... })
    >>> schema.get_definition("tags.3").type.name
    'String'
    >>> schema.object_keys()
    ['name', 'tags']
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from dateutil import parser as date_parser
from jsonschema import Draft7Validator, validators

from modschema.errors import SchemaDefinitionError
from modschema.types import DataType, KeyPath

logger = logging.getLogger(__name__)

ARRAY_ITEM_MARKER = "$"

_NUMERIC_SEGMENT = re.compile(r"\.\d+(?=\.|$)")


def make_key_generic(key: KeyPath) -> KeyPath:
    """Replace concrete array indexes in a key path with the ``$`` marker.

    Examples:
        >>> make_key_generic("items.2.tags.0")
        'items.$.tags.$'
    """
    return _NUMERIC_SEGMENT.sub(".$", key)


def get_parent_of_key(key: KeyPath, with_end_dot: bool = False) -> KeyPath:
    """Return the parent key path ('' for top-level keys).

    Examples:
        >>> get_parent_of_key("a.b.c")
        'a.b'
        >>> get_parent_of_key("a.b.c", with_end_dot=True)
        'a.b.'
    """
    last_dot = key.rfind(".")
    if last_dot == -1:
        return ""
    return key[: last_dot + 1] if with_end_dot else key[:last_dot]


def iter_key_ancestors(key: KeyPath) -> Iterator[KeyPath]:
    """Yield the strict ancestors of a key path, outermost first."""
    parts = key.split(".")
    for i in range(1, len(parts)):
        yield ".".join(parts[:i])


# Python types accepted as shorthand for the built-in categories
_PYTHON_TYPES: Dict[type, DataType] = {
    str: DataType.STRING,
    float: DataType.NUMBER,
    int: DataType.INTEGER,
    bool: DataType.BOOLEAN,
    dict: DataType.OBJECT,
    list: DataType.ARRAY,
    datetime: DataType.DATE,
}


@dataclass(frozen=True)
class TypeDescriptor:
    """Resolved type of a schema key.

    Attributes:
        kind: Type category
        constructor: The required class when kind is CUSTOM

    Examples:
        >>> TypeDescriptor(DataType.INTEGER).name
        'Integer'
    """
    kind: DataType
    constructor: Optional[type] = None

    @property
    def name(self) -> str:
        """Type name reported as dataType in EXPECTED_TYPE errors."""
        if self.kind == DataType.CUSTOM and self.constructor is not None:
            return self.constructor.__name__
        return self.kind.value

    @property
    def is_date_like(self) -> bool:
        if self.kind == DataType.DATE:
            return True
        return self.constructor is not None and issubclass(self.constructor, datetime)


def resolve_type(raw: Any) -> TypeDescriptor:
    """Resolve a declared type into a TypeDescriptor.

    Accepts a DataType member or name, one of the Python builtins in
    ``_PYTHON_TYPES``, an existing TypeDescriptor, or any other class.

    Raises:
        ValueError: If the declared type is not supported
    """
    if isinstance(raw, TypeDescriptor):
        return raw
    if isinstance(raw, DataType):
        if raw == DataType.CUSTOM:
            raise ValueError("Custom types must be declared with their class")
        return TypeDescriptor(raw)
    if isinstance(raw, str):
        try:
            kind = DataType(raw)
        except ValueError:
            raise ValueError(f"Unknown type name '{raw}'") from None
        return resolve_type(kind)
    if isinstance(raw, type):
        if raw in _PYTHON_TYPES:
            return TypeDescriptor(_PYTHON_TYPES[raw])
        return TypeDescriptor(DataType.CUSTOM, constructor=raw)
    raise ValueError(f"Unsupported type {raw!r}; expected a class or a type name")


def _is_array(checker: Any, instance: Any) -> bool:
    return isinstance(instance, (list, tuple, set, frozenset))


def _is_object(checker: Any, instance: Any) -> bool:
    return isinstance(instance, Mapping)


# Draft 7 validator that accepts Python collections used in definition records
DefinitionValidator = validators.extend(
    Draft7Validator,
    type_checker=Draft7Validator.TYPE_CHECKER.redefine_many({
        "array": _is_array,
        "object": _is_object,
    }),
)

DEFINITION_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {},
        "optional": {"type": "boolean"},
        "allowedValues": {"type": "array"},
        "min": {},
        "max": {},
        "exclusiveMin": {"type": "boolean"},
        "exclusiveMax": {"type": "boolean"},
        "regEx": {},
        "skipRegExCheckForEmptyStrings": {"type": "boolean"},
        "minCount": {"type": "integer", "minimum": 0},
        "maxCount": {"type": "integer", "minimum": 0},
        "blackbox": {"type": "boolean"},
        "label": {"type": "string"},
    },
    "additionalProperties": False,
}

Draft7Validator.check_schema(DEFINITION_RECORD_SCHEMA)
_record_validator = DefinitionValidator(DEFINITION_RECORD_SCHEMA)


@dataclass(frozen=True)
class FieldDefinition:
    """Resolved constraints for one generic key path.

    Attributes:
        key: Generic key path this definition applies to
        type: Resolved type
        optional: Whether the key may be absent
        allowed_values: Allow-list, or None when any value is allowed
        min: Lower bound (number, string length or date)
        max: Upper bound (number, string length or date)
        exclusive_min: Whether min itself is excluded (numbers only)
        exclusive_max: Whether max itself is excluded (numbers only)
        regex: Patterns a string value must all match
        skip_regex_for_empty_strings: Whether "" bypasses the pattern checks
        min_count: Minimum array length
        max_count: Maximum array length
        blackbox: Whether the object's contents are opaque to validation
        label: Human-readable name used by message formatters
        implied: Whether the definition was added for an undeclared ancestor
    """
    key: KeyPath
    type: TypeDescriptor
    optional: bool = False
    allowed_values: Optional[Tuple[Any, ...]] = None
    min: Any = None
    max: Any = None
    exclusive_min: bool = False
    exclusive_max: bool = False
    regex: Tuple[re.Pattern, ...] = ()
    skip_regex_for_empty_strings: bool = False
    min_count: Optional[int] = None
    max_count: Optional[int] = None
    blackbox: bool = False
    label: Optional[str] = None
    implied: bool = False


def _resolve_date_bound(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return date_parser.isoparse(value)
    raise ValueError(f"expected a datetime or ISO-8601 string, got {type(value).__name__}")


def _resolve_bounds(kind: DataType, is_date: bool, raw: Mapping[str, Any], problems: List[str]) -> Dict[str, Any]:
    bounds: Dict[str, Any] = {}
    for name in ("min", "max"):
        if raw.get(name) is None:
            continue
        bound = raw[name]
        if is_date:
            try:
                bounds[name] = _resolve_date_bound(bound)
            except ValueError as exc:
                problems.append(f"'{name}': {exc}")
        elif kind in (DataType.NUMBER, DataType.INTEGER):
            if isinstance(bound, bool) or not isinstance(bound, (int, float)):
                problems.append(f"'{name}': expected a number")
            else:
                bounds[name] = bound
        elif kind == DataType.STRING:
            if isinstance(bound, bool) or not isinstance(bound, int) or bound < 0:
                problems.append(f"'{name}': expected a non-negative length")
            else:
                bounds[name] = bound
        else:
            problems.append(f"'{name}' is only supported for String, Number, Integer and Date keys")
    return bounds


def _compile_patterns(raw: Any, problems: List[str]) -> Tuple[re.Pattern, ...]:
    items = raw if isinstance(raw, (list, tuple)) else [raw]
    patterns: List[re.Pattern] = []
    for item in items:
        if isinstance(item, re.Pattern):
            patterns.append(item)
            continue
        if not isinstance(item, str):
            problems.append(f"'regEx': expected a pattern string, got {type(item).__name__}")
            continue
        try:
            patterns.append(re.compile(item))
        except re.error as exc:
            problems.append(f"'regEx': invalid pattern {item!r}: {exc}")
    return tuple(patterns)


def resolve_definition(key: KeyPath, raw: Mapping[str, Any]) -> FieldDefinition:
    """Resolve one raw definition record.

    Raises:
        SchemaDefinitionError: With every problem found in the record
    """
    if not isinstance(raw, Mapping):
        raise SchemaDefinitionError(key, [f"definition must be a mapping, got {type(raw).__name__}"])

    problems = [
        f"'{'.'.join(str(p) for p in error.path)}': {error.message}" if error.path else error.message
        for error in sorted(_record_validator.iter_errors(raw), key=lambda e: list(e.path))
    ]
    if problems:
        raise SchemaDefinitionError(key, problems)

    try:
        type_descriptor = resolve_type(raw["type"])
    except ValueError as exc:
        raise SchemaDefinitionError(key, [str(exc)]) from None

    kind = type_descriptor.kind
    bounds = _resolve_bounds(kind, type_descriptor.is_date_like, raw, problems)

    regex: Tuple[re.Pattern, ...] = ()
    if raw.get("regEx") is not None:
        if kind != DataType.STRING:
            problems.append("'regEx' is only supported for String keys")
        else:
            regex = _compile_patterns(raw["regEx"], problems)

    if kind != DataType.ARRAY and (raw.get("minCount") is not None or raw.get("maxCount") is not None):
        problems.append("'minCount'/'maxCount' are only supported for Array keys")

    if raw.get("blackbox") and kind != DataType.OBJECT:
        problems.append("'blackbox' is only supported for Object keys")

    if problems:
        raise SchemaDefinitionError(key, problems)

    allowed_values = raw.get("allowedValues")
    return FieldDefinition(
        key=key,
        type=type_descriptor,
        optional=raw.get("optional", False),
        allowed_values=tuple(allowed_values) if allowed_values is not None else None,
        min=bounds.get("min"),
        max=bounds.get("max"),
        exclusive_min=raw.get("exclusiveMin", False),
        exclusive_max=raw.get("exclusiveMax", False),
        regex=regex,
        skip_regex_for_empty_strings=raw.get("skipRegExCheckForEmptyStrings", False),
        min_count=raw.get("minCount"),
        max_count=raw.get("maxCount"),
        blackbox=raw.get("blackbox", False),
        label=raw.get("label"),
    )


def _check_key_path(key: Any) -> None:
    if not isinstance(key, str) or not key:
        raise SchemaDefinitionError(str(key), ["key paths must be non-empty strings"])
    segments = key.split(".")
    if any(not segment for segment in segments):
        raise SchemaDefinitionError(key, ["key paths must not contain empty segments"])
    if segments[0] == ARRAY_ITEM_MARKER:
        raise SchemaDefinitionError(key, ["key paths must not start with the array item marker"])


class Schema:
    """Immutable collection of resolved key definitions.

    Attributes:
        definitions: Generic key path -> FieldDefinition, in declaration order

    Examples:
        >>> schema = Schema({"address.city": {"type": "String"}})
        >>> schema.get_definition("address").implied
        True
        >>> schema.object_keys("address")
        ['city']
    """

    def __init__(self, definitions: Mapping[KeyPath, Any]) -> None:
        """Resolve and index the given definitions.

        Args:
            definitions: Key path -> raw definition record (or FieldDefinition)

        Raises:
            SchemaDefinitionError: If any key path or record is invalid
        """
        if not isinstance(definitions, Mapping):
            raise SchemaDefinitionError(None, ["schema must be a mapping of key paths to definitions"])

        declared: Dict[KeyPath, FieldDefinition] = {}
        for key, raw in definitions.items():
            _check_key_path(key)
            declared[key] = raw if isinstance(raw, FieldDefinition) else resolve_definition(key, raw)

        resolved: Dict[KeyPath, FieldDefinition] = {}
        for key, definition in declared.items():
            for ancestor in iter_key_ancestors(key):
                if ancestor in declared or ancestor in resolved:
                    continue
                next_segment = key[len(ancestor) + 1:].split(".", 1)[0]
                kind = DataType.ARRAY if next_segment == ARRAY_ITEM_MARKER else DataType.OBJECT
                resolved[ancestor] = FieldDefinition(
                    key=ancestor, type=TypeDescriptor(kind), optional=True, implied=True
                )
            resolved[key] = definition

        for key in resolved:
            if key.endswith("." + ARRAY_ITEM_MARKER):
                parent = resolved[get_parent_of_key(key)]
                if parent.type.kind != DataType.ARRAY:
                    raise SchemaDefinitionError(
                        key, [f"parent key '{parent.key}' must be declared as Array to have items"]
                    )

        self._definitions = resolved
        self._object_keys: Dict[KeyPath, List[str]] = {}
        for key in resolved:
            parent = get_parent_of_key(key)
            self._object_keys.setdefault(parent, []).append(key[len(parent) + 1:] if parent else key)
        self._blackbox_keys = frozenset(k for k, d in resolved.items() if d.blackbox)

        logger.debug(
            "Resolved schema with %d keys (%d implied)",
            len(resolved),
            len(resolved) - len(declared),
        )

    @property
    def definitions(self) -> Mapping[KeyPath, FieldDefinition]:
        return dict(self._definitions)

    def get_definition(self, key: KeyPath) -> Optional[FieldDefinition]:
        """Return the definition for a concrete or generic key path, or None."""
        return self._definitions.get(make_key_generic(key))

    def object_keys(self, key_prefix: Optional[KeyPath] = None) -> List[str]:
        """Return the child key names declared directly under a key path.

        With no prefix, returns the top-level keys.
        """
        if key_prefix is None:
            return list(self._object_keys.get("", []))
        return list(self._object_keys.get(make_key_generic(key_prefix), []))

    def key_is_in_blackbox(self, key: KeyPath) -> bool:
        """Whether some strict ancestor of the key is a blackbox object."""
        generic = make_key_generic(key)
        return any(ancestor in self._blackbox_keys for ancestor in iter_key_ancestors(generic))

    def allows_key(self, key: Any) -> bool:
        if not isinstance(key, str) or not key:
            return False
        return self.get_definition(key) is not None or self.key_is_in_blackbox(key)

    def keys(self) -> List[KeyPath]:
        return list(self._definitions)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and make_key_generic(key) in self._definitions

    def __iter__(self) -> Iterator[KeyPath]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"Schema({list(self._definitions)!r})"


__all__ = [
    "ARRAY_ITEM_MARKER",
    "make_key_generic",
    "get_parent_of_key",
    "iter_key_ancestors",
    "TypeDescriptor",
    "resolve_type",
    "FieldDefinition",
    "resolve_definition",
    "Schema",
    "DEFINITION_RECORD_SCHEMA",
]
