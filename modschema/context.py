"""Per-key traversal context and the read-only field lookup behind it.

The key-path walker builds one TraversalContext for every key path it
evaluates and hands it to the checkers. Contexts are immutable and never
shared between keys.

Facts about other key paths in the same input (is "a.c" set by some other
operator block? does $set assign anything beneath "a"?) come from a
FieldLookup, an index built once per run over the whole input.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from modschema.schema import FieldDefinition, get_parent_of_key
from modschema.types import MISSING, SETTING_OPERATORS, FieldInfo, KeyPath


class FieldLookup:
    """Index of every key path that holds a value in the input.

    Dotted keys and nested mappings/sequences are both flattened to dot
    paths, so ``{"$set": {"a.b": 1}}`` and ``{"$set": {"a": {"b": 1}}}`` both
    answer for "a.b". The first occurrence in input order wins.

    Examples:
        >>> lookup = FieldLookup.build({"$set": {"a": {"b": 1}}}, is_modifier=True)
        >>> lookup.field("a.b")
        FieldInfo(value=1, operator='$set')
        >>> lookup.field("a.c").is_set
        False
    """

    def __init__(self, entries: Dict[KeyPath, FieldInfo], setting_keys: Tuple[KeyPath, ...] = ()) -> None:
        self._entries = entries
        self._setting_keys = setting_keys

    @classmethod
    def build(cls, obj: Mapping[str, Any], is_modifier: bool) -> "FieldLookup":
        entries: Dict[KeyPath, FieldInfo] = {}
        setting_keys: List[KeyPath] = []

        def index(key: KeyPath, value: Any, operator: Optional[str]) -> None:
            if key not in entries:
                entries[key] = FieldInfo(value=value, operator=operator)
            if isinstance(value, Mapping):
                for child_key, child_value in value.items():
                    index(f"{key}.{child_key}", child_value, operator)
            elif isinstance(value, (list, tuple)):
                for i, item in enumerate(value):
                    index(f"{key}.{i}", item, operator)

        if is_modifier:
            for operator, block in obj.items():
                if not isinstance(block, Mapping):
                    continue
                for key, value in block.items():
                    index(key, value, operator)
                    if operator in SETTING_OPERATORS and value is not None:
                        setting_keys.append(key)
        else:
            for key, value in obj.items():
                index(key, value, None)

        return cls(entries, tuple(setting_keys))

    def field(self, key: KeyPath) -> FieldInfo:
        """Return what the input holds at a key path."""
        return self._entries.get(key, FieldInfo())

    def has_assignment_below(self, key: KeyPath) -> bool:
        """Whether $set/$setOnInsert assigns a non-null value beneath the key.

        Such an assignment creates the key's container implicitly.
        """
        prefix = key + "."
        return any(set_key.startswith(prefix) for set_key in self._setting_keys)


@dataclass(frozen=True)
class TraversalContext:
    """Everything the checkers may know while evaluating one key path.

    Attributes:
        key: Concrete key path (e.g. "items.2.name")
        generic_key: Key path with array indexes replaced by "$"
        value: Value at the key path, MISSING when absent
        definition: Schema definition for the key path
        operator: Enclosing modifier operator, None for documents
        is_in_array_item_object: The key belongs to an object that is an array item
        is_in_sub_object: The key was reached by descending into an object
        is_modifier: Whether the input is a modifier
        obj: The whole input being validated
        lookup: Read-only index over the input
    """
    key: KeyPath
    generic_key: KeyPath
    value: Any
    definition: FieldDefinition
    operator: Optional[str]
    is_in_array_item_object: bool
    is_in_sub_object: bool
    is_modifier: bool
    obj: Mapping[str, Any]
    lookup: FieldLookup

    @property
    def is_set(self) -> bool:
        return self.value is not MISSING

    @property
    def value_should_be_checked(self) -> bool:
        """Whether type and allowed-value checks apply to this value.

        Absent and null values are skipped, except a null item of an array
        whose items are required. Nothing under $unset or $rename is checked.
        """
        if self.operator in ("$unset", "$rename"):
            return False
        if self.value is not MISSING and self.value is not None:
            return True
        return (
            self.value is None
            and self.generic_key.endswith(".$")
            and not self.definition.optional
        )

    def field(self, key: KeyPath) -> FieldInfo:
        return self.lookup.field(key)

    def sibling_field(self, name: str) -> FieldInfo:
        return self.lookup.field(get_parent_of_key(self.key, with_end_dot=True) + name)

    def parent_field(self) -> FieldInfo:
        return self.lookup.field(get_parent_of_key(self.key))


__all__ = [
    "FieldLookup",
    "TraversalContext",
]
