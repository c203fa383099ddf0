"""Default English messages for error descriptors.

The validation core only produces descriptors. Turning them into text is the
job of a MessageFormatter; DefaultMessageFormatter is the built-in one and
can be replaced with any object that has a compatible ``format`` method.
"""

import re
from typing import Any, Callable, Dict, Mapping, Optional

from typing_extensions import Protocol

from modschema.errors import ErrorDescriptor
from modschema.types import ErrorKind

MessageTemplate = Callable[[Mapping[str, Any], str], str]


class MessageFormatter(Protocol):
    """Renders one error descriptor as text."""

    def format(self, error: ErrorDescriptor, label: Optional[str] = None) -> str:
        ...


def humanize(key: str) -> str:
    """Turn the last segment of a key path into a label.

    Examples:
        >>> humanize("address.zipCode")
        'Zip code'
        >>> humanize("items.$.user_id")
        'User ID'
    """
    segment = key.rsplit(".", 1)[-1] if key else ""
    if segment == "$":
        segment = "item"
    text = re.sub(r"([a-z\d])([A-Z]+)", r"\1_\2", segment)
    text = re.sub(r"[-\s_]+", " ", text).strip().lower()
    text = text[:1].upper() + text[1:]
    return re.sub(r"\b[Ii]d\b", "ID", text)


DEFAULT_TEMPLATES: Dict[ErrorKind, MessageTemplate] = {
    ErrorKind.REQUIRED: lambda e, label: f"{label} is required",
    ErrorKind.MIN_STRING: lambda e, label: f"{label} must be at least {e['min']} characters",
    ErrorKind.MAX_STRING: lambda e, label: f"{label} cannot exceed {e['max']} characters",
    ErrorKind.MIN_NUMBER: lambda e, label: f"{label} must be at least {e['min']}",
    ErrorKind.MAX_NUMBER: lambda e, label: f"{label} cannot exceed {e['max']}",
    ErrorKind.MIN_NUMBER_EXCLUSIVE: lambda e, label: f"{label} must be greater than {e['min']}",
    ErrorKind.MAX_NUMBER_EXCLUSIVE: lambda e, label: f"{label} must be less than {e['max']}",
    ErrorKind.MIN_DATE: lambda e, label: f"{label} must be on or after {e['min']}",
    ErrorKind.MAX_DATE: lambda e, label: f"{label} cannot be after {e['max']}",
    ErrorKind.BAD_DATE: lambda e, label: f"{label} is not a valid date",
    ErrorKind.MIN_COUNT: lambda e, label: f"You must specify at least {e['minCount']} values",
    ErrorKind.MAX_COUNT: lambda e, label: f"You cannot specify more than {e['maxCount']} values",
    ErrorKind.MUST_BE_INTEGER: lambda e, label: f"{label} must be an integer",
    ErrorKind.VALUE_NOT_ALLOWED: lambda e, label: f"{e['value']} is not an allowed value",
    ErrorKind.EXPECTED_TYPE: lambda e, label: f"{label} must be of type {e['dataType']}",
    ErrorKind.FAILED_REGULAR_EXPRESSION: lambda e, label: f"{label} failed regular expression validation",
    ErrorKind.KEY_NOT_IN_SCHEMA: lambda e, label: f"{e['name']} is not allowed by the schema",
}


class DefaultMessageFormatter:
    """English messages keyed by error kind.

    Attributes:
        templates: Error kind -> template function

    Examples:
        >>> error = ErrorDescriptor(name="age", type=ErrorKind.MIN_NUMBER, value=-5, extra={"min": 0})
        >>> DefaultMessageFormatter().format(error)
        'Age must be at least 0'
    """

    def __init__(self, templates: Optional[Mapping[ErrorKind, MessageTemplate]] = None) -> None:
        self.templates = dict(DEFAULT_TEMPLATES)
        if templates:
            self.templates.update(templates)

    def format(self, error: ErrorDescriptor, label: Optional[str] = None) -> str:
        label = label or humanize(error.name)
        template = self.templates.get(error.type)
        if template is None:
            return f"{error.type.value} {error.name}"
        return template(error.to_dict(), label)


__all__ = [
    "MessageFormatter",
    "DefaultMessageFormatter",
    "DEFAULT_TEMPLATES",
    "humanize",
]
