"""Field descriptors for interactive and option-driven forms."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, cast
from urllib.parse import urlparse

from pydantic import EmailStr, TypeAdapter, ValidationError

# A validator returns True (or None) when the value is acceptable, and either
# False or an error message otherwise.
Validator = Callable[[Any], bool | str | None]
Normalizer = Callable[[Any], Any]

_EMAIL_ADAPTER: TypeAdapter[str] = TypeAdapter(EmailStr)
TRUE_STRINGS = {"true", "yes", "y", "1", "on"}
FALSE_STRINGS = {"false", "no", "n", "0", "off"}


class FieldKind(str, Enum):
    """The kind of input a field accepts."""

    TEXT = "text"
    URL = "url"
    EMAIL = "email"
    BOOLEAN = "boolean"
    ARRAY = "array"
    FILE = "file"
    OPTIONS = "options"


class FieldValueError(ValueError):
    """Raised when a raw value cannot be accepted for a field."""


@dataclass(frozen=True)
class Field:
    """One form input: its kind, visibility conditions and value rules.

    Conditions map an earlier field's key to the allowed value, or to a list
    of allowed values. A field is only asked for (and only accepted) when all
    of its conditions hold.
    """

    key: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    option_name: str = ""
    description: str = ""
    question_line: str | None = None
    default: Any = None
    required: bool = True
    conditions: Mapping[str, Any] = field(default_factory=dict)
    validator: Validator | None = None
    normalizer: Normalizer | None = None
    value_path: tuple[str, ...] = ()
    options: tuple[str, ...] = ()
    allowed_extensions: tuple[str, ...] = ()
    contents_as_value: bool = False

    def __post_init__(self) -> None:
        if not self.option_name:
            object.__setattr__(self, "option_name", self.key.replace("_", "-"))
        if not self.value_path:
            object.__setattr__(self, "value_path", (self.key,))

    @property
    def question(self) -> str:
        """The text used when prompting for this field."""
        if self.question_line:
            return self.question_line
        return self.description or self.label

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def matches_conditions(self, values: Mapping[str, Any]) -> bool:
        """Check whether every condition is satisfied by earlier values.

        A condition on a key that has no value (the field was skipped) is
        unsatisfied.
        """
        return not self.failed_condition_keys(values)

    def failed_condition_keys(self, values: Mapping[str, Any]) -> list[str]:
        """List the condition keys that are not satisfied."""
        return [
            other_key
            for other_key, allowed in self.conditions.items()
            if values.get(other_key) is None or not _condition_allows(allowed, values[other_key])
        ]

    def accept(self, raw: Any) -> Any:
        """Normalize, parse and validate a raw value.

        Raises:
            FieldValueError: If the value is not acceptable
        """
        value = raw
        if self.normalizer is not None and value is not None:
            value = self.normalizer(value)
        value = parse_value(self, value)
        if self.validator is not None:
            result = self.validator(value)
            if result is False:
                raise FieldValueError(f"Invalid value for {self.label}: {value}")
            if isinstance(result, str):
                raise FieldValueError(result)
        return value


def _condition_allows(allowed: Any, value: Any) -> bool:
    if isinstance(allowed, (list, tuple, set, frozenset)):
        return value in cast(Sequence[Any], allowed)
    return bool(value == allowed)


def parse_value(field_: Field, value: Any) -> Any:
    """Convert a (normalized) raw value according to the field kind."""
    parser = _PARSERS[field_.kind]
    return parser(field_, value)


def _parse_text(field_: Field, value: Any) -> Any:
    return str(value).strip()


def _parse_url(field_: Field, value: Any) -> Any:
    url = str(value).strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise FieldValueError(f"Invalid URL: {url}")
    return url


def _parse_email(field_: Field, value: Any) -> Any:
    email = str(value).strip()
    if not is_valid_email(email):
        raise FieldValueError(f"Invalid email address: {email}")
    return email


def _parse_boolean(field_: Field, value: Any) -> Any:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    raise FieldValueError(f"Invalid boolean value: {value} (expected true or false)")


def _parse_array(field_: Field, value: Any) -> Any:
    raw_items = cast(Sequence[Any], value) if isinstance(value, (list, tuple)) else [value]
    items: list[str] = []
    for raw in raw_items:
        items.extend(re.split(r"[,\s]+", str(raw)))
    return [item for item in items if item]


def _parse_file(field_: Field, value: Any) -> Any:
    path = Path(str(value))
    if not path.is_file():
        raise FieldValueError(f"File not found: {value}")
    if field_.allowed_extensions and path.suffix not in field_.allowed_extensions:
        allowed = ", ".join(ext or "(none)" for ext in field_.allowed_extensions)
        raise FieldValueError(f"Invalid file extension {path.suffix!r} (allowed: {allowed})")
    if field_.contents_as_value:
        return path.read_text(encoding="utf-8")
    return str(path)


def _parse_options(field_: Field, value: Any) -> Any:
    choice = str(value).strip()
    if choice not in field_.options:
        raise FieldValueError(
            f"Invalid value: {choice} (expected one of: {', '.join(field_.options)})"
        )
    return choice


_PARSERS: dict[FieldKind, Callable[[Field, Any], Any]] = {
    FieldKind.TEXT: _parse_text,
    FieldKind.URL: _parse_url,
    FieldKind.EMAIL: _parse_email,
    FieldKind.BOOLEAN: _parse_boolean,
    FieldKind.ARRAY: _parse_array,
    FieldKind.FILE: _parse_file,
    FieldKind.OPTIONS: _parse_options,
}


def is_valid_email(email: str) -> bool:
    """Check that a string is a single bare email address."""
    # EmailStr also accepts "Name <address>"
    if "<" in email:
        return False
    try:
        _EMAIL_ADAPTER.validate_python(email)
    except ValidationError:
        return False
    return True
