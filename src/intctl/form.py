"""Conditional form evaluation.

A form is an ordered collection of fields. Values are collected in
declaration order, so a field's conditions can only depend on fields that
come before it. Values come from command-line options first, then from
interactive prompts, then from field defaults.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .exceptions import FormDefinitionError, InvalidValueError, MissingValueError
from .fields import Field, FieldValueError
from .logger import get_logger

logger = get_logger()


class Prompter(Protocol):
    """Something that can ask the user for a field's value."""

    def ask(self, field: Field) -> Any: ...


@dataclass(frozen=True)
class ConditionalFieldConflict:
    """A value was supplied for a field whose conditions are not met.

    Carries everything needed to explain the conflict: the field, the
    conditions that were evaluated, and the values known at that point.
    """

    field: Field
    conditions: dict[str, Any]
    previous_values: dict[str, Any]


@dataclass
class FormResult:
    """Outcome of resolving a form: collected values, or a conflict."""

    values: dict[str, Any] = field(default_factory=dict)
    conflict: ConditionalFieldConflict | None = None

    @property
    def ok(self) -> bool:
        return self.conflict is None


class Form:
    """An ordered set of fields with conditional visibility."""

    def __init__(self, fields: Iterable[Field]):
        self._fields: dict[str, Field] = {}
        for f in fields:
            if f.key in self._fields:
                raise FormDefinitionError(f"Duplicate field key: {f.key}")
            for condition_key in f.conditions:
                if condition_key not in self._fields:
                    raise FormDefinitionError(
                        f"Field '{f.key}' has a condition on '{condition_key}', "
                        "which is not declared before it"
                    )
            self._fields[f.key] = f

    @classmethod
    def from_fields(cls, fields: Mapping[str, Field]) -> Form:
        """Build a form from a mapping of key to field, keeping its order."""
        for key, f in fields.items():
            if key != f.key:
                raise FormDefinitionError(f"Field registered as '{key}' has key '{f.key}'")
        return cls(fields.values())

    @property
    def fields(self) -> dict[str, Field]:
        return dict(self._fields)

    def get_field(self, key: str) -> Field:
        return self._fields[key]

    def resolve_options(
        self,
        options: Mapping[str, Any],
        *,
        interactive: bool,
        prompter: Prompter | None = None,
        previous: Mapping[str, Any] | None = None,
    ) -> FormResult:
        """Collect values for every visible field.

        Args:
            options: Supplied values keyed by field key; None means "not supplied"
            interactive: Whether missing values may be prompted for
            prompter: Used to ask for missing values when interactive
            previous: Existing values when editing. In this mode only supplied
                options are collected; nothing is prompted for or defaulted,
                and conditions are evaluated against the existing values.

        Returns:
            FormResult with the collected values, or with a conflict when an
            option was supplied for a field whose conditions are not met

        Raises:
            InvalidValueError: If a supplied value is not acceptable
            MissingValueError: If a required value is missing and not interactive
        """
        unknown = [
            key for key, value in options.items() if value is not None and key not in self._fields
        ]
        if unknown:
            raise FormDefinitionError(f"Unknown form field(s): {', '.join(unknown)}")

        editing = previous is not None
        known: dict[str, Any] = dict(previous or {})
        values: dict[str, Any] = {}

        for f in self._fields.values():
            supplied = options.get(f.key)

            if not f.matches_conditions(known):
                if supplied is not None:
                    return FormResult(
                        values=values,
                        conflict=ConditionalFieldConflict(
                            field=f,
                            conditions=dict(f.conditions),
                            previous_values=dict(known),
                        ),
                    )
                logger.details(f"Skipping {f.key}: conditions not met")
                known.pop(f.key, None)
                continue

            if supplied is not None:
                try:
                    value = f.accept(supplied)
                except FieldValueError as e:
                    raise InvalidValueError(f.option_name, str(e)) from e
            elif editing:
                continue
            elif interactive and prompter is not None:
                value = prompter.ask(f)
                if value is None:
                    continue
            elif f.has_default:
                value = f.default
            elif f.required:
                raise MissingValueError(f.option_name)
            else:
                continue

            values[f.key] = value
            known[f.key] = value

        return FormResult(values=values)

    def to_payload(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Nest values according to each field's value path.

        Keys that are not form fields are kept at the top level.
        """
        payload: dict[str, Any] = {}
        for key, value in values.items():
            path = self._fields[key].value_path if key in self._fields else (key,)
            target = payload
            for part in path[:-1]:
                target = target.setdefault(part, {})
            target[path[-1]] = value
        return payload
