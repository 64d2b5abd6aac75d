"""Interactive terminal prompts for forms and choices."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import typer

from .fields import Field, FieldKind, FieldValueError


class InteractivePrompter:
    """Asks for field values and choices via terminal prompts."""

    def ask(self, field: Field) -> Any:
        """Prompt until the user gives an acceptable value for a field.

        Returns:
            The accepted value, the default when the answer is left empty, or
            None when an optional field without default is left empty
        """
        while True:
            raw = self._prompt_raw(field)
            if raw is None or raw == "" or raw == []:
                if field.has_default:
                    return field.default
                if not field.required:
                    return None
                typer.echo(f"  {field.label} is required.", err=True)
                continue
            try:
                return field.accept(raw)
            except FieldValueError as e:
                typer.echo(f"  {e}", err=True)

    def choose(self, choices: Mapping[str, str], text: str, default: str | None = None) -> str:
        """Offer numbered choices and return the key of the chosen one.

        Args:
            choices: Mapping of key to the label shown to the user
            text: The question line
            default: Optional key chosen when the user just presses enter

        Returns:
            The chosen key
        """
        keys = list(choices)
        if len(keys) == 1:
            return keys[0]

        typer.echo(text)
        for number, key in enumerate(keys, 1):
            typer.echo(f"  [{number}] {choices[key]}")

        default_number = str(keys.index(default) + 1) if default in keys else None
        while True:
            answer = str(typer.prompt("Choice", default=default_number)).strip()
            if answer.isdigit() and 1 <= int(answer) <= len(keys):
                return keys[int(answer) - 1]
            typer.echo(f"  Invalid choice. Please enter a number between 1 and {len(keys)}.")

    def _prompt_raw(self, field: Field) -> Any:
        """Read a raw answer for a field, without validating it."""
        if field.kind is FieldKind.BOOLEAN:
            return typer.confirm(field.question, default=field.default is not False)

        if field.kind is FieldKind.OPTIONS:
            choices = {option: option for option in field.options}
            return self.choose(
                choices, f"{field.question or field.label} (enter a number)", field.default
            )

        default: Any = field.default
        if field.kind is FieldKind.ARRAY and isinstance(default, list):
            default = ", ".join(str(v) for v in default)  # type: ignore[reportUnknownVariableType]
        if default is None:
            default = ""

        return typer.prompt(
            field.question, default=default, show_default=default != "", type=str
        ).strip()
