"""Rendering of integrations, validation errors and form conflicts."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, TextIO

import typer
import yaml
from rich.console import Console
from rich.table import Table

from .api_client import Integration
from .exceptions import UnhandledConditionError
from .form import ConditionalFieldConflict

DATE_PROPERTIES = ("created_at", "updated_at")

# The property summarising each integration type in lists
SUMMARY_PROPERTIES = {
    "bitbucket": "repository",
    "bitbucket_server": "repository",
    "github": "repository",
    "gitlab": "project",
    "webhook": "url",
    "health.webhook": "url",
    "health.email": "recipients",
    "health.slack": "channel",
    "health.pagerduty": "routing_key",
}


class PropertyFormatter:
    """Formats API property values for display."""

    def __init__(self, date_format: str = "%Y-%m-%d %H:%M:%S"):
        self.date_format = date_format

    def format(self, value: Any, property_name: str | None = None) -> str:
        """Format a single value, optionally taking its property name into account."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if property_name in DATE_PROPERTIES and isinstance(value, str):
            return self._format_date(value)
        if isinstance(value, (list, dict)):
            if not value:
                return "[]" if isinstance(value, list) else "{}"
            return yaml.safe_dump(value, default_flow_style=True, width=float("inf")).strip()
        return str(value)

    def _format_date(self, value: str) -> str:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed.astimezone().strftime(self.date_format)


def display_integration(
    integration: Integration,
    formatter: PropertyFormatter | None = None,
    console: Console | None = None,
) -> None:
    """Render every property of an integration as a two-column table."""
    formatter = formatter or PropertyFormatter()
    console = console or Console()

    info = {prop: formatter.format(value, prop) for prop, value in integration.properties.items()}
    if integration.has_link("#hook"):
        info["hook_url"] = formatter.format(integration.get_link("#hook"))

    table = Table(show_header=True)
    table.add_column("Property")
    table.add_column("Value", overflow="fold")
    for prop, value in info.items():
        table.add_row(prop, value)
    console.print(table)


def render_integration_list(
    integrations: Sequence[Integration],
    formatter: PropertyFormatter | None = None,
    console: Console | None = None,
) -> None:
    """Render a table of integrations with a short summary for each."""
    formatter = formatter or PropertyFormatter()
    console = console or Console()

    table = Table(show_header=True)
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("Summary", overflow="fold")
    for integration in integrations:
        summary_property = SUMMARY_PROPERTIES.get(integration.type)
        summary = ""
        if summary_property:
            summary = formatter.format(integration.properties.get(summary_property))
        table.add_row(integration.id, integration.type, summary)
    console.print(table)


def list_validation_errors(
    errors: Mapping[Any, str] | Sequence[str], out: TextIO | None = None
) -> None:
    """Print validation errors with a count-qualified header.

    The header goes to stderr; the errors go to `out` (stdout by default).
    Errors keyed by a field name are printed as "key: message".
    """
    count = len(errors)
    if count == 1:
        typer.echo("The following error was found:", err=True)
    else:
        typer.echo(f"The following {count} errors were found:", err=True)

    if isinstance(errors, Mapping):
        for key, error in errors.items():
            line = f"{key}: {error}" if isinstance(key, str) and key else str(error)
            typer.echo(line, file=out)
    else:
        for error in errors:
            typer.echo(str(error), file=out)


def handle_conditional_field_conflict(conflict: ConditionalFieldConflict) -> int:
    """Explain an option that cannot be used with the current integration type.

    Returns:
        The exit code (1)

    Raises:
        UnhandledConditionError: If the conflict is not about the integration type
    """
    previous = conflict.previous_values
    conditions = conflict.conditions
    current_type = previous.get("type")
    if current_type is not None and "type" in conditions:
        allowed = conditions["type"]
        allowed_types = allowed if isinstance(allowed, (list, tuple)) else [allowed]
        if current_type not in allowed_types:
            typer.echo(
                f"The option --{conflict.field.option_name} cannot be used with the "
                f"integration type {current_type}.",
                err=True,
            )
            return 1

    raise UnhandledConditionError(
        f"The option --{conflict.field.option_name} cannot be used here "
        f"(conditions: {conditions}, values: {previous})"
    )
