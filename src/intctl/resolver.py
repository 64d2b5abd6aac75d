"""Resolve an integration from a full or partial ID."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

import typer

from .api_client import Integration, PlatformClient, Project
from .interactive import InteractivePrompter


class Chooser(Protocol):
    """Something that can ask the user to pick one of several choices."""

    def choose(self, choices: Mapping[str, str], text: str, default: str | None = None) -> str: ...


def match_partial_id(
    partial_id: str, integrations: Sequence[Integration], label: str = "integration"
) -> Integration:
    """Find the one integration whose ID starts with partial_id.

    An integration whose ID equals partial_id always wins over prefix matches.

    Raises:
        ValueError: If no integration, or more than one, matches
    """
    for integration in integrations:
        if integration.id == partial_id:
            return integration

    matches = [i for i in integrations if i.id.startswith(partial_id)]
    if not matches:
        raise ValueError(f"Specified {label} not found: {partial_id}")
    if len(matches) > 1:
        ids = "\n  ".join(i.id for i in matches)
        raise ValueError(
            f'The partial ID "{partial_id}" is ambiguous; it matches the following '
            f"{label} IDs:\n  {ids}"
        )
    return matches[0]


def select_integration(
    client: PlatformClient,
    project: Project,
    integration_id: str | None,
    interactive: bool,
    chooser: Chooser | None = None,
) -> Integration | None:
    """Select an integration by ID, or by asking the user.

    Errors are reported on stderr and None is returned.
    """
    if not integration_id and not interactive:
        typer.echo("An integration ID is required.", err=True)
        return None

    if not integration_id:
        integrations = client.list_integrations(project.id)
        if not integrations:
            typer.echo("No integrations found.", err=True)
            return None
        if chooser is None:
            chooser = InteractivePrompter()
        choices = {i.id: f"{i.id} ({i.type})" for i in integrations}
        integration_id = chooser.choose(choices, "Enter a number to choose an integration:")

    integration = client.get_integration(project.id, integration_id)
    if integration is not None:
        return integration

    try:
        return match_partial_id(integration_id, client.list_integrations(project.id))
    except ValueError as e:
        typer.echo(str(e), err=True)
        return None
