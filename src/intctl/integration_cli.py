"""Integration CLI commands."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Annotated, Any, cast

import typer

from .api_client import ApiAuthError, ApiError, ApiValidationError, Integration, Project
from .bitbucket import BitbucketCredentials
from .context import CommandContext
from .display import (
    PropertyFormatter,
    display_integration,
    handle_conditional_field_conflict,
    list_validation_errors,
    render_integration_list,
)
from .exceptions import IntctlError
from .form import Form
from .integration_fields import SOURCE_CODE_TYPES, get_fields, post_process_values
from .interactive import InteractivePrompter
from .local_project import update_git_url
from .resolver import select_integration

integration_app = typer.Typer(help="Manage a project's integrations")

# Option help text and names come from the form fields
_FIELDS = get_fields()


def _field_option(key: str) -> Any:
    field = _FIELDS[key]
    return typer.Option(f"--{field.option_name}", help=field.description or field.label)


TypeOption = Annotated[str | None, _field_option("type")]
BaseUrlOption = Annotated[str | None, _field_option("base_url")]
UsernameOption = Annotated[str | None, _field_option("username")]
TokenOption = Annotated[str | None, _field_option("token")]
KeyOption = Annotated[str | None, _field_option("key")]
SecretOption = Annotated[str | None, _field_option("secret")]
ProjectOption = Annotated[str | None, _field_option("project")]
RepositoryOption = Annotated[str | None, _field_option("repository")]
BuildMergeRequestsOption = Annotated[str | None, _field_option("build_merge_requests")]
BuildPullRequestsOption = Annotated[str | None, _field_option("build_pull_requests")]
BuildDraftPullRequestsOption = Annotated[str | None, _field_option("build_draft_pull_requests")]
BuildPullRequestsPostMergeOption = Annotated[
    str | None, _field_option("build_pull_requests_post_merge")
]
BuildWipMergeRequestsOption = Annotated[str | None, _field_option("build_wip_merge_requests")]
MergeRequestsCloneOption = Annotated[
    str | None, _field_option("merge_requests_clone_parent_data")
]
PullRequestsCloneOption = Annotated[str | None, _field_option("pull_requests_clone_parent_data")]
ResyncPullRequestsOption = Annotated[str | None, _field_option("resync_pull_requests")]
FetchBranchesOption = Annotated[str | None, _field_option("fetch_branches")]
PruneBranchesOption = Annotated[str | None, _field_option("prune_branches")]
UrlOption = Annotated[str | None, _field_option("url")]
SharedKeyOption = Annotated[str | None, _field_option("shared_key")]
ScriptOption = Annotated[str | None, _field_option("script")]
EventsOption = Annotated[list[str] | None, _field_option("events")]
StatesOption = Annotated[list[str] | None, _field_option("states")]
EnvironmentsOption = Annotated[list[str] | None, _field_option("environments")]
ExcludedEnvironmentsOption = Annotated[list[str] | None, _field_option("excluded_environments")]
FromAddressOption = Annotated[str | None, _field_option("from_address")]
RecipientsOption = Annotated[list[str] | None, _field_option("recipients")]
ChannelOption = Annotated[str | None, _field_option("channel")]
RoutingKeyOption = Annotated[str | None, _field_option("routing_key")]
NoInteractionOption = Annotated[
    bool,
    typer.Option("--no-interaction", "-n", help="Do not ask any interactive questions"),
]
IntegrationIdArgument = Annotated[
    str | None, typer.Argument(help="The integration ID (a unique prefix is enough)")
]


def _command_context(ctx: typer.Context) -> CommandContext:
    return cast(CommandContext, ctx.obj)


def _form_options(params: Mapping[str, Any]) -> dict[str, Any]:
    """Map command parameters onto form field keys ('type_' -> 'type')."""
    options: dict[str, Any] = {}
    for name, value in params.items():
        key = name.rstrip("_")
        if key in _FIELDS:
            # Repeatable options arrive as an empty tuple when not given
            if isinstance(value, (list, tuple)) and not value:
                value = None
            options[key] = value
    return options


def _build_form(command: CommandContext) -> Form:
    default_from = command.config.get_with_default("service.default_from_address")
    return Form.from_fields(get_fields(default_from))


def _check_bitbucket_credentials(command: CommandContext, values: Mapping[str, Any]) -> None:
    """Exit with a message if Bitbucket app credentials do not work."""
    credentials = BitbucketCredentials.from_values(dict(values))
    if credentials is None:
        return
    result = command.token_cache.validate_credentials(credentials)
    if result is not True:
        typer.echo(str(result), err=True)
        raise typer.Exit(1)


@contextmanager
def _command_errors() -> Iterator[None]:
    """Turn expected errors into messages on stderr and exit code 1."""
    try:
        yield
    except ApiValidationError as e:
        list_validation_errors(e.errors)
        raise typer.Exit(1) from None
    except ApiAuthError as e:
        typer.echo(f"Authentication error: {e}", err=True)
        raise typer.Exit(1) from None
    except ApiError as e:
        typer.echo(f"API error: {e}", err=True)
        raise typer.Exit(1) from None
    except IntctlError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _select_or_exit(
    command: CommandContext, integration_id: str | None, interactive: bool
) -> tuple[Project, Integration]:
    project = command.client.get_project(command.require_project_id())
    integration = select_integration(command.client, project, integration_id, interactive)
    if integration is None:
        raise typer.Exit(1)
    return project, integration


@integration_app.command("add")
def integration_add(  # noqa: PLR0913 - one option per form field
    ctx: typer.Context,
    type_: TypeOption = None,
    base_url: BaseUrlOption = None,
    username: UsernameOption = None,
    token: TokenOption = None,
    key: KeyOption = None,
    secret: SecretOption = None,
    project: ProjectOption = None,
    repository: RepositoryOption = None,
    build_merge_requests: BuildMergeRequestsOption = None,
    build_pull_requests: BuildPullRequestsOption = None,
    build_draft_pull_requests: BuildDraftPullRequestsOption = None,
    build_pull_requests_post_merge: BuildPullRequestsPostMergeOption = None,
    build_wip_merge_requests: BuildWipMergeRequestsOption = None,
    merge_requests_clone_parent_data: MergeRequestsCloneOption = None,
    pull_requests_clone_parent_data: PullRequestsCloneOption = None,
    resync_pull_requests: ResyncPullRequestsOption = None,
    fetch_branches: FetchBranchesOption = None,
    prune_branches: PruneBranchesOption = None,
    url: UrlOption = None,
    shared_key: SharedKeyOption = None,
    script: ScriptOption = None,
    events: EventsOption = None,
    states: StatesOption = None,
    environments: EnvironmentsOption = None,
    excluded_environments: ExcludedEnvironmentsOption = None,
    from_address: FromAddressOption = None,
    recipients: RecipientsOption = None,
    channel: ChannelOption = None,
    routing_key: RoutingKeyOption = None,
    no_interaction: NoInteractionOption = False,
) -> None:
    """Add an integration to the project."""
    command = _command_context(ctx)
    with _command_errors():
        project_id = command.require_project_id()
        client = command.client
        form = _build_form(command)

        result = form.resolve_options(
            _form_options(ctx.params),
            interactive=not no_interaction,
            prompter=InteractivePrompter(),
        )
        if result.conflict is not None:
            raise typer.Exit(handle_conditional_field_conflict(result.conflict))

        values = post_process_values(result.values)
        if values.get("type") == "bitbucket":
            _check_bitbucket_credentials(command, values)

        selected_project = client.get_project(project_id)
        old_git_url = selected_project.git_url

        integration = client.create_integration(project_id, form.to_payload(values))
        typer.echo(f"Created integration {integration.id} (type: {integration.type})", err=True)
        display_integration(integration)

        if integration.type in SOURCE_CODE_TYPES:
            update_git_url(old_git_url, selected_project, client)


@integration_app.command("update")
def integration_update(  # noqa: PLR0913 - one option per form field
    ctx: typer.Context,
    integration_id: IntegrationIdArgument = None,
    type_: TypeOption = None,
    base_url: BaseUrlOption = None,
    username: UsernameOption = None,
    token: TokenOption = None,
    key: KeyOption = None,
    secret: SecretOption = None,
    project: ProjectOption = None,
    repository: RepositoryOption = None,
    build_merge_requests: BuildMergeRequestsOption = None,
    build_pull_requests: BuildPullRequestsOption = None,
    build_draft_pull_requests: BuildDraftPullRequestsOption = None,
    build_pull_requests_post_merge: BuildPullRequestsPostMergeOption = None,
    build_wip_merge_requests: BuildWipMergeRequestsOption = None,
    merge_requests_clone_parent_data: MergeRequestsCloneOption = None,
    pull_requests_clone_parent_data: PullRequestsCloneOption = None,
    resync_pull_requests: ResyncPullRequestsOption = None,
    fetch_branches: FetchBranchesOption = None,
    prune_branches: PruneBranchesOption = None,
    url: UrlOption = None,
    shared_key: SharedKeyOption = None,
    script: ScriptOption = None,
    events: EventsOption = None,
    states: StatesOption = None,
    environments: EnvironmentsOption = None,
    excluded_environments: ExcludedEnvironmentsOption = None,
    from_address: FromAddressOption = None,
    recipients: RecipientsOption = None,
    channel: ChannelOption = None,
    routing_key: RoutingKeyOption = None,
    no_interaction: NoInteractionOption = False,
) -> None:
    """Update an integration."""
    command = _command_context(ctx)
    with _command_errors():
        client = command.client
        selected_project, integration = _select_or_exit(
            command, integration_id, not no_interaction
        )
        form = _build_form(command)

        result = form.resolve_options(
            _form_options(ctx.params), interactive=False, previous=integration.properties
        )
        if result.conflict is not None:
            raise typer.Exit(handle_conditional_field_conflict(result.conflict))

        values = post_process_values(result.values, integration)
        payload = form.to_payload(values)

        # Only send what actually changes
        changed = {k: v for k, v in payload.items() if integration.properties.get(k) != v}
        if not changed:
            typer.echo("No changed values were provided to update.", err=True)
            raise typer.Exit(1)

        if "app_credentials" in changed and integration.type == "bitbucket":
            existing = cast(dict[str, Any], integration.properties.get("app_credentials") or {})
            _check_bitbucket_credentials(
                command, {"app_credentials": {**existing, **changed["app_credentials"]}}
            )

        old_git_url = selected_project.git_url
        updated = client.update_integration(selected_project.id, integration.id, changed)
        typer.echo(f"Integration {updated.id} (type: {updated.type}) updated", err=True)
        display_integration(updated)

        if updated.type in SOURCE_CODE_TYPES:
            update_git_url(old_git_url, selected_project, client)


@integration_app.command("get")
def integration_get(
    ctx: typer.Context,
    integration_id: IntegrationIdArgument = None,
    property_name: Annotated[
        str | None,
        typer.Option("--property", "-P", help="The integration property to view"),
    ] = None,
    no_interaction: NoInteractionOption = False,
) -> None:
    """View details of an integration."""
    command = _command_context(ctx)
    with _command_errors():
        _, integration = _select_or_exit(command, integration_id, not no_interaction)
        formatter = PropertyFormatter()

        if property_name is None:
            display_integration(integration, formatter)
            return

        if property_name == "hook_url" and integration.has_link("#hook"):
            value: Any = integration.get_link("#hook")
        elif property_name in integration.properties:
            value = integration.properties[property_name]
        else:
            typer.echo(f"Property not found: {property_name}", err=True)
            raise typer.Exit(1)
        typer.echo(formatter.format(value, property_name))


@integration_app.command("list")
def integration_list(ctx: typer.Context) -> None:
    """List the project's integrations."""
    command = _command_context(ctx)
    with _command_errors():
        integrations = command.client.list_integrations(command.require_project_id())
        if not integrations:
            typer.echo("No integrations found.", err=True)
            raise typer.Exit(1)
        render_integration_list(integrations)


@integration_app.command("delete")
def integration_delete(
    ctx: typer.Context,
    integration_id: IntegrationIdArgument = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
    no_interaction: NoInteractionOption = False,
) -> None:
    """Delete an integration."""
    command = _command_context(ctx)
    with _command_errors():
        selected_project, integration = _select_or_exit(
            command, integration_id, not no_interaction
        )
        if not yes and not no_interaction:
            confirmed = typer.confirm(
                f"Delete the integration {integration.id} (type: {integration.type})?",
                default=False,
            )
            if not confirmed:
                raise typer.Exit(1)

        command.client.delete_integration(selected_project.id, integration.id)
        typer.echo(f"Deleted integration {integration.id}", err=True)


@integration_app.command("validate")
def integration_validate(
    ctx: typer.Context,
    integration_id: IntegrationIdArgument = None,
    no_interaction: NoInteractionOption = False,
) -> None:
    """Validate an existing integration."""
    command = _command_context(ctx)
    with _command_errors():
        selected_project, integration = _select_or_exit(
            command, integration_id, not no_interaction
        )
        errors = command.client.validate_integration(selected_project.id, integration.id)
        if not errors:
            typer.echo("The integration is valid.", err=True)
            return
        list_validation_errors(errors)
        raise typer.Exit(1)
