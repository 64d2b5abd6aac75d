"""The integration form: field schema and value post-processing."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

from .api_client import Integration
from .fields import Field, FieldKind, is_valid_email

INTEGRATION_TYPES = (
    "bitbucket",
    "bitbucket_server",
    "github",
    "gitlab",
    "webhook",
    "health.email",
    "health.pagerduty",
    "health.slack",
    "health.webhook",
    "script",
)

# Source-code integrations can change the project's git URL
SOURCE_CODE_TYPES = ("bitbucket", "bitbucket_server", "github", "gitlab")

# Placeholders accepted in place of email recipients
RECIPIENT_PLACEHOLDERS = ("#viewers", "#admins")


def validate_project(value: str) -> bool:
    """A project must look like 'namespace/repo'."""
    return value.find("/", 1) != -1


def validate_repository(value: str) -> bool:
    """A repository must contain exactly one slash, not at the start."""
    return value[1:].count("/") == 1


def normalize_repository(value: str) -> str:
    """Reduce a repository URL to its 'owner/repository' path."""
    if value.startswith(("http://", "https://")):
        return urlparse(value).path.lstrip("/")
    return value


def normalize_script_path(value: str) -> str:
    """Expand a leading '~/' using HOME."""
    home = os.getenv("HOME")
    if home and value.startswith("~/"):
        return f"{home}/{value[2:]}"
    return value


def validate_recipients(emails: list[str]) -> bool | str:
    """Recipients must be email addresses or one of the placeholders."""
    invalid = [
        email
        for email in emails
        if email not in RECIPIENT_PLACEHOLDERS and not is_valid_email(email)
    ]
    if invalid:
        return f"Invalid email address(es): {', '.join(invalid)}"
    return True


def get_fields(default_from_address: str | None = None) -> dict[str, Field]:
    """Build the ordered integration field schema.

    Args:
        default_from_address: The platform's default From address for health
            email integrations

    Returns:
        Mapping of field key to Field, in evaluation order
    """
    fields = [
        Field(
            "type",
            "Integration type",
            kind=FieldKind.OPTIONS,
            option_name="type",
            description="The integration type",
            question_line="",
            options=INTEGRATION_TYPES,
        ),
        Field(
            "base_url",
            "Base URL",
            kind=FieldKind.URL,
            conditions={"type": ["gitlab", "bitbucket_server"]},
            description="The base URL of the server installation",
        ),
        Field(
            "username",
            "Username",
            conditions={"type": ["bitbucket_server"]},
            description="The Bitbucket Server username",
        ),
        Field(
            "token",
            "Token",
            conditions={"type": ["github", "gitlab", "health.slack", "bitbucket_server"]},
            description="An access token for the integration",
        ),
        Field(
            "key",
            "OAuth consumer key",
            option_name="key",
            conditions={"type": ["bitbucket"]},
            description="A Bitbucket OAuth consumer key",
            value_path=("app_credentials", "key"),
        ),
        Field(
            "secret",
            "OAuth consumer secret",
            option_name="secret",
            conditions={"type": ["bitbucket"]},
            description="A Bitbucket OAuth consumer secret",
            value_path=("app_credentials", "secret"),
        ),
        Field(
            "project",
            "Project",
            option_name="server-project",
            conditions={"type": ["gitlab"]},
            description="The project (e.g. 'namespace/repo')",
            validator=validate_project,
        ),
        Field(
            "repository",
            "Repository",
            conditions={"type": ["bitbucket", "bitbucket_server", "github"]},
            description="The repository to track (e.g. 'owner/repository')",
            question_line="The repository (e.g. 'owner/repository')",
            validator=validate_repository,
            normalizer=normalize_repository,
        ),
        Field(
            "build_merge_requests",
            "Build merge requests",
            kind=FieldKind.BOOLEAN,
            default=True,
            conditions={"type": ["gitlab"]},
            description="GitLab: build merge requests as environments",
            question_line="Build every merge request as an environment",
        ),
        Field(
            "build_pull_requests",
            "Build pull requests",
            kind=FieldKind.BOOLEAN,
            default=True,
            conditions={"type": ["bitbucket", "bitbucket_server", "github"]},
            description="Build every pull request as an environment",
        ),
        Field(
            "build_draft_pull_requests",
            "Build draft pull requests",
            kind=FieldKind.BOOLEAN,
            default=True,
            conditions={"type": ["github"], "build_pull_requests": True},
        ),
        Field(
            "build_pull_requests_post_merge",
            "Build pull requests post-merge",
            kind=FieldKind.BOOLEAN,
            conditions={"type": ["github"], "build_pull_requests": True},
            default=False,
            description="Build pull requests based on their post-merge state",
        ),
        Field(
            "build_wip_merge_requests",
            "Build WIP merge requests",
            kind=FieldKind.BOOLEAN,
            default=True,
            conditions={"type": ["gitlab"], "build_merge_requests": True},
            description="GitLab: build WIP merge requests",
            question_line="Build WIP (work in progress) merge requests",
        ),
        Field(
            "merge_requests_clone_parent_data",
            "Clone data for merge requests",
            kind=FieldKind.BOOLEAN,
            default=True,
            option_name="merge-requests-clone-parent-data",
            conditions={"type": ["gitlab"], "build_merge_requests": True},
            description="GitLab: clone data for merge requests",
            question_line="Clone the parent environment's data for merge requests",
        ),
        Field(
            "pull_requests_clone_parent_data",
            "Clone data for pull requests",
            kind=FieldKind.BOOLEAN,
            default=True,
            option_name="pull-requests-clone-parent-data",
            conditions={"type": ["github", "bitbucket_server"], "build_pull_requests": True},
            description="Clone the parent environment's data for pull requests",
        ),
        Field(
            "resync_pull_requests",
            "Re-sync pull requests",
            kind=FieldKind.BOOLEAN,
            option_name="resync-pull-requests",
            conditions={"type": ["bitbucket"], "build_pull_requests": True},
            default=False,
            description="Re-sync pull request environment data on every build",
        ),
        Field(
            "fetch_branches",
            "Fetch branches",
            kind=FieldKind.BOOLEAN,
            default=True,
            conditions={"type": ["bitbucket", "bitbucket_server", "github", "gitlab"]},
            description="Fetch all branches from the remote (as inactive environments)",
        ),
        Field(
            "prune_branches",
            "Prune branches",
            kind=FieldKind.BOOLEAN,
            default=True,
            conditions={
                "type": ["bitbucket", "bitbucket_server", "github", "gitlab"],
                "fetch_branches": True,
            },
            description="Delete branches that do not exist on the remote",
        ),
        Field(
            "url",
            "URL",
            kind=FieldKind.URL,
            conditions={"type": ["health.webhook", "webhook"]},
            description="Webhook: a URL to receive JSON data",
            question_line="What is the webhook URL (to which JSON data will be posted)?",
        ),
        Field(
            "shared_key",
            "Shared key",
            conditions={"type": ["health.webhook", "webhook"]},
            description="Webhook: the JWS shared secret key",
            question_line=(
                "Optionally, enter a JWS shared secret key, for validating webhook requests"
            ),
            required=False,
        ),
        Field(
            "script",
            "Script file",
            kind=FieldKind.FILE,
            option_name="file",
            conditions={"type": ["script"]},
            allowed_extensions=(".js", ""),
            contents_as_value=True,
            description="The name of a local file that contains the script to upload",
            normalizer=normalize_script_path,
        ),
        Field(
            "events",
            "Events",
            kind=FieldKind.ARRAY,
            option_name="events",
            conditions={"type": ["webhook", "script"]},
            default=["*"],
            description="A list of events to act on, e.g. environment.push",
        ),
        Field(
            "states",
            "States",
            kind=FieldKind.ARRAY,
            option_name="states",
            conditions={"type": ["webhook", "script"]},
            default=["complete"],
            description="A list of states to act on, e.g. pending, in_progress, complete",
        ),
        Field(
            "environments",
            "Included environments",
            kind=FieldKind.ARRAY,
            option_name="environments",
            conditions={"type": ["webhook", "script"]},
            default=["*"],
            description="The environment IDs to include",
        ),
        Field(
            "excluded_environments",
            "Excluded environments",
            kind=FieldKind.ARRAY,
            conditions={"type": ["webhook"]},
            default=[],
            description="The environment IDs to exclude",
            required=False,
        ),
        Field(
            "from_address",
            "From address",
            kind=FieldKind.EMAIL,
            conditions={"type": ["health.email"]},
            description="[Optional] Custom From address for alert emails",
            default=default_from_address,
            required=False,
        ),
        Field(
            "recipients",
            "Recipients",
            kind=FieldKind.ARRAY,
            conditions={"type": ["health.email"]},
            description="The recipient email address(es)",
            validator=validate_recipients,
        ),
        Field(
            "channel",
            "Channel",
            conditions={"type": ["health.slack"]},
            description="The Slack channel",
        ),
        Field(
            "routing_key",
            "Routing key",
            conditions={"type": ["health.pagerduty"]},
            description="The PagerDuty routing key",
        ),
    ]
    return {f.key: f for f in fields}


def post_process_values(
    values: Mapping[str, Any], integration: Integration | None = None
) -> dict[str, Any]:
    """Apply type-specific rewrites once the form is complete.

    The type comes from the submitted values, falling back to the existing
    integration's type when editing. The input mapping is not modified.
    """
    result = dict(values)
    integration_type = result.get("type") or (integration.type if integration else None)

    if integration_type == "bitbucket_server":
        # The API calls the server's base URL "url"
        if "base_url" in result:
            result["url"] = result.pop("base_url")
        repository = result.get("repository")
        if isinstance(repository, str) and repository.find("/", 1) != -1:
            result["project"], result["repository"] = repository.split("/", 1)

    return result
