"""Platform API client wrapper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, cast

import requests

from .exceptions import IntctlError
from .logger import get_logger
from .netrc_utils import get_api_token_from_netrc

logger = get_logger()


class ApiError(IntctlError):
    """Platform API error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ApiAuthError(ApiError):
    """Platform API authentication error."""


class ApiValidationError(ApiError):
    """Raised when the API rejects submitted values.

    `errors` is either a mapping of field name to message, or a list of messages.
    """

    def __init__(self, errors: dict[str, str] | list[str]):
        super().__init__("The API rejected the submitted values", status_code=400)
        self.errors = errors


@dataclass(frozen=True)
class Integration:
    """An integration as returned by the platform API."""

    id: str
    type: str
    properties: dict[str, Any]
    links: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Integration:
        """Build an Integration from a HAL-style API response body."""
        links = cast(dict[str, Any], data.get("_links") or {})
        properties = {k: v for k, v in data.items() if not k.startswith("_")}
        return cls(
            id=str(properties.get("id", "")),
            type=str(properties.get("type", "")),
            properties=properties,
            links=links,
        )

    def has_link(self, rel: str) -> bool:
        """Check whether the API exposed a link with the given relation."""
        return rel in self.links

    def get_link(self, rel: str) -> str:
        """Get the href of a link.

        Raises:
            KeyError: If the link does not exist
        """
        link = self.links[rel]
        if isinstance(link, dict):
            return str(cast(dict[str, Any], link)["href"])
        return str(link)


@dataclass(frozen=True)
class Project:
    """A hosted project."""

    id: str
    title: str
    git_url: str | None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Project:
        """Build a Project from an API response body."""
        repository = cast(dict[str, Any], data.get("repository") or {})
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            git_url=cast(str | None, repository.get("url")),
        )


class PlatformClient:
    """Thin wrapper around the platform's REST API for integrations."""

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the API client.

        Args:
            base_url: Platform API base URL
            api_token: API token (falls back to ~/.netrc)
            session: Optional requests session (useful for testing)
            timeout: Request timeout in seconds

        Raises:
            ApiAuthError: If no token can be found
        """
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token or get_api_token_from_netrc(self.base_url)
        self.timeout = timeout

        if not self.api_token:
            raise ApiAuthError(
                "API token not found. Set INTCTL_API_TOKEN or add credentials to ~/.netrc file."
            )

        self.session = session if session is not None else requests.Session()
        self.session.headers.update(
            {"Authorization": f"Bearer {self.api_token}", "Accept": "application/json"}
        )

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        """Send a request and decode the JSON response.

        Raises:
            ApiValidationError: On a 400 response carrying field errors
            ApiError: On any other transport or HTTP failure
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.details(f"{method} {url}")
        if body is not None:
            logger.payload("Request body:", body)

        try:
            response = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiError(f"Request to {url} failed: {e}") from e

        if response.status_code == 400:
            errors = _extract_validation_errors(response)
            if errors is not None:
                raise ApiValidationError(errors)
        if response.status_code in (401, 403):
            raise ApiAuthError(
                f"Access denied for {method} {url} (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise ApiError(f"{method} {url} failed: {e}", status_code=response.status_code) from e

        if not response.content:
            return None
        data = response.json()
        logger.payload("Response body:", data)
        return data

    def _integrations_path(self, project_id: str) -> str:
        return f"projects/{project_id}/integrations"

    def get_project(self, project_id: str) -> Project:
        """Fetch a project (also used to refresh its git URL)."""
        return Project.from_api(self._request("GET", f"projects/{project_id}"))

    def list_integrations(self, project_id: str) -> list[Integration]:
        """List all integrations on a project."""
        data = self._request("GET", self._integrations_path(project_id)) or []
        if isinstance(data, dict):
            # Some deployments wrap collections in a HAL envelope
            data = cast(dict[str, Any], data).get("items", [])
        return [Integration.from_api(item) for item in cast(list[dict[str, Any]], data)]

    def get_integration(self, project_id: str, integration_id: str) -> Integration | None:
        """Fetch an integration by its exact ID, or None if it does not exist."""
        try:
            data = self._request("GET", f"{self._integrations_path(project_id)}/{integration_id}")
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return Integration.from_api(data)

    def create_integration(self, project_id: str, values: dict[str, Any]) -> Integration:
        """Create an integration from a (nested) payload."""
        data = self._request("POST", self._integrations_path(project_id), values)
        integration = Integration.from_api(_embedded_entity(data))
        logger.actions(f"Created integration {integration.id} ({integration.type})")
        return integration

    def update_integration(
        self, project_id: str, integration_id: str, values: dict[str, Any]
    ) -> Integration:
        """Update an integration with the given (nested) values."""
        data = self._request(
            "PATCH", f"{self._integrations_path(project_id)}/{integration_id}", values
        )
        integration = Integration.from_api(_embedded_entity(data))
        logger.actions(f"Updated integration {integration.id}")
        return integration

    def delete_integration(self, project_id: str, integration_id: str) -> None:
        """Delete an integration."""
        self._request("DELETE", f"{self._integrations_path(project_id)}/{integration_id}")
        logger.actions(f"Deleted integration {integration_id}")

    def validate_integration(
        self, project_id: str, integration_id: str
    ) -> dict[str, str] | list[str]:
        """Ask the API to validate an existing integration.

        Returns:
            The validation errors (empty if the integration is valid)
        """
        try:
            self._request(
                "POST", f"{self._integrations_path(project_id)}/{integration_id}/validate"
            )
        except ApiValidationError as e:
            return e.errors
        return []


def _embedded_entity(data: Any) -> dict[str, Any]:
    """Unwrap the entity from a create/update response."""
    body = cast(dict[str, Any], data or {})
    embedded = cast(dict[str, Any], body.get("_embedded") or {})
    if "entity" in embedded:
        return cast(dict[str, Any], embedded["entity"])
    return body


def _extract_validation_errors(response: requests.Response) -> dict[str, str] | list[str] | None:
    """Extract field errors from a 400 response body, if it carries any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    detail = cast(dict[str, Any], body).get("detail")
    if isinstance(detail, dict):
        return {str(k): str(v) for k, v in cast(dict[str, Any], detail).items()}
    if isinstance(detail, list):
        return [str(v) for v in cast(list[Any], detail)]
    return None
