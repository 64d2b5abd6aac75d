"""Tests for the platform API client."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from intctl.api_client import (
    ApiAuthError,
    ApiError,
    ApiValidationError,
    Integration,
    PlatformClient,
    Project,
)

BASE_URL = "https://api.platform.example"


def _response(status_code: int = 200, body: Any = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.url = BASE_URL
    response._content = b"" if body is None else json.dumps(body).encode()
    return response


def _client(*responses: requests.Response) -> tuple[PlatformClient, MagicMock]:
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return PlatformClient(BASE_URL, api_token="secret", session=session), session


class TestModels:
    """Tests for API response models."""

    def test_integration_from_api(self) -> None:
        """Test that HAL keys are split off from properties."""
        integration = Integration.from_api(
            {
                "id": "abc123",
                "type": "webhook",
                "url": "https://example.com",
                "_links": {"#hook": {"href": "https://api/hook"}, "self": "https://api/self"},
            }
        )
        assert integration.id == "abc123"
        assert integration.type == "webhook"
        assert "_links" not in integration.properties
        assert integration.properties["url"] == "https://example.com"
        assert integration.get_link("#hook") == "https://api/hook"
        assert integration.get_link("self") == "https://api/self"
        assert not integration.has_link("#missing")

    def test_project_from_api(self) -> None:
        """Test reading the git URL from the repository block."""
        project = Project.from_api(
            {"id": "proj1", "title": "Shop", "repository": {"url": "git@git.example:proj1.git"}}
        )
        assert project == Project("proj1", "Shop", "git@git.example:proj1.git")
        assert Project.from_api({"id": "proj2"}).git_url is None


class TestAuthentication:
    """Tests for token lookup."""

    def test_headers(self) -> None:
        """Test that the token is sent as a bearer token."""
        _, session = _client()
        assert session.headers["Authorization"] == "Bearer secret"
        assert session.headers["Accept"] == "application/json"

    @patch("intctl.api_client.get_api_token_from_netrc")
    def test_token_from_netrc(self, mock_netrc: MagicMock) -> None:
        """Test falling back to ~/.netrc."""
        mock_netrc.return_value = "netrc-token"
        client = PlatformClient(BASE_URL + "/", session=MagicMock(headers={}))
        assert client.api_token == "netrc-token"
        mock_netrc.assert_called_once_with(BASE_URL)

    @patch("intctl.api_client.get_api_token_from_netrc")
    def test_missing_token(self, mock_netrc: MagicMock) -> None:
        """Test that a missing token is an authentication error."""
        mock_netrc.return_value = None
        with pytest.raises(ApiAuthError, match="API token not found"):
            PlatformClient(BASE_URL, session=MagicMock(headers={}))


class TestRequests:
    """Tests for API operations."""

    def test_list_integrations(self) -> None:
        """Test listing integrations."""
        client, session = _client(
            _response(body=[{"id": "a", "type": "github"}, {"id": "b", "type": "webhook"}])
        )
        integrations = client.list_integrations("proj1")

        assert [i.id for i in integrations] == ["a", "b"]
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == f"{BASE_URL}/projects/proj1/integrations"

    def test_list_integrations_envelope(self) -> None:
        """Test listing integrations wrapped in an items envelope."""
        client, _ = _client(_response(body={"items": [{"id": "a", "type": "github"}]}))
        assert [i.id for i in client.list_integrations("proj1")] == ["a"]

    def test_get_integration_not_found(self) -> None:
        """Test that a 404 gives None."""
        client, _ = _client(_response(404, {"title": "Not Found"}))
        assert client.get_integration("proj1", "zzz") is None

    def test_server_error(self) -> None:
        """Test that other HTTP failures raise ApiError with the status."""
        client, _ = _client(_response(500))
        with pytest.raises(ApiError) as exc_info:
            client.get_integration("proj1", "abc")
        assert exc_info.value.status_code == 500

    def test_auth_failure(self) -> None:
        """Test that 403 responses are authentication errors."""
        client, _ = _client(_response(403))
        with pytest.raises(ApiAuthError):
            client.list_integrations("proj1")

    def test_transport_failure(self) -> None:
        """Test that connection failures become ApiError."""
        session = MagicMock(headers={})
        session.request.side_effect = requests.ConnectionError("refused")
        client = PlatformClient(BASE_URL, api_token="secret", session=session)
        with pytest.raises(ApiError, match="refused"):
            client.list_integrations("proj1")

    def test_create_unwraps_entity(self) -> None:
        """Test that the created entity is read from _embedded."""
        client, session = _client(
            _response(201, {"_embedded": {"entity": {"id": "new1", "type": "webhook"}}})
        )
        integration = client.create_integration("proj1", {"type": "webhook"})

        assert integration.id == "new1"
        assert session.request.call_args.kwargs["json"] == {"type": "webhook"}

    def test_create_validation_errors(self) -> None:
        """Test that field errors are raised as ApiValidationError."""
        client, _ = _client(_response(400, {"detail": {"url": "Invalid URL"}}))
        with pytest.raises(ApiValidationError) as exc_info:
            client.create_integration("proj1", {"type": "webhook", "url": "x"})
        assert exc_info.value.errors == {"url": "Invalid URL"}

    def test_bad_request_without_details(self) -> None:
        """Test that a 400 without field errors is a plain ApiError."""
        client, _ = _client(_response(400, {"detail": "Bad request"}))
        with pytest.raises(ApiError) as exc_info:
            client.create_integration("proj1", {})
        assert not isinstance(exc_info.value, ApiValidationError)

    def test_update_uses_patch(self) -> None:
        """Test that updates are sent with PATCH."""
        client, session = _client(_response(body={"id": "abc", "type": "github"}))
        client.update_integration("proj1", "abc", {"fetch_branches": False})

        method, url = session.request.call_args.args
        assert method == "PATCH"
        assert url == f"{BASE_URL}/projects/proj1/integrations/abc"

    def test_delete(self) -> None:
        """Test deleting an integration."""
        client, session = _client(_response(204))
        client.delete_integration("proj1", "abc")
        assert session.request.call_args.args[0] == "DELETE"

    def test_validate(self) -> None:
        """Test that validation returns errors, or an empty list."""
        client, _ = _client(
            _response(204), _response(400, {"detail": ["Repository not accessible"]})
        )
        assert client.validate_integration("proj1", "abc") == []
        assert client.validate_integration("proj1", "abc") == ["Repository not accessible"]
