"""Bitbucket OAuth token exchange for app credentials."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast

import requests
from requests.auth import HTTPBasicAuth

from .exceptions import IntctlError
from .logger import get_logger

logger = get_logger()

BITBUCKET_TOKEN_URL = "https://bitbucket.org/site/oauth2/access_token"


class BitbucketTokenError(IntctlError):
    """Raised when Bitbucket does not return an access token."""


@dataclass(frozen=True)
class BitbucketCredentials:
    """A Bitbucket OAuth consumer key and secret."""

    key: str
    secret: str

    @classmethod
    def from_values(cls, values: dict[str, Any]) -> BitbucketCredentials | None:
        """Read credentials from form values or a nested app_credentials payload."""
        source = cast(dict[str, Any], values.get("app_credentials") or values)
        key, secret = source.get("key"), source.get("secret")
        if not key or not secret:
            return None
        return cls(key=str(key), secret=str(secret))


class BitbucketTokenCache:
    """Caches Bitbucket access tokens per consumer key.

    One cache belongs to one command invocation; nothing is written to disk.
    """

    def __init__(self, session: requests.Session | None = None, timeout: float = 30.0):
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self._tokens: dict[str, str] = {}

    def get_access_token(self, credentials: BitbucketCredentials) -> str:
        """Obtain an OAuth2 access token for the given app credentials.

        Raises:
            requests.HTTPError: If Bitbucket rejects the request
            BitbucketTokenError: If the response carries no access token
        """
        if credentials.key in self._tokens:
            return self._tokens[credentials.key]

        logger.details(f"POST {BITBUCKET_TOKEN_URL}")
        response = self.session.post(
            BITBUCKET_TOKEN_URL,
            auth=HTTPBasicAuth(credentials.key, credentials.secret),
            data={"grant_type": "client_credentials"},
            timeout=self.timeout,
        )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict) or "access_token" not in data:
            raise BitbucketTokenError("Access token not found in Bitbucket response")

        token = str(cast(dict[str, Any], data)["access_token"])
        self._tokens[credentials.key] = token
        return token

    def validate_credentials(self, credentials: BitbucketCredentials) -> bool | str:
        """Check that the credentials can obtain an access token.

        Returns:
            True if valid, otherwise a message explaining the failure
        """
        try:
            self.get_access_token(credentials)
        except Exception as e:  # noqa: BLE001 - any failure means the credentials are unusable
            logger.details(f"Bitbucket token request failed: {e}")
            message = "Invalid Bitbucket credentials"
            response = getattr(e, "response", None)
            if response is not None and response.status_code == 400:
                message += (
                    "\nEnsure that the OAuth consumer key and secret are valid."
                    "\nAdditionally, ensure that the OAuth consumer has a callback URL set"
                    " (even just to http://localhost)."
                )
            return message

        return True
