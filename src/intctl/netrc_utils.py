"""Utilities for reading platform API credentials from a .netrc file."""

import netrc
import os
from pathlib import Path
from urllib.parse import urlparse


def get_api_token_from_netrc(base_url: str) -> str | None:
    """
    Retrieve the platform API token from the .netrc file.

    The hostname of base_url is looked up in ~/.netrc (~/_netrc on Windows)
    and the entry's password is used as the token.

    Args:
        base_url: The API base URL (e.g., 'https://api.platform.example')

    Returns:
        The token if found, or None if not found or if any error occurs.

    Example .netrc entry:
        machine api.platform.example
        login token
        password your_api_token_here
    """
    try:
        parsed = urlparse(base_url)
        hostname = parsed.netloc or parsed.path.split("/")[0]

        if not hostname:
            return None

        netrc_path = Path.home() / (".netrc" if os.name != "nt" else "_netrc")

        if not netrc_path.exists():
            return None

        auth = netrc.netrc(str(netrc_path)).authenticators(hostname)
        if auth:
            _, _, password = auth
            return password

        return None

    except (netrc.NetrcParseError, OSError, ValueError):
        # .netrc is optional
        return None
