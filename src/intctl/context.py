"""Per-invocation command context."""

from __future__ import annotations

from dataclasses import dataclass, field

from .api_client import PlatformClient
from .bitbucket import BitbucketTokenCache
from .config import CliConfig
from .exceptions import ConfigError
from .local_project import find_project_root, get_local_project_id


@dataclass
class CommandContext:
    """State shared by the commands of one invocation.

    Created by the root callback and stored on typer's context object. Each
    invocation gets a fresh Bitbucket token cache.
    """

    config: CliConfig
    project_id: str | None = None
    token_cache: BitbucketTokenCache = field(default_factory=BitbucketTokenCache)
    _client: PlatformClient | None = field(default=None, repr=False)

    @property
    def client(self) -> PlatformClient:
        """The platform API client, created on first use."""
        if self._client is None:
            self._client = PlatformClient(
                self.config.api.base_url,
                api_token=self.config.api.token,
                timeout=self.config.api.timeout,
            )
        return self._client

    def require_project_id(self) -> str:
        """The selected project: --project, the config's default, or the local checkout's.

        Raises:
            ConfigError: If no project is selected
        """
        project_id = self.project_id or self.config.project
        if not project_id:
            root = find_project_root()
            project_id = get_local_project_id(root) if root is not None else None
        if not project_id:
            raise ConfigError(
                "A project ID is required (use --project or set 'project' in config)"
            )
        return project_id
