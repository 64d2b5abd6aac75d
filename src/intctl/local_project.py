"""Local project checkouts and their git remote."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

import typer
import yaml

from .api_client import PlatformClient, Project
from .logger import get_logger

logger = get_logger()

PROJECT_CONFIG_DIR = ".intctl"
PROJECT_CONFIG_FILE = "project.yaml"


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk upward from start looking for a directory linked to a project."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        if (directory / PROJECT_CONFIG_DIR / PROJECT_CONFIG_FILE).is_file():
            return directory
    return None


def get_local_project_id(root: Path) -> str | None:
    """Read the project ID a local checkout is linked to."""
    config_file = root / PROJECT_CONFIG_DIR / PROJECT_CONFIG_FILE
    try:
        with config_file.open() as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.details(f"Could not read {config_file}: {e}")
        return None
    project_id = data.get("id")
    return str(project_id) if project_id else None


def ensure_git_remote(root: Path, url: str, remote: str = "origin") -> None:
    """Point the given git remote at url, adding the remote if needed.

    Raises:
        subprocess.CalledProcessError: If git fails
    """
    result = subprocess.run(
        ["git", "remote", "get-url", remote],
        cwd=root,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode == 0:
        if result.stdout.strip() == url:
            return
        command = ["git", "remote", "set-url", remote, url]
    else:
        command = ["git", "remote", "add", remote, url]
    logger.details(" ".join(command))
    subprocess.run(command, cwd=root, capture_output=True, text=True, check=True)


def update_git_url(
    old_git_url: str | None,
    project: Project,
    client: PlatformClient,
    cwd: Path | None = None,
) -> None:
    """Update the local git remote if an integration changed the project's git URL.

    Only applies when the working directory is a checkout of the same project.
    A failure to run git is reported as a warning.
    """
    root = find_project_root(cwd)
    if root is None or get_local_project_id(root) != project.id:
        return

    refreshed = client.get_project(project.id)
    new_git_url = refreshed.git_url
    if not new_git_url or new_git_url == old_git_url:
        return

    typer.echo(f"Updating Git remote URL from {old_git_url} to {new_git_url}", err=True)
    try:
        ensure_git_remote(root, new_git_url)
    except (subprocess.CalledProcessError, OSError) as e:
        # The integration change already succeeded
        typer.echo(f"Warning: could not update the Git remote: {e}", err=True)
