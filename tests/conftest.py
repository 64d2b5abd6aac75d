"""Pytest configuration and fixtures for intctl tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from intctl.api_client import Integration
from intctl.logger import reset_logger


@pytest.fixture(autouse=True)
def clean_logger() -> Iterator[None]:
    """Keep logger configuration from leaking between tests."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def make_integration() -> Callable[..., Integration]:
    """Factory for Integration objects as the API would return them."""

    def _make(
        integration_id: str, integration_type: str = "github", **properties: Any
    ) -> Integration:
        links = properties.pop("_links", {})
        data: dict[str, Any] = {"id": integration_id, "type": integration_type, **properties}
        return Integration(
            id=integration_id, type=integration_type, properties=data, links=links
        )

    return _make
