"""Logging configuration for intctl with custom verbosity levels."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO, cast

# Custom levels between the standard ones
ACTIONS_LEVEL = 25  # Between INFO (20) and WARNING (30) - verbosity level 1
DETAILS_LEVEL = 15  # Between DEBUG (10) and INFO (20) - verbosity level 2

logging.addLevelName(ACTIONS_LEVEL, "ACTIONS")
logging.addLevelName(DETAILS_LEVEL, "DETAILS")

VERBOSITY_SILENT = 0  # Only errors
VERBOSITY_ACTIONS = 1  # Show writes made to the platform
VERBOSITY_DETAILS = 2  # Show every HTTP request and form decision
VERBOSITY_DEBUG = 3  # Full debug output


# Integration properties that carry credentials
SECRET_KEYS = frozenset({"token", "secret", "shared_key", "routing_key", "password"})
MASK = "******"


def mask_secrets(value: Any) -> Any:
    """Return a copy of value with credential properties replaced by a mask."""
    if isinstance(value, dict):
        return {
            k: MASK if k in SECRET_KEYS and v else mask_secrets(v)
            for k, v in cast(dict[str, Any], value).items()
        }
    if isinstance(value, list):
        return [mask_secrets(v) for v in cast(list[Any], value)]
    return value


class IntctlLogger(logging.Logger):
    """Logger with semantic verbosity methods.

    - actions(): verbosity level 1 - integrations created, updated, deleted
    - details(): verbosity level 2 - HTTP requests and skipped form fields
    - debug(), payload(): verbosity level 3 - request and response bodies
    """

    def actions(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log an action (verbosity level 1)."""
        if self.isEnabledFor(ACTIONS_LEVEL):
            self._log(ACTIONS_LEVEL, msg, args, **kwargs)

    def details(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a request or form decision (verbosity level 2)."""
        if self.isEnabledFor(DETAILS_LEVEL):
            self._log(DETAILS_LEVEL, msg, args, **kwargs)

    def payload(self, label: str, body: Any) -> None:
        """Log a request or response body as JSON with secrets masked (verbosity level 3)."""
        if self.isEnabledFor(logging.DEBUG):
            self._log(
                logging.DEBUG, "%s\n%s", (label, json.dumps(mask_secrets(body), indent=2))
            )


def get_logger() -> IntctlLogger:
    """Get the intctl logger instance (singleton).

    Use setup_logger() to configure it before first use.
    """
    logging.setLoggerClass(IntctlLogger)
    logger = logging.getLogger("intctl")
    assert isinstance(logger, IntctlLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Configure the intctl logger with a verbosity level.

    Args:
        verbosity: 0=silent (errors only), 1=actions, 2=requests, 3=debug
        stream: Optional output stream (defaults to sys.stderr)
    """
    logger = get_logger()
    logger.handlers.clear()

    level_map = {
        VERBOSITY_SILENT: logging.ERROR,
        VERBOSITY_ACTIONS: ACTIONS_LEVEL,
        VERBOSITY_DETAILS: DETAILS_LEVEL,
        VERBOSITY_DEBUG: logging.DEBUG,
    }
    logger.setLevel(level_map.get(verbosity, logging.ERROR))

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Reset the logger to a clean state (used by tests)."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)

