"""Logging utilities for ssoauth."""

import logging
from collections.abc import Mapping
from typing import Any, Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "otp",
        "second_factor",
        "consumer_secret",
        "token_secret",
        "authorization",
        "oauth_signature",
    }
)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for an ssoauth module.

    Args:
        name: the module name, usually __name__

    Returns:
        a logger instance
    """
    return logging.getLogger(name)


def configure_logging(level: LogLevel = "INFO") -> None:
    """Configure logging for ssoauth.

    Args:
        level: the log level to use
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def redact_sensitive_data(
    data: Mapping[str, Any] | None,
    sensitive_keys: frozenset[str] | set[str] | None = None,
) -> Mapping[str, Any] | None:
    """Return a shallow copy with sensitive values replaced by "***".

    Parameters
    ----------
    data:
        Original mapping (typically a request or response payload). If *None*
        the function simply returns *None*.
    sensitive_keys:
        Optional set of keys that should be hidden; defaults to passwords,
        one-time codes and OAuth secrets.
    """

    if data is None:
        return None

    sensitive_keys = sensitive_keys or SENSITIVE_KEYS

    redacted: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in sensitive_keys:
            redacted[key] = "***"
        else:
            redacted[key] = value

    return redacted
