"""Utilities for creating standardized httpx AsyncClient instances."""

from typing import Any, Protocol

import httpx

__all__ = ["SSOHttpClientFactory", "create_sso_http_client"]

DEFAULT_TIMEOUT = 30.0


class SSOHttpClientFactory(Protocol):
    def __call__(self, **kwargs: Any) -> httpx.AsyncClient: ...


def create_sso_http_client(**kwargs: Any) -> httpx.AsyncClient:
    """Create an httpx AsyncClient with the defaults used to talk to the authority.

    Defaults:
    - follow_redirects=True
    - 30 second timeout unless one is given
    - Accept: application/json

    Any keyword argument accepted by httpx.AsyncClient may be passed (e.g.
    timeout, transport, verify) and overrides the defaults.

    Returns:
        Configured httpx.AsyncClient; use it as an async context manager so
        its connections are closed.

    Examples:
        async with create_sso_http_client() as client:
            response = await client.post("https://login.example.com/api/v2/tokens/oauth", json=payload)

        async with create_sso_http_client(timeout=httpx.Timeout(5.0)) as client:
            ...
    """
    headers = {"Accept": "application/json"}
    headers.update(kwargs.pop("headers", None) or {})
    default_kwargs: dict[str, Any] = {
        "follow_redirects": True,
        "timeout": httpx.Timeout(DEFAULT_TIMEOUT),
    }
    default_kwargs.update(kwargs)
    return httpx.AsyncClient(headers=headers, **default_kwargs)
