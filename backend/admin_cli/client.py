"""HTTP client helpers for the admin CLI."""
from __future__ import annotations

import httpx

DEFAULT_TIMEOUT = 30.0


def create_client(
    base_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Instantiate an HTTPX client pointed at the admin API."""

    return httpx.Client(
        base_url=base_url,
        timeout=timeout,
        transport=transport,
        headers={"Accept": "application/json"},
    )
