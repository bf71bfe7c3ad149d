"""Shared httpx plumbing for the registry and storage clients."""
from typing import Optional

import httpx

from . import config


def build_client(
    base_url: str,
    key: str,
    timeout: Optional[float] = None,
    proxy: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    headers: Optional[dict] = None,
) -> httpx.AsyncClient:
    """
    Create an AsyncClient authenticated with a project key.

    Args:
        base_url: Project endpoint including the API prefix
        key: Project key, sent as apikey and bearer token
        timeout: Request timeout in seconds (default from VAULT_HTTP_TIMEOUT)
        proxy: Proxy URL (default from VAULT_PROXY_URL)
        transport: Custom transport, used by tests
        headers: Extra default headers
    """
    all_headers = {"apikey": key, "Authorization": f"Bearer {key}"}
    if headers:
        all_headers.update(headers)
    kwargs = {}
    if transport is not None:
        kwargs["transport"] = transport
    else:
        kwargs["proxy"] = proxy or config.PROXY_URL
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        headers=all_headers,
        timeout=timeout or config.HTTP_TIMEOUT,
        **kwargs,
    )


def error_message(response: httpx.Response) -> str:
    """Extract the backend's own message from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "msg", "hint"):
            if body.get(key):
                return str(body[key])
    text = response.text.strip()
    if text:
        return text
    return f"HTTP {response.status_code} from {response.request.url.host}"
