"""HTTP retrieval of guide pages and the search index.

One GET per call, bounded by a timeout, no caching and no retries: any
transport error, timeout or non-2xx status surfaces as ``FetchError``.
"""

import httpx
from loguru import logger

from fieldguide_mcp.errors import FetchError

DEFAULT_TIMEOUT = 15.0


def new_client(
    timeout: float = DEFAULT_TIMEOUT, user_agent: str = "fieldguide-mcp/1.0"
) -> httpx.AsyncClient:
    """Create the shared client used for every guide request."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": user_agent},
    )


async def _get(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    headers: dict[str, str] | None,
) -> str:
    try:
        resp = await client.get(url, timeout=timeout, headers=headers)
    except httpx.TimeoutException as e:
        raise FetchError(url, f"timed out after {timeout}s") from e
    except httpx.HTTPError as e:
        raise FetchError(url, str(e) or type(e).__name__) from e

    if not resp.is_success:
        raise FetchError(url, f"HTTP {resp.status_code}")
    return resp.text


async def fetch_text(
    url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    headers: dict[str, str] | None = None,
) -> str:
    """GET *url* and return the body text.

    Uses *client* when given, otherwise a short-lived client for this call.
    """
    logger.debug(f"GET {url}")
    if client is not None:
        return await _get(client, url, timeout, headers)
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own:
        return await _get(own, url, timeout, headers)


async def fetch_html(
    url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """GET a guide page."""
    return await fetch_text(url, client=client, timeout=timeout)
