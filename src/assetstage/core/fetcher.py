"""Bundle download over HTTP.

One blocking request per fetch. Redirects are followed (release downloads
usually redirect to a CDN); timeouts are httpx's defaults. Failures are never
retried.
"""

import logging

import httpx

from assetstage.errors import FetchError

logger = logging.getLogger(__name__)


def fetch(url: str, *, client: httpx.Client | None = None) -> bytes:
    """Download a bundle.

    Args:
        url: Bundle URL
        client: Optional httpx client to send the request with. A temporary
            client is created when omitted.

    Returns:
        Response body

    Raises:
        FetchError: On transport errors, invalid URLs or non-2xx responses
    """
    logger.info(f"Fetching {url}")

    try:
        if client is None:
            with httpx.Client(follow_redirects=True) as own_client:
                response = own_client.get(url)
        else:
            response = client.get(url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise FetchError(url, f"HTTP {e.response.status_code}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise FetchError(url, str(e) or type(e).__name__) from e

    data = response.content
    logger.debug(f"Fetched {len(data)} bytes from {url}")
    return data
