from __future__ import annotations

import httpx
from loguru import logger

from .config import (
    HTTP_ACCEPT_LANGUAGE,
    HTTP_CONNECT_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_MAX_REDIRECTS,
    HTTP_MAX_BYTES,
    HTTP_USER_AGENT,
)


async def fetch_page(url: str) -> str | None:
    """
    Load a search-results page and return its raw HTML.

    Hardening:
      - httpx with timeouts and a redirect cap
      - byte cap on the body
      - any failure -> None (the caller reports it as an extraction error)
    """
    headers = {"User-Agent": HTTP_USER_AGENT, "Accept-Language": HTTP_ACCEPT_LANGUAGE}
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(HTTP_READ_TIMEOUT, connect=HTTP_CONNECT_TIMEOUT),
            max_redirects=HTTP_MAX_REDIRECTS,
        ) as client:
            r = await client.get(url, headers=headers)
            if r.status_code >= 400:
                logger.warning("Page fetch: HTTP {} for {}", r.status_code, url)
                return None

            if len(r.content) > HTTP_MAX_BYTES:
                logger.warning("Page fetch aborted: {} bytes > {} limit", len(r.content), HTTP_MAX_BYTES)
                return None

            return r.text if r.text and r.text.strip() else None
    except httpx.TimeoutException:
        logger.warning("Page fetch timeout for {}", url)
        return None
    except Exception as e:
        logger.warning("Page fetch exception for {}: {}", url, e)
        return None
