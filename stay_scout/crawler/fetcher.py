# stay_scout/crawler/fetcher.py
"""
Fetcher module: single-shot HTTP GET of a listing page with identity headers and a deadline.
"""
from __future__ import annotations

import asyncio
from typing import Dict, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from stay_scout.config import Identity, ServerConfig
from stay_scout.crawler.models import FetchRequest, RawDocument
from stay_scout.errors import FetchTimeoutError, NetworkError
from stay_scout.logger import logger

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"


class DocumentFetcher:
    """Fetches one page per call. No retries: a failed fetch fails the caller."""

    def __init__(self, session: ClientSession, config: ServerConfig) -> None:
        self.session = session
        self.config = config

    def headers_for(self, identity: Optional[Identity] = None) -> Dict[str, str]:
        """Identity header plus the standard accept headers."""
        return {
            "User-Agent": self.config.user_agent_for(identity),
            "Accept": _ACCEPT,
            "Accept-Language": self.config.accept_language,
            "Cache-Control": "no-cache",
        }

    def build_request(
        self,
        url: str,
        timeout: Optional[float] = None,
        identity: Optional[Identity] = None,
    ) -> FetchRequest:
        return FetchRequest(
            url=url,
            headers=self.headers_for(identity),
            timeout=timeout if timeout is not None else self.config.timeout,
        )

    async def fetch(
        self,
        url: str,
        timeout: Optional[float] = None,
        identity: Optional[Identity] = None,
    ) -> RawDocument:
        """
        Fetch *url* and return its body.

        Raises NetworkError on a non-2xx status or a connection failure and
        FetchTimeoutError when the deadline elapses.
        """
        request = self.build_request(url, timeout, identity)
        logger.debug("GET %s (timeout %.1fs)", request.url, request.timeout)
        try:
            async with self.session.get(
                request.url,
                headers=request.headers,
                timeout=ClientTimeout(total=request.timeout),
                raise_for_status=False,
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise NetworkError(
                        f"HTTP {resp.status}: {resp.reason}",
                        {"url": request.url, "status": resp.status},
                    )
                text = await resp.text(errors="replace")
                return RawDocument(request.url, text)
        except asyncio.TimeoutError as exc:
            raise FetchTimeoutError(
                f"Request timeout after {int(request.timeout * 1000)}ms", {"url": request.url}
            ) from exc
        except ClientError as exc:
            raise NetworkError(str(exc) or type(exc).__name__, {"url": request.url}) from exc
