"""
Remote job listings proxied from the Remotive public API.

The payload is passed through untouched; browsers and CDNs may cache it for
five minutes.
"""
from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from skillhire.config import Settings
from skillhire.utils.errors import ExternalServiceException
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)

CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=600"
USER_AGENT = "SkillHire/1.0"


class RemoteJobsFeed:
    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.url = settings.remote_jobs_url
        self._client = http_client or httpx.AsyncClient(timeout=10.0)

    async def fetch(self) -> Dict[str, Any]:
        try:
            response = await self._client.get(
                self.url,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("remote_jobs_fetch_failed", url=self.url)
            raise ExternalServiceException("remotive")

    async def aclose(self) -> None:
        await self._client.aclose()


def get_remote_jobs_feed(request: Request) -> RemoteJobsFeed:
    return request.app.state.remote_jobs
