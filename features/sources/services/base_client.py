import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import aiohttp

from core.config import settings
from features.common.models.reading_types import Provenance, Reading
from features.common.exceptions.source_exceptions import (
    FeedUnavailableError,
    MalformedPayloadError
)

class FeedClient:
    """HTTP plumbing shared by every upstream client."""

    name: str = "feed"

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = settings.request_timeout
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _init_session(self) -> aiohttp.ClientSession:
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        session = await self._init_session()
        try:
            async with session.get(url, params=params) as response:
                response.raise_for_status()
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FeedUnavailableError(self.name, f"request to {url} failed: {e}") from e
        except ValueError as e:
            raise MalformedPayloadError(self.name, f"invalid JSON from {url}: {e}") from e

    async def _get_text(self, url: str) -> str:
        session = await self._init_session()
        try:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FeedUnavailableError(self.name, f"request to {url} failed: {e}") from e

class SourceAdapter(FeedClient, ABC):
    """One upstream feed translated into partially populated Readings."""

    provenance: Provenance = Provenance.LOCAL_FALLBACK

    @abstractmethod
    async def fetch(self) -> List[Reading]:
        """Fetch the feed. Raises SourceError when nothing usable came back."""
