"""Interface shared by all trending content providers."""

import asyncio
import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import aiohttp

from briefwise.models.content import CandidateSource

logger = logging.getLogger(__name__)


class SourceProvider(ABC):
    """A content provider that yields candidate sources.

    Subclasses implement ``_fetch``. Callers use ``fetch_sources``, which
    never raises: any failure is logged and the provider contributes an
    empty list.
    """

    id_prefix: str = ""

    def __init__(self, settings=None):
        """Initialize provider.

        Args:
            settings: Settings instance for configuration values
        """
        self.timeout = settings.source_fetch_timeout if settings else None
        self.user_agent = (
            settings.default_user_agent if settings else "Briefwise-Bot/1.0"
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable provider name, e.g. 'HackerNews'."""

    @abstractmethod
    async def _fetch(self, session: aiohttp.ClientSession) -> List[CandidateSource]:
        """Fetch and parse candidate sources. May raise."""

    async def fetch_sources(
        self, session: aiohttp.ClientSession
    ) -> List[CandidateSource]:
        """Fetch candidate sources, degrading to an empty list on failure.

        Args:
            session: HTTP session shared across providers

        Returns:
            List of candidate sources from this provider
        """
        logger.info(f"Fetching from {self.name}...")
        try:
            sources = await self._fetch(session)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error fetching {self.name} sources: {e}")
            return []
        except (KeyError, ValueError, TypeError, ET.ParseError) as e:
            logger.error(f"Data parsing error fetching {self.name} sources: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error fetching {self.name} sources: {e}")
            return []

        logger.info(f"Fetched {len(sources)} sources from {self.name}")
        return sources

    def _request_kwargs(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)
        kwargs: Dict[str, Any] = {"headers": request_headers}
        if self.timeout:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)
        return kwargs

    async def _get_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET a URL and decode the JSON body.

        Raises:
            aiohttp.ClientResponseError: On a non-2xx status
        """
        async with session.get(
            url, params=params, **self._request_kwargs(headers)
        ) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def _get_text(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        """GET a URL and return the body as text."""
        async with session.get(
            url, params=params, **self._request_kwargs(headers)
        ) as response:
            response.raise_for_status()
            return await response.text()
