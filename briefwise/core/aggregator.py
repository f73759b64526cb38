"""Concurrent aggregation of candidate sources from all registered providers."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from briefwise.clients.arxiv import ArxivProvider
from briefwise.clients.base import SourceProvider
from briefwise.clients.devto import DevToProvider
from briefwise.clients.github import GitHubProvider
from briefwise.clients.hackernews import HackerNewsProvider
from briefwise.clients.reddit import RedditProvider
from briefwise.core.cache import ResultCache
from briefwise.models.content import CandidateSource

logger = logging.getLogger(__name__)

CACHE_KEY = "trending-sources"


def default_providers(settings=None) -> List[SourceProvider]:
    """Build the standard provider set."""
    return [
        HackerNewsProvider(settings),
        ArxivProvider(settings),
        GitHubProvider(settings),
        RedditProvider(settings),
        DevToProvider(settings),
    ]


class SourceAggregator:
    """Fans out to every provider concurrently and concatenates the results.

    Results keep provider order and are not deduplicated: the same URL may
    appear twice under different categories.
    """

    def __init__(
        self,
        providers: Optional[List[SourceProvider]] = None,
        settings=None,
        cache: Optional[ResultCache[List[CandidateSource]]] = None,
    ):
        """Initialize aggregator.

        Args:
            providers: Providers to query, defaults to ``default_providers``
            settings: Settings instance for configuration values
            cache: Optional cache for aggregated results
        """
        self.settings = settings
        self.cache = cache
        self.providers: List[SourceProvider] = []
        for provider in providers if providers is not None else default_providers(settings):
            self.register_provider(provider)

    def register_provider(self, provider: SourceProvider):
        """Register a provider, replacing any existing one with the same name."""
        if not isinstance(provider, SourceProvider):
            raise ValueError("Provider must implement SourceProvider interface")

        existing = next((p for p in self.providers if p.name == provider.name), None)
        if existing:
            logger.warning(f"Replacing existing provider: {provider.name}")
            self.providers[self.providers.index(existing)] = provider
        else:
            self.providers.append(provider)

        logger.debug(f"Registered provider: {provider.name}")

    def unregister_provider(self, name: str) -> bool:
        for provider in self.providers:
            if provider.name == name:
                self.providers.remove(provider)
                logger.info(f"Unregistered provider: {name}")
                return True

        logger.warning(f"Provider not found for unregistration: {name}")
        return False

    def list_providers(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": provider.name,
                "id_prefix": provider.id_prefix,
                "class_name": provider.__class__.__name__,
            }
            for provider in self.providers
        ]

    async def fetch_all(self) -> List[CandidateSource]:
        """Fetch candidate sources from every provider.

        Never raises. A failing provider contributes nothing; an unexpected
        failure of the aggregation itself yields an empty list.

        Returns:
            Combined list of candidate sources in provider order
        """
        try:
            if self.cache is not None:
                cached = self.cache.get(CACHE_KEY)
                if cached is not None:
                    logger.info(f"Using {len(cached)} cached trending sources")
                    return list(cached)

            sources = await self._fetch_from_providers()

            if self.cache is not None and sources:
                self.cache.set(CACHE_KEY, sources)

            logger.info(
                f"Fetched {len(sources)} trending sources from {len(self.providers)} providers"
            )
            return sources

        except Exception as e:
            logger.error(f"Unexpected error aggregating trending sources: {e}")
            return []

    async def _fetch_from_providers(self) -> List[CandidateSource]:
        async with aiohttp.ClientSession() as session:
            results = await asyncio.gather(
                *(provider.fetch_sources(session) for provider in self.providers),
                return_exceptions=True,
            )

        sources: List[CandidateSource] = []
        for provider, result in zip(self.providers, results):
            if isinstance(result, BaseException):
                logger.error(f"Provider {provider.name} failed: {result}")
                continue
            sources.extend(result)

        return sources
