"""Dev.to client for top AI articles."""

import logging
from typing import List

import aiohttp

from briefwise.clients.base import SourceProvider
from briefwise.models.content import CandidateSource, SourceCategory

logger = logging.getLogger(__name__)

ARTICLES_URL = "https://dev.to/api/articles"


class DevToProvider(SourceProvider):
    """Fetches the week's top articles tagged 'ai' from Dev.to."""

    name = "Dev.to"
    id_prefix = "devto"

    def __init__(self, settings=None, max_results: int = 8):
        super().__init__(settings)
        self.max_results = max_results

    async def _fetch(self, session: aiohttp.ClientSession) -> List[CandidateSource]:
        articles = await self._get_json(
            session, ARTICLES_URL, params={"tag": "ai", "top": 7}
        )
        if not isinstance(articles, list):
            raise ValueError(f"Unexpected Dev.to response type: {type(articles).__name__}")

        sources = []
        for article in articles[: self.max_results]:
            published = article.get("published_at")
            sources.append(
                CandidateSource(
                    id=f"{self.id_prefix}-{article['id']}",
                    title=article["title"],
                    url=article["url"],
                    author=(article.get("user") or {}).get("name"),
                    publication="Dev.to",
                    date=published[:10] if published else None,
                    category=SourceCategory.DEV,
                    summary=article.get("description") or None,
                )
            )

        return sources
