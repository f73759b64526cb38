"""arXiv client for recent AI/ML research papers."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import aiohttp

from briefwise.clients.base import SourceProvider
from briefwise.models.content import CandidateSource, SourceCategory

logger = logging.getLogger(__name__)

API_URL = "https://export.arxiv.org/api/query"
CATEGORIES = ["cs.AI", "stat.ML", "cs.LG", "cs.CV", "q-bio"]
ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}


class ArxivProvider(SourceProvider):
    """Queries the arXiv Atom API for papers submitted in a recent window."""

    name = "ArXiv"
    id_prefix = "arxiv"

    def __init__(
        self,
        settings=None,
        window_days: int = 60,
        max_query_results: int = 30,
        max_results: int = 15,
    ):
        super().__init__(settings)
        self.window_days = window_days
        self.max_query_results = max_query_results
        self.max_results = max_results
        self.default_summary = f"AI/ML Research Paper (last {window_days} days)"

    def build_query_url(self, now: Optional[datetime] = None) -> str:
        """Build the query URL for the submission window ending at ``now``."""
        now = now or datetime.now(timezone.utc)
        start = (now - timedelta(days=self.window_days)).strftime("%Y%m%d") + "0000"
        end = now.strftime("%Y%m%d") + "2359"

        # '+' separators are part of arXiv's query syntax and must not be escaped
        categories = "+OR+".join(f"cat:{c}" for c in CATEGORIES)
        query = f"{categories}+AND+submittedDate:[{start}+TO+{end}]"
        return (
            f"{API_URL}?search_query={query}"
            f"&start=0&max_results={self.max_query_results}"
            f"&sortBy=submittedDate&sortOrder=descending"
        )

    async def _fetch(self, session: aiohttp.ClientSession) -> List[CandidateSource]:
        xml_text = await self._get_text(session, self.build_query_url())
        return self.parse_feed(xml_text)

    def parse_feed(self, xml_text: str) -> List[CandidateSource]:
        """Parse an Atom feed into candidate sources."""
        root = ET.fromstring(xml_text)
        papers = []

        for entry in root.findall("atom:entry", ATOM_NS)[: self.max_results]:
            title = self._text(entry, "atom:title")
            entry_id = self._text(entry, "atom:id")
            if not title or not entry_id:
                continue

            url = entry_id
            for link in entry.findall("atom:link", ATOM_NS):
                if link.get("rel") == "alternate" and link.get("href"):
                    url = link.get("href")
                    break

            author = self._text(entry, "atom:author/atom:name")
            published = self._text(entry, "atom:published")
            abstract = self._text(entry, "atom:summary")

            papers.append(
                CandidateSource(
                    id=f"{self.id_prefix}-{entry_id.rstrip('/').rsplit('/', 1)[-1]}",
                    title=title,
                    url=url,
                    author=author,
                    publication="ArXiv",
                    date=published[:10] if published else None,
                    category=SourceCategory.ARXIV,
                    summary=abstract[:300] if abstract else self.default_summary,
                )
            )

        return papers

    @staticmethod
    def _text(entry: ET.Element, path: str) -> Optional[str]:
        element = entry.find(path, ATOM_NS)
        if element is None or not element.text:
            return None
        return " ".join(element.text.split())
