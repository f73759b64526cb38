"""GitHub client for trending AI/ML repositories."""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import aiohttp

from briefwise.clients.base import SourceProvider
from briefwise.models.content import CandidateSource, SourceCategory

logger = logging.getLogger(__name__)

SEARCH_URL = "https://api.github.com/search/repositories"


class GitHubProvider(SourceProvider):
    """Searches GitHub for popular, recently active AI/ML Python repositories."""

    name = "GitHub"
    id_prefix = "github"

    def __init__(self, settings=None, window_days: int = 60, max_results: int = 15):
        super().__init__(settings)
        self.token = settings.github_token if settings else None
        self.window_days = window_days
        self.max_results = max_results

    def build_query(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        since = (now - timedelta(days=self.window_days)).date().isoformat()
        return (
            '(ai OR ml OR "machine learning" OR automation OR llm OR neural) '
            f"language:python stars:>1000 (created:>{since} OR pushed:>{since})"
        )

    async def _fetch(self, session: aiohttp.ClientSession) -> List[CandidateSource]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        data = await self._get_json(
            session,
            SEARCH_URL,
            params={
                "q": self.build_query(),
                "sort": "stars",
                "order": "desc",
                "per_page": 25,
            },
            headers=headers,
        )

        repos = []
        for repo in data.get("items", [])[: self.max_results]:
            description = repo.get("description")
            pushed = repo.get("pushed_at") or repo.get("created_at")
            repos.append(
                CandidateSource(
                    id=f"{self.id_prefix}-{repo['id']}",
                    title=f"{repo['name']} - {description or 'An AI/ML project'}",
                    url=repo["html_url"],
                    author=(repo.get("owner") or {}).get("login"),
                    publication="GitHub",
                    date=pushed[:10] if pushed else None,
                    category=SourceCategory.GITHUB,
                    summary=description or "Open-source AI/ML tool",
                )
            )

        return repos
