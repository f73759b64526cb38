"""Reddit client for top posts across a fixed set of subreddits."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from briefwise.clients.base import SourceProvider
from briefwise.models.content import CandidateSource, SourceCategory

logger = logging.getLogger(__name__)

SUBREDDITS = [
    "MachineLearning",
    "artificial",
    "programming",
    "forensics",
    "archaeology",
    "anthropology",
    "biology",
    "AskAnthropology",
    "paleontology",
    "BusinessIntelligence",
    "automation",
    "productmanagement",
    "productivity",
    "analytics",
    "datascience",
    "statistics",
]

TOP_URL = "https://www.reddit.com/r/{subreddit}/top.json"

# Reddit rejects many non-browser user agents on the public JSON endpoints
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)


class RedditProvider(SourceProvider):
    """Fetches top posts from each subreddit, one subreddit at a time.

    Subreddits are requested sequentially to stay under Reddit's anonymous
    rate limit. A failing subreddit is logged and skipped.
    """

    name = "Reddit"
    id_prefix = "reddit"

    def __init__(
        self,
        settings=None,
        subreddits: Optional[List[str]] = None,
        per_subreddit: int = 15,
    ):
        super().__init__(settings)
        self.subreddits = subreddits if subreddits is not None else list(SUBREDDITS)
        self.per_subreddit = per_subreddit

    async def _fetch(self, session: aiohttp.ClientSession) -> List[CandidateSource]:
        posts: List[CandidateSource] = []

        for subreddit in self.subreddits:
            try:
                data = await self._get_json(
                    session,
                    TOP_URL.format(subreddit=subreddit),
                    params={"t": "month", "limit": 25},
                    headers={"User-Agent": BROWSER_USER_AGENT},
                )
                children = data["data"]["children"][: self.per_subreddit]
                parsed = [self._parse_post(subreddit, child.get("data", {})) for child in children]
            except Exception as e:
                logger.warning(f"Error fetching r/{subreddit}: {e}")
                continue

            posts.extend(source for source in parsed if source)

        return posts

    def _parse_post(self, subreddit: str, post: Dict[str, Any]) -> Optional[CandidateSource]:
        if not post.get("title") or not post.get("id"):
            return None

        url = post.get("url") or ""
        if not url.startswith("http"):
            url = f"https://reddit.com{post.get('permalink', '')}"

        date = None
        if post.get("created_utc"):
            date = datetime.fromtimestamp(post["created_utc"], tz=timezone.utc).date().isoformat()

        return CandidateSource(
            id=f"{self.id_prefix}-{post['id']}",
            title=post["title"],
            url=url,
            author=post.get("author") or "Reddit User",
            publication=f"r/{subreddit}",
            date=date,
            category=SourceCategory.REDDIT,
            summary=f"{post.get('ups', 0)} upvotes",
        )
