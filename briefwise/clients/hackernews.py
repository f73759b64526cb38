"""Hacker News client for trending AI stories."""

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

import aiohttp

from briefwise.clients.base import SourceProvider
from briefwise.models.content import CandidateSource, SourceCategory

logger = logging.getLogger(__name__)

TOP_STORIES_URL = "https://hacker-news.firebaseio.com/v0/topstories.json"
ITEM_URL = "https://hacker-news.firebaseio.com/v0/item/{story_id}.json"

AI_KEYWORDS = re.compile(
    r"\b(ai|ml|machine learning|neural|deep learning|llm|language model|gpt|"
    r"claude|automation|robotics|computer vision|nlp|transformer|diffusion|"
    r"agent|api|tool)\b",
    re.IGNORECASE,
)


class HackerNewsProvider(SourceProvider):
    """Fetches top Hacker News stories and keeps the AI-related ones."""

    name = "HackerNews"
    id_prefix = "hn"

    def __init__(self, settings=None, max_candidates: int = 50, max_results: int = 12):
        super().__init__(settings)
        self.max_candidates = max_candidates
        self.max_results = max_results

    async def _fetch(self, session: aiohttp.ClientSession) -> List[CandidateSource]:
        story_ids = await self._get_json(session, TOP_STORIES_URL)
        story_ids = list(story_ids or [])[: self.max_candidates]

        # Items are requested one at a time; a bad item is skipped
        stories: List[CandidateSource] = []
        for story_id in story_ids:
            try:
                story = await self._get_json(
                    session, ITEM_URL.format(story_id=story_id)
                )
                source = self._parse_story(story_id, story)
            except Exception as e:
                logger.warning(f"Error fetching HackerNews story {story_id}: {e}")
                continue

            if source:
                stories.append(source)

        ai_stories = [s for s in stories if AI_KEYWORDS.search(s.title)]
        logger.debug(
            f"{len(ai_stories)} of {len(stories)} HackerNews stories are AI-related"
        )
        return ai_stories[: self.max_results]

    def _parse_story(self, story_id, story) -> Optional[CandidateSource]:
        if not isinstance(story, dict) or not story.get("title") or not story.get("url"):
            return None

        date = None
        if story.get("time"):
            date = datetime.fromtimestamp(story["time"], tz=timezone.utc).date().isoformat()

        return CandidateSource(
            id=f"{self.id_prefix}-{story_id}",
            title=story["title"],
            url=story["url"],
            author=story.get("by"),
            publication="HackerNews",
            date=date,
            category=SourceCategory.HACKERNEWS,
        )
