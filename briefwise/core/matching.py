"""Keyword matching of topics to sources and per-audience source allocation."""

import logging
import re
from typing import Dict, List, Set, Tuple

from briefwise.models.allocation import (
    AllocationResult,
    AllocationStats,
    SourceAllocation,
    TopicSourceMapping,
)
from briefwise.models.content import AudienceConfig, CandidateSource

logger = logging.getLogger(__name__)

TITLE_WEIGHT = 0.5
CONTENT_WEIGHT = 0.3
URL_WEIGHT = 0.2

# A source "matches" a topic at or above this score
MATCH_THRESHOLD = 0.3
# Allocation ignores sources below this score
MIN_ALLOCATION_SCORE = 0.1

STOP_WORDS = frozenset(
    """
    a an the and or but in on at to for of with by from as is was are were
    been be have has had do does did will would could should may might must
    shall can need dare ought use uses used using case cases how what when
    where why which who whom this that these those it its they them their we
    us our you your
    """.split()
)


def extract_keywords(topic: str) -> List[str]:
    """Lowercased topic words, minus punctuation, stop words and short words."""
    cleaned = re.sub(r"[^\w\s-]", " ", topic.lower())
    return [word for word in cleaned.split() if len(word) > 2 and word not in STOP_WORDS]


def _count_keyword_matches(text: str, keywords: List[str]) -> int:
    if not text:
        return 0
    lower_text = text.lower()
    return sum(1 for keyword in keywords if keyword in lower_text)


def calculate_relevance_score(topic: str, source: CandidateSource) -> float:
    """Score how well a source covers a topic, from 0 to 1.

    Title matches weigh 0.5, summary matches 0.3 and URL matches 0.2, each
    scaled by the fraction of topic keywords found.
    """
    keywords = extract_keywords(topic)
    if not keywords:
        return 0.0

    score = 0.0
    title_matches = _count_keyword_matches(source.title, keywords)
    if title_matches:
        score += TITLE_WEIGHT * (title_matches / len(keywords))

    content_matches = _count_keyword_matches(source.summary or "", keywords)
    if content_matches:
        score += CONTENT_WEIGHT * min(content_matches / len(keywords), 1)

    url_matches = _count_keyword_matches(source.url, keywords)
    if url_matches:
        score += URL_WEIGHT * (url_matches / len(keywords))

    return min(score, 1.0)


def match_topic(topic: str, sources: List[CandidateSource]) -> TopicSourceMapping:
    """Find the sources scoring at or above the match threshold for a topic."""
    scored = sorted(
        ((calculate_relevance_score(topic, source), source) for source in sources),
        key=lambda pair: pair[0],
        reverse=True,
    )
    matched = [(score, source) for score, source in scored if score >= MATCH_THRESHOLD]

    return TopicSourceMapping(
        topic=topic,
        matched_sources=[source for _, source in matched],
        relevance_score=matched[0][0] if matched else 0.0,
        topic_keywords=extract_keywords(topic),
    )


def allocate_sources_to_audiences(
    topics: List[str],
    audiences: List[AudienceConfig],
    sources: List[CandidateSource],
    sources_per_allocation: int = 2,
    enforce_diversity: bool = True,
) -> AllocationResult:
    """Assign sources to every topic and audience pair.

    Each pair first takes relevant sources no audience has used yet, then
    sources used by other audiences, and finally the single best source.
    With ``enforce_diversity`` off the first pass is skipped and audiences
    may share sources freely.

    Args:
        topics: Topics to allocate sources for
        audiences: Audience segments receiving sources
        sources: Candidate sources to allocate from
        sources_per_allocation: Sources wanted per topic and audience pair
        enforce_diversity: Prefer sources not yet given to any audience

    Returns:
        Allocation result with reuse statistics and a diversity score
    """
    logger.info(
        f"Allocating {len(sources)} sources to {len(topics)} topics x {len(audiences)} audiences"
    )

    allocations: List[SourceAllocation] = []
    allocated_urls: Set[str] = set()
    audience_urls: Dict[str, Set[str]] = {audience.id: set() for audience in audiences}
    reused_urls: List[str] = []

    def mark_reused(url: str):
        if url not in reused_urls:
            reused_urls.append(url)

    topic_scores: Dict[str, List[Tuple[float, CandidateSource]]] = {}
    for topic in topics:
        topic_scores[topic] = sorted(
            ((calculate_relevance_score(topic, source), source) for source in sources),
            key=lambda pair: pair[0],
            reverse=True,
        )

    for topic in topics:
        scored = topic_scores[topic]

        for audience in audiences:
            used_by_audience = audience_urls[audience.id]
            chosen: List[Tuple[float, CandidateSource]] = []
            has_reused = False

            if enforce_diversity:
                for score, source in scored:
                    if len(chosen) >= sources_per_allocation:
                        break
                    if score < MIN_ALLOCATION_SCORE:
                        continue
                    if source.url not in allocated_urls:
                        chosen.append((score, source))
                        allocated_urls.add(source.url)
                        used_by_audience.add(source.url)

            # Anything this audience has not used yet, even if others have
            for score, source in scored:
                if len(chosen) >= sources_per_allocation:
                    break
                if score < MIN_ALLOCATION_SCORE:
                    continue
                if source.url not in used_by_audience:
                    chosen.append((score, source))
                    used_by_audience.add(source.url)
                    if source.url in allocated_urls:
                        mark_reused(source.url)
                        has_reused = True
                    allocated_urls.add(source.url)

            if not chosen and scored and scored[0][0] >= MIN_ALLOCATION_SCORE:
                best_score, best = scored[0]
                chosen.append((best_score, best))
                used_by_audience.add(best.url)
                mark_reused(best.url)
                has_reused = True

            allocations.append(
                SourceAllocation(
                    topic=topic,
                    audience_id=audience.id,
                    audience_name=audience.name,
                    sources=[source for _, source in chosen],
                    relevance_score=chosen[0][0] if chosen else 0.0,
                    has_reused_sources=has_reused,
                )
            )

    unique_urls = {source.url for allocation in allocations for source in allocation.sources}
    topics_without_sources = [
        topic
        for topic in topics
        if all(not a.sources for a in allocations if a.topic == topic)
    ]
    filled = [a for a in allocations if a.sources]

    if reused_urls:
        diversity_score = max(0.0, 100 - (len(reused_urls) / len(unique_urls)) * 100)
    else:
        diversity_score = 100.0

    result = AllocationResult(
        allocations=allocations,
        reused_sources=reused_urls,
        diversity_score=diversity_score,
        all_topics_have_sources=not topics_without_sources,
        topics_without_sources=topics_without_sources,
        stats=AllocationStats(
            total_allocations=len(filled),
            total_unique_sources=len(unique_urls),
            total_reused_sources=len(reused_urls),
            average_sources_per_allocation=(
                sum(len(a.sources) for a in filled) / len(filled) if filled else 0.0
            ),
        ),
    )

    logger.info(
        f"Allocation complete. Allocations: {len(filled)}, "
        f"unique sources: {len(unique_urls)}, diversity: {diversity_score:.0f}%"
    )
    return result


def get_allocations_for_audience(
    audience_id: str, allocations: List[SourceAllocation]
) -> List[SourceAllocation]:
    return [a for a in allocations if a.audience_id == audience_id]


def build_allocation_context(allocations: List[SourceAllocation]) -> str:
    """Render per-audience source assignments as prompt instructions."""
    by_audience: Dict[Tuple[str, str], List[SourceAllocation]] = {}
    for allocation in allocations:
        key = (allocation.audience_id, allocation.audience_name)
        by_audience.setdefault(key, []).append(allocation)

    sections = []
    for (audience_id, audience_name), audience_allocations in by_audience.items():
        lines = [
            f"## {(audience_name or audience_id).upper()} SECTION ({audience_id})",
            "MANDATORY: Use ONLY the sources listed below for this audience section.",
            "",
        ]
        for allocation in audience_allocations:
            lines.append(f'### Topic: "{allocation.topic}"')
            if allocation.sources:
                lines.append("ASSIGNED SOURCES (must cite at least one):")
                for i, source in enumerate(allocation.sources, 1):
                    lines.append(f"  {i}. [{str(source.category).upper()}] {source.title}")
                    lines.append(f"     URL: {source.url}")
                    if source.summary:
                        lines.append(f"     Excerpt: {source.summary[:300]}")
            else:
                lines.append(
                    "NO SOURCES ASSIGNED - Do not write about this topic for this audience."
                )
            lines.append("")
        sections.append("\n".join(lines))

    header = (
        "## MANDATORY SOURCE ASSIGNMENTS\n\n"
        "Each audience section MUST use ONLY its assigned sources. "
        "DO NOT reuse sources across sections.\n"
        "If a topic has no assigned sources for an audience, do not write about "
        "that topic for that audience.\n\n"
    )
    return header + "\n---\n".join(sections)
