"""
Citation verification for generated newsletters.

Checks that each audience section cites the sources it was allocated and
scores how much sources are reused across sections. Everything here is pure
and synchronous so it can run standalone on a saved newsletter.
"""

import logging
import re
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from briefwise.models.allocation import SourceAllocation
from briefwise.models.content import AudienceSection, Newsletter
from briefwise.models.verification import (
    DiversityVerificationResult,
    NewsletterVerificationResult,
    SectionVerificationResult,
)

logger = logging.getLogger(__name__)

# Skips URLs that open an href value; those are collected from the parsed links
BARE_URL_PATTERN = re.compile(r"(?<!href=[\"'])https?://[^\s<>\"')\]]+", re.IGNORECASE)
WWW_PREFIX = re.compile(r"^www\.")

# Diversity below this triggers a regeneration recommendation
LOW_DIVERSITY_THRESHOLD = 70


def extract_urls_from_content(content: str) -> List[str]:
    """Collect cited URLs from HTML or Markdown content.

    Link attributes come first, then bare URLs from the raw content,
    including Markdown autolinks such as ``<https://example.com>``. An href
    value is never counted twice.

    Returns:
        De-duplicated URLs in first-seen order
    """
    if not content:
        return []

    soup = BeautifulSoup(content, "html.parser")
    urls: List[str] = []

    for tag in soup.find_all(href=True):
        href = tag.get("href")
        if isinstance(href, str) and href.startswith("http") and href not in urls:
            urls.append(href)

    # html.parser reads an autolink as a tag, so bare URLs come from the raw text
    for url in BARE_URL_PATTERN.findall(content):
        if url not in urls:
            urls.append(url)

    return urls


def normalize_url(url: str) -> str:
    """Normalize a URL for comparison.

    Drops a leading ``www.`` and lowercases the host, strips one trailing
    slash from the path, and keeps scheme, path casing and query string.
    Query parameters are not reordered and escapes are not decoded.
    """
    try:
        parsed = urlsplit(url)
        host = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
        if not parsed.scheme or not host:
            raise ValueError(f"Not an absolute URL: {url!r}")
    except ValueError:
        return WWW_PREFIX.sub("", _strip_trailing_slash(url.lower()))

    host = WWW_PREFIX.sub("", host.lower())
    path = _strip_trailing_slash(parsed.path)
    query = f"?{parsed.query}" if parsed.query else ""
    return f"{parsed.scheme}://{host}{path}{query}"


def _strip_trailing_slash(value: str) -> str:
    return value[:-1] if value.endswith("/") else value


def urls_match(url1: str, url2: str) -> bool:
    return normalize_url(url1) == normalize_url(url2)


def find_matching_url(url: str, candidates: List[str]) -> Optional[str]:
    """Return the first candidate that matches ``url`` after normalization."""
    normalized = normalize_url(url)
    return next((c for c in candidates if normalize_url(c) == normalized), None)


def _allocated_urls(audience_id: str, allocations: List[SourceAllocation]) -> List[str]:
    return [
        source.url
        for allocation in allocations
        if allocation.audience_id == audience_id
        for source in allocation.sources
    ]


def _cited_urls(section: AudienceSection) -> List[str]:
    cited = extract_urls_from_content(section.content)
    for source in section.sources:
        if source.url not in cited:
            cited.append(source.url)
    return cited


def verify_section_citations(
    section: AudienceSection, allocations: List[SourceAllocation]
) -> SectionVerificationResult:
    """Verify one audience section against the sources allocated to it.

    A section with nothing allocated is always valid. Otherwise it must cite
    at least one allocated source. Unauthorized and missed citations are
    reported as issues.
    """
    allocated = _allocated_urls(section.audience_id, allocations)
    cited = _cited_urls(section)

    valid: List[str] = []
    unauthorized: List[str] = []
    for url in cited:
        if find_matching_url(url, allocated) is not None:
            valid.append(url)
        else:
            unauthorized.append(url)

    missed = [
        allocated_url
        for allocated_url in allocated
        if not any(urls_match(url, allocated_url) for url in cited)
    ]

    issues = []
    name = section.audience_name
    if allocated and not valid:
        issues.append(f'Section "{name}" does not cite any allocated sources')

    if unauthorized:
        listed = ", ".join(unauthorized[:3])
        more = "..." if len(unauthorized) > 3 else ""
        issues.append(
            f'Section "{name}" cites {len(unauthorized)} unauthorized source(s): {listed}{more}'
        )

    # Unused allocations only matter when there was a choice
    if missed and len(allocated) > 1:
        issues.append(
            f'Section "{name}" could have cited {len(missed)} more allocated source(s)'
        )

    return SectionVerificationResult(
        audience_id=section.audience_id,
        audience_name=section.audience_name,
        allocated_urls=allocated,
        cited_urls=cited,
        valid_citations=valid,
        missed_allocations=missed,
        unauthorized_citations=unauthorized,
        is_valid=bool(valid) or not allocated,
        issues=issues,
    )


def verify_source_diversity(
    section_results: List[SectionVerificationResult],
) -> DiversityVerificationResult:
    """Find normalized URLs cited by more than one audience and score reuse.

    The score is 100 without duplicates, otherwise
    ``max(0, 100 - duplicated / unique * 100)``.
    """
    urls_by_audience: Dict[str, List[str]] = {}
    for result in section_results:
        audience_urls = urls_by_audience.setdefault(result.audience_id, [])
        for url in result.cited_urls:
            normalized = normalize_url(url)
            if normalized not in audience_urls:
                audience_urls.append(normalized)

    audiences_by_url: Dict[str, List[str]] = {}
    for audience_id, urls in urls_by_audience.items():
        for url in urls:
            audiences_by_url.setdefault(url, []).append(audience_id)

    duplicated = []
    issues = []
    for url, audience_ids in audiences_by_url.items():
        if len(audience_ids) > 1:
            duplicated.append(url)
            issues.append(
                f'URL "{url[:60]}..." is cited in {len(audience_ids)} sections: '
                f"{', '.join(audience_ids)}"
            )

    unique_count = len(audiences_by_url)
    diversity_score = 100.0
    if unique_count and duplicated:
        diversity_score = max(0.0, 100 - (len(duplicated) / unique_count) * 100)

    return DiversityVerificationResult(
        duplicated_urls=duplicated,
        unique_url_count=unique_count,
        total_citations=sum(len(r.cited_urls) for r in section_results),
        diversity_score=diversity_score,
        is_valid=not duplicated,
        issues=issues,
    )


def verify_newsletter(
    newsletter: Newsletter, allocations: List[SourceAllocation]
) -> NewsletterVerificationResult:
    """Verify every section of a newsletter plus cross-section diversity.

    Args:
        newsletter: The generated newsletter
        allocations: Source allocations the newsletter was generated from

    Returns:
        Complete verification result with issues and recommendations
    """
    section_results = [
        verify_section_citations(section, allocations)
        for section in newsletter.audience_sections
    ]
    diversity = verify_source_diversity(section_results)

    all_issues = [issue for result in section_results for issue in result.issues]
    all_issues.extend(diversity.issues)

    recommendations = []
    uncited = [r.audience_name for r in section_results if r.allocated_urls and not r.valid_citations]
    if uncited:
        recommendations.append(
            f"Regenerate sections for: {', '.join(uncited)} - they don't cite their allocated sources"
        )

    unauthorized = [r.audience_name for r in section_results if r.unauthorized_citations]
    if unauthorized:
        recommendations.append(
            f"Review unauthorized sources in: {', '.join(unauthorized)} - "
            "they cite sources not allocated to them"
        )

    if diversity.diversity_score < LOW_DIVERSITY_THRESHOLD:
        recommendations.append(
            "Consider regenerating newsletter - source diversity is low "
            f"({diversity.diversity_score:.0f}%). Same sources appear across multiple sections."
        )

    is_valid = all(r.is_valid for r in section_results) and diversity.is_valid
    logger.debug(
        f"Verified {len(section_results)} sections: valid={is_valid}, "
        f"{len(all_issues)} issues, diversity {diversity.diversity_score:.0f}%"
    )

    return NewsletterVerificationResult(
        is_valid=is_valid,
        section_results=section_results,
        diversity_result=diversity,
        all_issues=all_issues,
        recommendations=recommendations,
    )


def quick_verify(newsletter: Newsletter, allocations: List[SourceAllocation]) -> bool:
    """Check only that each section with allocations cites one of them."""
    for section in newsletter.audience_sections:
        allocated = _allocated_urls(section.audience_id, allocations)
        if not allocated:
            continue

        cited = _cited_urls(section)
        if not any(urls_match(url, a) for a in allocated for url in cited):
            return False

    return True
