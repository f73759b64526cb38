"""Citation verification result models."""

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field


class SectionVerificationResult(BaseModel):
    """Outcome of verifying one audience section's citations."""

    audience_id: str
    audience_name: str
    allocated_urls: List[str] = Field(
        default_factory=list, description="URLs allocated to this audience"
    )
    cited_urls: List[str] = Field(
        default_factory=list, description="URLs cited in content or source list"
    )
    valid_citations: List[str] = Field(
        default_factory=list, description="Cited URLs matching an allocation"
    )
    missed_allocations: List[str] = Field(
        default_factory=list, description="Allocated URLs never cited"
    )
    unauthorized_citations: List[str] = Field(
        default_factory=list, description="Cited URLs that were not allocated"
    )
    is_valid: bool
    issues: List[str] = Field(default_factory=list)


class DiversityVerificationResult(BaseModel):
    """Outcome of checking source reuse across audience sections."""

    duplicated_urls: List[str] = Field(
        default_factory=list, description="Normalized URLs cited by several audiences"
    )
    unique_url_count: int = 0
    total_citations: int = 0
    diversity_score: float = Field(100.0, ge=0.0, le=100.0)
    is_valid: bool = True
    issues: List[str] = Field(default_factory=list)


class NewsletterVerificationResult(BaseModel):
    """Complete verification result for a newsletter."""

    is_valid: bool
    section_results: List[SectionVerificationResult] = Field(default_factory=list)
    diversity_result: DiversityVerificationResult
    all_issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    verified_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
