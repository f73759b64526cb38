"""Source allocation models."""

from typing import List

from pydantic import BaseModel, Field

from .content import CandidateSource


class SourceAllocation(BaseModel):
    """Sources assigned to one audience for one topic."""

    topic: str = Field("", description="Topic the sources were allocated for")
    audience_id: str = Field(..., description="Audience receiving the sources")
    audience_name: str = Field("", description="Audience display name")
    sources: List[CandidateSource] = Field(
        default_factory=list, description="Allocated sources"
    )
    relevance_score: float = Field(
        0.0, ge=0.0, le=1.0, description="Relevance of the primary source"
    )
    has_reused_sources: bool = Field(
        False, description="Whether sources were shared with another audience"
    )


class AllocationStats(BaseModel):
    """Summary statistics for an allocation run."""

    total_allocations: int = 0
    total_unique_sources: int = 0
    total_reused_sources: int = 0
    average_sources_per_allocation: float = 0.0


class AllocationResult(BaseModel):
    """Result of allocating sources across all topics and audiences."""

    allocations: List[SourceAllocation] = Field(default_factory=list)
    reused_sources: List[str] = Field(
        default_factory=list, description="URLs allocated to more than one audience"
    )
    diversity_score: float = Field(
        100.0, ge=0.0, le=100.0, description="100 = no source reuse"
    )
    all_topics_have_sources: bool = True
    topics_without_sources: List[str] = Field(default_factory=list)
    stats: AllocationStats = Field(default_factory=AllocationStats)


class TopicSourceMapping(BaseModel):
    """Candidate sources that match one topic, best first."""

    topic: str
    matched_sources: List[CandidateSource] = Field(default_factory=list)
    relevance_score: float = Field(0.0, ge=0.0, le=1.0)
    topic_keywords: List[str] = Field(default_factory=list)

    @property
    def has_match(self) -> bool:
        return bool(self.matched_sources)
