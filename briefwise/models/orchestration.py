"""Models exchanged between the orchestrator and its collaborators."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .allocation import AllocationResult, SourceAllocation
from .content import AudienceConfig, CandidateSource, Newsletter
from .verification import NewsletterVerificationResult


class OrchestratorStage(str, Enum):
    """Named phases of the generation state machine."""

    INIT = "init"
    PRE_GENERATION = "pre-generation"
    SOURCE_ALLOCATION = "source-allocation"
    GENERATION = "generation"
    VERIFICATION = "verification"
    COMPLETE = "complete"
    ERROR = "error"


class ValidationConfidence(str, Enum):
    """How sure topic validation is about a topic being real.

    ``NONE`` marks a topic as fictional. ``UNKNOWN`` means validation could
    not run and the topic is treated as valid.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"
    UNKNOWN = "unknown"


class TopicValidationResult(BaseModel):
    """Validation outcome for a single topic."""

    topic: str
    is_valid: bool
    confidence: ValidationConfidence
    error: Optional[str] = None
    suggested_alternative: Optional[str] = None

    @property
    def is_fictional(self) -> bool:
        return not self.is_valid and self.confidence == ValidationConfidence.NONE


class PreGenerationParams(BaseModel):
    """Input to the pre-generation pipeline."""

    topics: List[str]
    audiences: List[AudienceConfig] = Field(default_factory=list)
    skip_validation: bool = False
    skip_enrichment: bool = False
    enforce_source_diversity: bool = True


class PreGenerationResult(BaseModel):
    """Block/proceed decision plus the sources allocated per audience."""

    can_proceed: bool
    block_reason: Optional[str] = None
    user_message: Optional[str] = None
    validated_topics: List[TopicValidationResult] = Field(default_factory=list)
    invalid_topics: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    enriched_sources: List[CandidateSource] = Field(default_factory=list)
    source_allocations: List[SourceAllocation] = Field(default_factory=list)
    allocation_result: Optional[AllocationResult] = None
    allocation_context: str = ""
    pipeline_time_ms: int = 0


class GenerationParams(BaseModel):
    """Input to the content generator."""

    topics: List[str]
    audiences: List[AudienceConfig] = Field(default_factory=list)
    image_style: Optional[str] = None
    persona_id: Optional[str] = None
    tone: Optional[str] = None
    flavors: List[str] = Field(default_factory=list)
    prompt_of_the_day: Optional[str] = None
    source_allocations: List[SourceAllocation] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Output of the content generator."""

    success: bool
    newsletter: Optional[Newsletter] = None
    error: Optional[str] = None


class OrchestrationMetrics(BaseModel):
    """Timings and counts collected during one orchestration call."""

    total_time_ms: int = 0
    pre_generation_time_ms: int = 0
    generation_time_ms: int = 0
    verification_time_ms: int = 0
    sources_fetched: int = 0
    sources_allocated: int = 0
    diversity_score: float = 0.0
    valid_topics_count: int = 0
    filtered_topics_count: int = 0
    retry_count: int = 0


class OrchestratedResult(BaseModel):
    """The single value returned by an orchestration call."""

    success: bool
    newsletter: Optional[Newsletter] = None
    allocations: Optional[List[SourceAllocation]] = None
    pre_generation_result: Optional[PreGenerationResult] = None
    verification: Optional[NewsletterVerificationResult] = None
    metrics: OrchestrationMetrics
    error: Optional[str] = None
    validation_results: Optional[List[TopicValidationResult]] = None
    filtered_topics: Optional[List[str]] = None
    suggestions: Optional[List[str]] = None

    @model_validator(mode="after")
    def check_outcome(self) -> "OrchestratedResult":
        """A result either carries a newsletter or an error, never both."""
        if self.success:
            if self.newsletter is None:
                raise ValueError("successful result requires a newsletter")
            if self.error:
                raise ValueError("successful result cannot carry an error")
        elif not self.error:
            raise ValueError("failed result requires an error message")
        return self
