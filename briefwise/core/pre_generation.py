"""Default pre-generation pipeline: fetch, validate, enrich and allocate."""

import logging
import time
from typing import Awaitable, Callable, List, Optional

from briefwise.core.aggregator import SourceAggregator
from briefwise.core.interfaces import PreGenerationPipeline
from briefwise.core.matching import (
    allocate_sources_to_audiences,
    build_allocation_context,
    calculate_relevance_score,
    match_topic,
)
from briefwise.models.content import CandidateSource
from briefwise.models.orchestration import (
    PreGenerationParams,
    PreGenerationResult,
    TopicValidationResult,
    ValidationConfidence,
)

logger = logging.getLogger(__name__)

Enricher = Callable[[str], Awaitable[List[CandidateSource]]]


class SourcePreGenerationPipeline(PreGenerationPipeline):
    """Validates topics against trending sources and allocates them per audience.

    A topic is considered real when at least one candidate source matches
    it. An optional ``enricher`` can supply extra sources for topics that
    matched nothing, e.g. from a web search.
    """

    def __init__(
        self,
        aggregator: SourceAggregator,
        enricher: Optional[Enricher] = None,
        sources_per_allocation: int = 2,
        min_diversity: float = 50.0,
    ):
        self.aggregator = aggregator
        self.enricher = enricher
        self.sources_per_allocation = sources_per_allocation
        self.min_diversity = min_diversity

    async def run_pre_generation_checks(
        self, params: PreGenerationParams
    ) -> PreGenerationResult:
        start = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - start) * 1000)

        logger.info(f"Starting pre-generation checks for {len(params.topics)} topics")
        sources = await self.aggregator.fetch_all()

        if params.skip_validation:
            validated = [
                TopicValidationResult(
                    topic=topic, is_valid=True, confidence=ValidationConfidence.MEDIUM
                )
                for topic in params.topics
            ]
        else:
            validated = [self._validate_topic(topic, sources) for topic in params.topics]

        if not params.skip_enrichment and self.enricher is not None:
            sources, validated = await self._enrich(sources, validated)

        fictional = [v for v in validated if v.is_fictional]
        suggestions = [v.suggested_alternative for v in validated if v.suggested_alternative]

        if params.topics and len(fictional) == len(params.topics):
            described = ", ".join(f'"{v.topic}" ({v.error or "not found"})' for v in fictional)
            return PreGenerationResult(
                can_proceed=False,
                block_reason="All topics appear to be fictional or non-existent",
                user_message=(
                    f"Cannot generate newsletter: {described}. Please enter valid, real topics."
                ),
                validated_topics=validated,
                invalid_topics=[v.topic for v in fictional],
                suggestions=suggestions,
                enriched_sources=sources,
                pipeline_time_ms=elapsed_ms(),
            )

        if not sources:
            return PreGenerationResult(
                can_proceed=False,
                block_reason="No sources available from any API",
                user_message=(
                    "Cannot generate newsletter: Failed to fetch sources from external "
                    "APIs. Please try again later."
                ),
                validated_topics=validated,
                invalid_topics=[v.topic for v in fictional],
                suggestions=suggestions,
                pipeline_time_ms=elapsed_ms(),
            )

        result = PreGenerationResult(
            can_proceed=True,
            validated_topics=validated,
            invalid_topics=[v.topic for v in fictional],
            suggestions=suggestions,
            enriched_sources=sources,
        )

        if params.audiences:
            valid_topics = [v.topic for v in validated if not v.is_fictional]
            allocation = allocate_sources_to_audiences(
                valid_topics,
                params.audiences,
                sources,
                sources_per_allocation=self.sources_per_allocation,
                enforce_diversity=params.enforce_source_diversity,
            )
            result.allocation_result = allocation
            result.source_allocations = allocation.allocations
            result.allocation_context = build_allocation_context(allocation.allocations)

            if (
                params.enforce_source_diversity
                and len(params.audiences) > 1
                and allocation.diversity_score < self.min_diversity
            ):
                score = allocation.diversity_score
                logger.warning(
                    f"Blocking: diversity {score:.0f}% is below minimum {self.min_diversity:.0f}%"
                )
                result.can_proceed = False
                result.block_reason = (
                    f"Source diversity too low ({score:.0f}%). "
                    "Each audience section needs unique sources."
                )
                result.user_message = (
                    f"Cannot generate newsletter: Source diversity is only {score:.0f}%. "
                    "This means all audience sections would cite the same sources. "
                    "Please try again or select topics that have different sources."
                )

        result.pipeline_time_ms = elapsed_ms()
        logger.info(
            f"Pre-generation checks finished in {result.pipeline_time_ms}ms "
            f"(can_proceed={result.can_proceed})"
        )
        return result

    def _validate_topic(
        self, topic: str, sources: List[CandidateSource]
    ) -> TopicValidationResult:
        if not sources:
            # Nothing to check against
            return TopicValidationResult(
                topic=topic, is_valid=True, confidence=ValidationConfidence.UNKNOWN
            )

        mapping = match_topic(topic, sources)
        if mapping.has_match:
            confidence = (
                ValidationConfidence.HIGH
                if mapping.relevance_score >= 0.5
                else ValidationConfidence.MEDIUM
            )
            return TopicValidationResult(topic=topic, is_valid=True, confidence=confidence)

        best = max(sources, key=lambda source: calculate_relevance_score(topic, source))
        suggestion = best.title if calculate_relevance_score(topic, best) > 0 else None
        return TopicValidationResult(
            topic=topic,
            is_valid=False,
            confidence=ValidationConfidence.NONE,
            error="no matching sources found",
            suggested_alternative=suggestion,
        )

    async def _enrich(self, sources, validated):
        enriched = list(sources)
        updated = []

        for validation in validated:
            if validation.is_valid:
                updated.append(validation)
                continue

            try:
                extra = await self.enricher(validation.topic)
            except Exception as e:
                logger.warning(f"Enrichment failed for '{validation.topic}': {e}")
                updated.append(validation)
                continue

            if extra:
                logger.info(f"Enriched '{validation.topic}' with {len(extra)} sources")
                enriched.extend(extra)

            if extra and match_topic(validation.topic, extra).has_match:
                updated.append(
                    TopicValidationResult(
                        topic=validation.topic,
                        is_valid=True,
                        confidence=ValidationConfidence.MEDIUM,
                    )
                )
            else:
                updated.append(validation)

        return enriched, updated
