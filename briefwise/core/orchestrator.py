"""
Generation orchestrator.

Runs the generation workflow as a sequence of stages:

    init -> pre-generation -> source-allocation -> generation -> verification -> complete

Any stage may end in ``error``. Every call returns an ``OrchestratedResult``
with metrics; failures are reported in the result instead of raised.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from briefwise.core.citations import verify_newsletter
from briefwise.core.interfaces import ContentGenerator, PreGenerationPipeline
from briefwise.models.orchestration import (
    GenerationParams,
    GenerationResult,
    OrchestratedResult,
    OrchestrationMetrics,
    OrchestratorStage,
    PreGenerationParams,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[OrchestratorStage, str], None]


class OrchestrationCancelled(Exception):
    """Raised internally when the caller's cancel event is set."""


@dataclass
class OrchestratorConfig:
    """Per-call orchestration settings.

    The retry delay, timeout and cancel event are opt-in. By default retries
    are immediate and identical, and nothing bounds the run.
    """

    enable_verification: bool = True
    enable_source_diversity: bool = True
    skip_topic_validation: bool = False
    skip_enrichment: bool = False
    max_retries: int = 1
    on_progress: Optional[ProgressCallback] = None
    retry_delay_seconds: float = 0.0
    retry_backoff_factor: float = 1.0
    timeout_seconds: Optional[float] = None
    cancel_event: Optional[asyncio.Event] = None

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")
        if self.retry_backoff_factor < 1:
            raise ValueError("retry_backoff_factor must be >= 1")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    def retry_delay(self, retry_number: int) -> float:
        """Seconds to wait before the given retry (1-based)."""
        return self.retry_delay_seconds * self.retry_backoff_factor ** (retry_number - 1)


def quick_config() -> OrchestratorConfig:
    """Fast iteration: no validation, no enrichment, no verification, no retries."""
    return OrchestratorConfig(
        skip_topic_validation=True,
        skip_enrichment=True,
        enable_verification=False,
        max_retries=0,
    )


def full_config(on_progress: Optional[ProgressCallback] = None) -> OrchestratorConfig:
    """Production use: every check enabled and one retry."""
    return OrchestratorConfig(
        enable_verification=True,
        enable_source_diversity=True,
        skip_topic_validation=False,
        skip_enrichment=False,
        max_retries=1,
        on_progress=on_progress,
    )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class ContentOrchestrator:
    """Sequences pre-generation, generation with retry, and verification."""

    def __init__(self, pipeline: PreGenerationPipeline, generator: ContentGenerator):
        """Initialize orchestrator.

        Args:
            pipeline: Pre-generation pipeline producing source allocations
            generator: Content generator producing the newsletter
        """
        self.pipeline = pipeline
        self.generator = generator

    async def orchestrate_generation(
        self, params: GenerationParams, config: Optional[OrchestratorConfig] = None
    ) -> OrchestratedResult:
        """Run the full generation workflow.

        Never raises, except for cancellation of the calling task itself.

        Args:
            params: Topics, audiences and style options
            config: Orchestration settings, defaults to ``OrchestratorConfig()``

        Returns:
            OrchestratedResult with the newsletter or an error, plus metrics
        """
        config = config or OrchestratorConfig()
        metrics = OrchestrationMetrics()
        started = time.monotonic()

        run = self._run(params, config, metrics, started)
        if config.timeout_seconds is None:
            return await run

        try:
            return await asyncio.wait_for(run, timeout=config.timeout_seconds)
        except asyncio.TimeoutError:
            return self._failure(
                config,
                metrics,
                started,
                f"Orchestration timed out after {config.timeout_seconds:g}s",
            )

    async def orchestrate_quick(self, params: GenerationParams) -> OrchestratedResult:
        return await self.orchestrate_generation(params, quick_config())

    async def orchestrate_full(
        self, params: GenerationParams, on_progress: Optional[ProgressCallback] = None
    ) -> OrchestratedResult:
        return await self.orchestrate_generation(params, full_config(on_progress))

    async def _run(
        self,
        params: GenerationParams,
        config: OrchestratorConfig,
        metrics: OrchestrationMetrics,
        started: float,
    ) -> OrchestratedResult:
        try:
            self._report(
                config,
                OrchestratorStage.INIT,
                f"Starting orchestrated generation for {len(params.topics)} topics, "
                f"{len(params.audiences)} audiences",
            )

            # Pre-generation
            self._check_cancelled(config)
            self._report(config, OrchestratorStage.PRE_GENERATION, "Running pre-generation checks...")
            stage_started = time.monotonic()

            pre_gen = await self.pipeline.run_pre_generation_checks(
                PreGenerationParams(
                    topics=params.topics,
                    audiences=params.audiences,
                    skip_validation=config.skip_topic_validation,
                    skip_enrichment=config.skip_enrichment,
                    enforce_source_diversity=config.enable_source_diversity,
                )
            )

            metrics.pre_generation_time_ms = _elapsed_ms(stage_started)
            metrics.sources_fetched = len(pre_gen.enriched_sources)
            metrics.valid_topics_count = sum(1 for t in pre_gen.validated_topics if t.is_valid)
            metrics.filtered_topics_count = len(params.topics) - metrics.valid_topics_count

            if not pre_gen.can_proceed:
                self._report(
                    config,
                    OrchestratorStage.ERROR,
                    f"Pre-generation blocked: {pre_gen.block_reason}",
                )
                metrics.total_time_ms = _elapsed_ms(started)
                return OrchestratedResult(
                    success=False,
                    error=pre_gen.block_reason or "Pre-generation checks failed",
                    pre_generation_result=pre_gen,
                    validation_results=pre_gen.validated_topics,
                    filtered_topics=pre_gen.invalid_topics,
                    suggestions=pre_gen.suggestions,
                    metrics=metrics,
                )

            # Source allocation was already done by the pipeline
            self._check_cancelled(config)
            self._report(config, OrchestratorStage.SOURCE_ALLOCATION, "Processing source allocations...")
            allocations = pre_gen.source_allocations
            metrics.sources_allocated = sum(len(a.sources) for a in allocations)
            metrics.diversity_score = (
                pre_gen.allocation_result.diversity_score
                if pre_gen.allocation_result is not None
                else 100.0
            )
            self._report(
                config,
                OrchestratorStage.SOURCE_ALLOCATION,
                f"Allocated {metrics.sources_allocated} sources with "
                f"{metrics.diversity_score:.0f}% diversity",
            )

            # Generation
            self._check_cancelled(config)
            self._report(config, OrchestratorStage.GENERATION, "Generating newsletter content...")
            stage_started = time.monotonic()
            generation_params = params.model_copy(update={"source_allocations": allocations})

            result = await self._generate(generation_params, config, metrics)
            metrics.generation_time_ms = _elapsed_ms(stage_started)

            if not result.success or result.newsletter is None:
                self._report(config, OrchestratorStage.ERROR, f"Generation failed: {result.error}")
                metrics.total_time_ms = _elapsed_ms(started)
                return OrchestratedResult(
                    success=False,
                    error=result.error or "Content generation failed",
                    pre_generation_result=pre_gen,
                    allocations=allocations,
                    metrics=metrics,
                )

            # Verification is advisory and never changes the outcome
            verification = None
            if config.enable_verification and allocations:
                self._check_cancelled(config)
                self._report(
                    config,
                    OrchestratorStage.VERIFICATION,
                    "Verifying citations and source diversity...",
                )
                stage_started = time.monotonic()
                try:
                    verification = verify_newsletter(result.newsletter, allocations)
                except Exception as e:
                    logger.error(f"Citation verification failed: {e}")
                metrics.verification_time_ms = _elapsed_ms(stage_started)

                if verification is None:
                    self._report(
                        config, OrchestratorStage.VERIFICATION, "Verification skipped after an error"
                    )
                elif verification.is_valid:
                    self._report(config, OrchestratorStage.VERIFICATION, "Verification passed")
                else:
                    self._report(
                        config,
                        OrchestratorStage.VERIFICATION,
                        f"Verification found {len(verification.all_issues)} issues (not blocking)",
                    )

            metrics.total_time_ms = _elapsed_ms(started)
            self._report(
                config,
                OrchestratorStage.COMPLETE,
                f"Generation complete in {metrics.total_time_ms}ms "
                f"(preGen: {metrics.pre_generation_time_ms}ms, "
                f"gen: {metrics.generation_time_ms}ms, "
                f"verify: {metrics.verification_time_ms}ms)",
            )

            return OrchestratedResult(
                success=True,
                newsletter=result.newsletter,
                allocations=allocations,
                pre_generation_result=pre_gen,
                verification=verification,
                metrics=metrics,
                validation_results=pre_gen.validated_topics,
                filtered_topics=pre_gen.invalid_topics,
            )

        except OrchestrationCancelled:
            return self._failure(config, metrics, started, "Orchestration cancelled")
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Unexpected orchestration error: {message}")
            return self._failure(
                config, metrics, started, message, f"Orchestration failed: {message}"
            )

    async def _generate(
        self,
        params: GenerationParams,
        config: OrchestratorConfig,
        metrics: OrchestrationMetrics,
    ) -> GenerationResult:
        """Call the generator, retrying failed attempts with identical params."""
        retry_count = 0

        while True:
            self._check_cancelled(config)
            try:
                result = await self.generator.generate_enhanced_newsletter(params)
            except Exception as e:
                # A raised exception is just another failed attempt
                logger.error(f"Generator raised on attempt {retry_count + 1}: {e}")
                result = GenerationResult(success=False, error=str(e) or type(e).__name__)

            if (result.success and result.newsletter is not None) or retry_count >= config.max_retries:
                metrics.retry_count = retry_count
                return result

            retry_count += 1
            metrics.retry_count = retry_count
            self._report(
                config,
                OrchestratorStage.GENERATION,
                f"Retrying generation (attempt {retry_count + 1})...",
            )
            delay = config.retry_delay(retry_count)
            if delay > 0:
                await asyncio.sleep(delay)

    def _failure(
        self,
        config: OrchestratorConfig,
        metrics: OrchestrationMetrics,
        started: float,
        message: str,
        progress_message: Optional[str] = None,
    ) -> OrchestratedResult:
        self._report(config, OrchestratorStage.ERROR, progress_message or message)
        metrics.total_time_ms = _elapsed_ms(started)
        return OrchestratedResult(success=False, error=message, metrics=metrics)

    @staticmethod
    def _check_cancelled(config: OrchestratorConfig):
        if config.cancel_event is not None and config.cancel_event.is_set():
            raise OrchestrationCancelled()

    @staticmethod
    def _report(config: OrchestratorConfig, stage: OrchestratorStage, message: str):
        if config.on_progress is not None:
            try:
                config.on_progress(stage, message)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")
        logger.info(f"[Orchestrator:{stage.value}] {message}")
