"""Tests for the generation orchestrator."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from briefwise.core.interfaces import ContentGenerator, PreGenerationPipeline
from briefwise.core.orchestrator import (
    ContentOrchestrator,
    OrchestratorConfig,
    full_config,
    quick_config,
)
from briefwise.models.allocation import AllocationResult
from briefwise.models.content import AudienceSection, Newsletter
from briefwise.models.orchestration import (
    GenerationParams,
    GenerationResult,
    OrchestratorStage,
    PreGenerationResult,
    TopicValidationResult,
    ValidationConfidence,
)


@pytest.fixture
def params(audiences):
    return GenerationParams(topics=["LLM agents", "Fake topic"], audiences=audiences)


@pytest.fixture
def pre_gen_result(allocations, make_source):
    return PreGenerationResult(
        can_proceed=True,
        validated_topics=[
            TopicValidationResult(topic="LLM agents", is_valid=True, confidence=ValidationConfidence.HIGH),
            TopicValidationResult(topic="Fake topic", is_valid=False, confidence=ValidationConfidence.NONE),
        ],
        invalid_topics=["Fake topic"],
        enriched_sources=[make_source("https://x.com/1"), make_source("https://y.com/2")],
        source_allocations=allocations,
        allocation_result=AllocationResult(allocations=allocations, diversity_score=80.0),
    )


def make_orchestrator(pre_gen_result, generator_side_effect):
    pipeline = MagicMock(spec=PreGenerationPipeline)
    pipeline.run_pre_generation_checks = AsyncMock(return_value=pre_gen_result)
    generator = MagicMock(spec=ContentGenerator)
    generator.generate_enhanced_newsletter = AsyncMock(side_effect=generator_side_effect)
    return ContentOrchestrator(pipeline, generator), pipeline, generator


def ok(newsletter):
    return GenerationResult(success=True, newsletter=newsletter)


FAILED = GenerationResult(success=False, error="model returned garbage")


@pytest.mark.asyncio
async def test_successful_run(params, pre_gen_result, newsletter, allocations):
    orchestrator, pipeline, generator = make_orchestrator(pre_gen_result, [ok(newsletter)])

    result = await orchestrator.orchestrate_generation(params)

    assert result.success is True
    assert result.error is None
    assert result.newsletter == newsletter
    assert result.allocations == allocations
    assert result.verification is not None and result.verification.is_valid
    assert result.filtered_topics == ["Fake topic"]
    assert result.metrics.sources_fetched == 2
    assert result.metrics.sources_allocated == 2
    assert result.metrics.diversity_score == 80.0
    assert result.metrics.valid_topics_count == 1
    assert result.metrics.filtered_topics_count == 1
    assert result.metrics.retry_count == 0

    sent = generator.generate_enhanced_newsletter.call_args.args[0]
    assert sent.source_allocations == allocations
    assert sent.topics == params.topics


@pytest.mark.asyncio
async def test_forwards_config_to_pipeline(params, pre_gen_result, newsletter):
    orchestrator, pipeline, _ = make_orchestrator(pre_gen_result, [ok(newsletter)])

    await orchestrator.orchestrate_generation(
        params,
        OrchestratorConfig(skip_topic_validation=True, skip_enrichment=True, enable_source_diversity=False),
    )

    sent = pipeline.run_pre_generation_checks.call_args.args[0]
    assert sent.skip_validation is True
    assert sent.skip_enrichment is True
    assert sent.enforce_source_diversity is False


@pytest.mark.asyncio
async def test_blocked_pre_generation(params, newsletter):
    blocked = PreGenerationResult(
        can_proceed=False,
        block_reason="All topics appear to be fictional or non-existent",
        invalid_topics=["LLM agents", "Fake topic"],
        suggestions=["Try: LLM tooling"],
    )
    orchestrator, _, generator = make_orchestrator(blocked, [ok(newsletter)])

    result = await orchestrator.orchestrate_generation(params)

    assert result.success is False
    assert result.error == "All topics appear to be fictional or non-existent"
    assert result.metrics.generation_time_ms == 0
    assert result.metrics.verification_time_ms == 0
    assert result.suggestions == ["Try: LLM tooling"]
    assert result.filtered_topics == ["LLM agents", "Fake topic"]
    assert result.pre_generation_result == blocked
    generator.generate_enhanced_newsletter.assert_not_awaited()


@pytest.mark.asyncio
async def test_blocked_without_reason_uses_default_message(params):
    orchestrator, _, _ = make_orchestrator(PreGenerationResult(can_proceed=False), [])

    result = await orchestrator.orchestrate_generation(params)

    assert result.error == "Pre-generation checks failed"


@pytest.mark.asyncio
async def test_retries_then_succeeds(params, pre_gen_result, newsletter):
    orchestrator, _, generator = make_orchestrator(pre_gen_result, [FAILED, ok(newsletter)])

    result = await orchestrator.orchestrate_generation(params, OrchestratorConfig(max_retries=2))

    assert result.success is True
    assert result.metrics.retry_count == 1
    assert generator.generate_enhanced_newsletter.await_count == 2
    first, second = generator.generate_enhanced_newsletter.call_args_list
    assert first.args == second.args


@pytest.mark.asyncio
async def test_exhausted_retries_keep_earlier_results(params, pre_gen_result, allocations):
    orchestrator, _, generator = make_orchestrator(pre_gen_result, [FAILED, FAILED])

    result = await orchestrator.orchestrate_generation(params, OrchestratorConfig(max_retries=1))

    assert result.success is False
    assert result.error == "model returned garbage"
    assert result.metrics.retry_count == 1
    assert result.pre_generation_result == pre_gen_result
    assert result.allocations == allocations
    assert generator.generate_enhanced_newsletter.await_count == 2


@pytest.mark.asyncio
async def test_generator_exception_counts_as_failed_attempt(params, pre_gen_result, newsletter):
    orchestrator, _, _ = make_orchestrator(
        pre_gen_result, [RuntimeError("rate limited"), ok(newsletter)]
    )

    result = await orchestrator.orchestrate_generation(params)

    assert result.success is True
    assert result.metrics.retry_count == 1


@pytest.mark.asyncio
async def test_generator_exception_without_retries(params, pre_gen_result):
    orchestrator, _, _ = make_orchestrator(pre_gen_result, [RuntimeError("rate limited")])

    result = await orchestrator.orchestrate_generation(params, OrchestratorConfig(max_retries=0))

    assert result.success is False
    assert result.error == "rate limited"


@pytest.mark.asyncio
async def test_success_without_newsletter_is_failure(params, pre_gen_result):
    orchestrator, _, _ = make_orchestrator(pre_gen_result, [GenerationResult(success=True)])

    result = await orchestrator.orchestrate_generation(params, OrchestratorConfig(max_retries=0))

    assert result.success is False
    assert result.error == "Content generation failed"


@pytest.mark.asyncio
async def test_verification_failure_is_advisory(params, pre_gen_result):
    uncited = Newsletter(
        audience_sections=[
            AudienceSection(audience_id="eng", audience_name="Engineers", content="https://z.com"),
        ]
    )
    orchestrator, _, _ = make_orchestrator(pre_gen_result, [ok(uncited)])

    result = await orchestrator.orchestrate_generation(params)

    assert result.success is True
    assert result.verification.is_valid is False
    assert result.verification.recommendations


@pytest.mark.asyncio
async def test_verification_skipped_without_allocations(params, newsletter):
    pre_gen = PreGenerationResult(can_proceed=True)
    orchestrator, _, _ = make_orchestrator(pre_gen, [ok(newsletter)])

    result = await orchestrator.orchestrate_generation(params)

    assert result.success is True
    assert result.verification is None
    assert result.metrics.diversity_score == 100


@pytest.mark.asyncio
async def test_quick_never_verifies_or_retries(params, pre_gen_result, newsletter):
    orchestrator, pipeline, _ = make_orchestrator(pre_gen_result, [ok(newsletter)])

    result = await orchestrator.orchestrate_quick(params)

    assert result.success is True
    assert result.verification is None
    sent = pipeline.run_pre_generation_checks.call_args.args[0]
    assert sent.skip_validation is True and sent.skip_enrichment is True

    orchestrator, _, generator = make_orchestrator(pre_gen_result, [FAILED, ok(newsletter)])
    result = await orchestrator.orchestrate_quick(params)
    assert result.success is False
    assert generator.generate_enhanced_newsletter.await_count == 1


@pytest.mark.asyncio
async def test_full_reports_every_stage(params, pre_gen_result, newsletter):
    orchestrator, _, _ = make_orchestrator(pre_gen_result, [ok(newsletter)])
    events = []

    result = await orchestrator.orchestrate_full(params, lambda stage, msg: events.append((stage, msg)))

    assert result.success is True
    stages = [stage for stage, _ in events]
    assert stages[0] == OrchestratorStage.INIT
    assert stages[-1] == OrchestratorStage.COMPLETE
    assert OrchestratorStage.VERIFICATION in stages
    assert events[0][1] == "Starting orchestrated generation for 2 topics, 2 audiences"
    assert (OrchestratorStage.SOURCE_ALLOCATION, "Allocated 2 sources with 80% diversity") in events
    assert (OrchestratorStage.VERIFICATION, "Verification passed") in events


@pytest.mark.asyncio
async def test_retry_progress_message(params, pre_gen_result, newsletter):
    orchestrator, _, _ = make_orchestrator(pre_gen_result, [FAILED, ok(newsletter)])
    events = []

    await orchestrator.orchestrate_generation(
        params, OrchestratorConfig(on_progress=lambda s, m: events.append((s, m)))
    )

    assert (OrchestratorStage.GENERATION, "Retrying generation (attempt 2)...") in events


@pytest.mark.asyncio
async def test_progress_callback_errors_are_ignored(params, pre_gen_result, newsletter):
    orchestrator, _, _ = make_orchestrator(pre_gen_result, [ok(newsletter)])

    def broken_callback(stage, message):
        raise RuntimeError("ui went away")

    result = await orchestrator.orchestrate_generation(
        params, OrchestratorConfig(on_progress=broken_callback)
    )

    assert result.success is True


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failure(params, newsletter):
    orchestrator, pipeline, _ = make_orchestrator(None, [ok(newsletter)])
    pipeline.run_pre_generation_checks = AsyncMock(side_effect=ConnectionError("db down"))
    events = []

    result = await orchestrator.orchestrate_generation(
        params, OrchestratorConfig(on_progress=lambda s, m: events.append((s, m)))
    )

    assert result.success is False
    assert result.error == "db down"
    assert result.metrics is not None
    assert events[-1] == (OrchestratorStage.ERROR, "Orchestration failed: db down")


@pytest.mark.asyncio
async def test_exception_with_empty_message_uses_type_name(params):
    orchestrator, pipeline, _ = make_orchestrator(None, [])
    pipeline.run_pre_generation_checks = AsyncMock(side_effect=KeyError())

    result = await orchestrator.orchestrate_generation(params)

    assert result.error == "KeyError"


@pytest.mark.asyncio
async def test_cancel_event_stops_run(params, pre_gen_result, newsletter):
    orchestrator, _, generator = make_orchestrator(pre_gen_result, [ok(newsletter)])
    cancel = asyncio.Event()
    cancel.set()

    result = await orchestrator.orchestrate_generation(params, OrchestratorConfig(cancel_event=cancel))

    assert result.success is False
    assert result.error == "Orchestration cancelled"
    generator.generate_enhanced_newsletter.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_between_retries(params, pre_gen_result):
    cancel = asyncio.Event()

    async def fail_and_cancel(_params):
        cancel.set()
        return FAILED

    orchestrator, _, generator = make_orchestrator(pre_gen_result, fail_and_cancel)

    result = await orchestrator.orchestrate_generation(
        params, OrchestratorConfig(max_retries=3, cancel_event=cancel)
    )

    assert result.error == "Orchestration cancelled"
    assert generator.generate_enhanced_newsletter.await_count == 1


@pytest.mark.asyncio
async def test_timeout(params, pre_gen_result):
    async def slow(_params):
        await asyncio.sleep(5)

    orchestrator, _, _ = make_orchestrator(pre_gen_result, slow)

    result = await orchestrator.orchestrate_generation(params, OrchestratorConfig(timeout_seconds=0.05))

    assert result.success is False
    assert result.error == "Orchestration timed out after 0.05s"


@pytest.mark.asyncio
async def test_retry_delay_is_opt_in(params, pre_gen_result, newsletter, monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("briefwise.core.orchestrator.asyncio.sleep", sleep)

    orchestrator, _, _ = make_orchestrator(pre_gen_result, [FAILED, ok(newsletter)])
    await orchestrator.orchestrate_generation(params)
    sleep.assert_not_awaited()

    orchestrator, _, _ = make_orchestrator(pre_gen_result, [FAILED, FAILED, ok(newsletter)])
    await orchestrator.orchestrate_generation(
        params,
        OrchestratorConfig(max_retries=2, retry_delay_seconds=1.0, retry_backoff_factor=2.0),
    )
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


def test_presets():
    quick = quick_config()
    assert quick.enable_verification is False
    assert quick.max_retries == 0
    assert quick.skip_topic_validation and quick.skip_enrichment

    full = full_config()
    assert full.enable_verification is True
    assert full.max_retries == 1
    assert not full.skip_topic_validation


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"retry_delay_seconds": -1},
        {"retry_backoff_factor": 0.5},
        {"timeout_seconds": 0},
    ],
)
def test_config_validation(kwargs):
    with pytest.raises(ValueError):
        OrchestratorConfig(**kwargs)
