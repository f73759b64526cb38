"""Command line interface for briefwise."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import aiohttp
import click

# Heavy imports happen inside the commands so ``cli`` stays cheap to import

logger = logging.getLogger(__name__)


def _parse_audience(value: str):
    from briefwise.models.content import AudienceConfig

    audience_id, _, name = value.partition(":")
    if not audience_id:
        raise click.BadParameter(f"Audience must look like 'id:Name', got {value!r}")
    return AudienceConfig(id=audience_id.strip(), name=(name or audience_id).strip())


def _parse_audiences(ctx: click.Context, param: click.Parameter, values):
    return [_parse_audience(value) for value in values]


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Briefwise newsletter generation CLI.

    Gathers trending AI sources, generates a multi-audience newsletter,
    and verifies that every section cites the sources it was given.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=log_level, force=True)
    logger.debug("Debug mode enabled")


@cli.command()
@click.option("--topic", "topics", multiple=True, required=True, help="Topic to cover (repeatable)")
@click.option(
    "--audience",
    "audiences",
    multiple=True,
    callback=_parse_audiences,
    help="Audience as id:Name (repeatable)",
)
@click.option("--tone", help="Writing tone")
@click.option("--quick", is_flag=True, help="Skip validation, enrichment, verification and retries")
@click.option("--no-verify", is_flag=True, help="Skip citation verification")
@click.option("--max-retries", type=click.IntRange(min=0), help="Generation retries after a failure")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Abort after N seconds")
@click.option("--output", type=click.Path(dir_okay=False), help="Write the result JSON to a file")
@click.pass_context
def generate(
    ctx: click.Context,
    topics,
    audiences,
    tone,
    quick: bool,
    no_verify: bool,
    max_retries,
    timeout,
    output,
) -> None:
    """Generate a newsletter for the given topics and audiences."""
    from briefwise.models.settings import Settings

    settings = Settings(debug=ctx.obj.get("debug", False))
    if not settings.openrouter_api_key:
        logger.error("❌ Missing required API key: OPENROUTER_API_KEY")
        sys.exit(1)

    async def _generate():
        from briefwise.clients.openrouter import OpenRouterClient
        from briefwise.core.aggregator import SourceAggregator
        from briefwise.core.cache import ResultCache
        from briefwise.core.generator import OpenRouterNewsletterGenerator
        from briefwise.core.orchestrator import (
            ContentOrchestrator,
            OrchestratorConfig,
            quick_config,
        )
        from briefwise.core.pre_generation import SourcePreGenerationPipeline
        from briefwise.models.orchestration import GenerationParams

        cache = ResultCache(
            ttl_seconds=settings.trending_cache_ttl_seconds,
            max_entries=settings.trending_cache_max_entries,
        )
        orchestrator = ContentOrchestrator(
            SourcePreGenerationPipeline(SourceAggregator(settings=settings, cache=cache)),
            OpenRouterNewsletterGenerator(OpenRouterClient.from_settings(settings)),
        )
        params = GenerationParams(
            topics=list(topics),
            audiences=audiences,
            tone=tone,
        )

        if quick:
            config = quick_config()
        else:
            config = OrchestratorConfig(
                enable_verification=settings.enable_verification and not no_verify,
                max_retries=settings.max_retries,
            )
        if max_retries is not None:
            config.max_retries = max_retries
        config.timeout_seconds = timeout

        return await orchestrator.orchestrate_generation(params, config)

    try:
        result = asyncio.run(_generate())
    except (KeyError, AttributeError, ValueError, TypeError) as e:
        logger.error(f"❌ Configuration or data error: {e}")
        if ctx.obj.get("debug"):
            raise
        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Unexpected newsletter generation error: {e}")
        if ctx.obj.get("debug"):
            raise
        sys.exit(1)

    result_json = result.model_dump_json(indent=2)
    if output:
        Path(output).write_text(result_json, encoding="utf-8")
        logger.info(f"📄 Result written to {output}")
    else:
        click.echo(result_json)

    if not result.success:
        logger.error(f"❌ Generation failed: {result.error}")
        sys.exit(1)

    if result.verification and not result.verification.is_valid:
        for recommendation in result.verification.recommendations:
            logger.warning(f"⚠️  {recommendation}")
    logger.info(f"✅ Newsletter generated in {result.metrics.total_time_ms}ms")


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True)
@click.pass_context
def sources(ctx: click.Context, limit: int) -> None:
    """Fetch and list trending candidate sources."""
    from briefwise.core.aggregator import SourceAggregator
    from briefwise.models.settings import Settings

    settings = Settings(debug=ctx.obj.get("debug", False))
    fetched = asyncio.run(SourceAggregator(settings=settings).fetch_all())

    if not fetched:
        logger.warning("⚠️  No sources available from any provider")
        sys.exit(1)

    for source in fetched[:limit]:
        click.echo(f"[{source.category:<10}] {source.title[:70]:<70}  {source.url}")
    click.echo(f"\n{len(fetched)} sources fetched")


@cli.command()
@click.argument("newsletter_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("allocations_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def verify(ctx: click.Context, newsletter_file: str, allocations_file: str) -> None:
    """Verify a saved newsletter's citations against its source allocations."""
    from pydantic import TypeAdapter, ValidationError

    from briefwise.core.citations import verify_newsletter
    from briefwise.models.allocation import SourceAllocation
    from briefwise.models.content import Newsletter

    try:
        newsletter = Newsletter.model_validate_json(
            Path(newsletter_file).read_text(encoding="utf-8")
        )
        allocations = TypeAdapter(list[SourceAllocation]).validate_python(
            json.loads(Path(allocations_file).read_text(encoding="utf-8"))
        )
    except (ValidationError, json.JSONDecodeError) as e:
        logger.error(f"❌ Could not read input files: {e}")
        if ctx.obj.get("debug"):
            raise
        sys.exit(1)

    result = verify_newsletter(newsletter, allocations)
    click.echo(result.model_dump_json(indent=2))

    if not result.is_valid:
        logger.warning(f"⚠️  Verification found {len(result.all_issues)} issues")
        sys.exit(1)
    logger.info("✅ Verification passed")


@cli.command()
def health() -> None:
    """Check configuration and the language model connection."""
    from briefwise.clients.openrouter import OpenRouterClient
    from briefwise.models.settings import Settings

    settings = Settings()
    logger.info("🔍 Checking system health...")

    if not settings.openrouter_api_key:
        logger.warning("⚠️  OPENROUTER_API_KEY not set")
        sys.exit(1)

    try:
        connected = asyncio.run(OpenRouterClient.from_settings(settings).test_connection())
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"Network error during connection testing: {e}")
        connected = False

    if not connected:
        logger.error("❌ OpenRouter is unreachable")
        sys.exit(1)
    logger.info("✅ System appears healthy")


@cli.command()
def config() -> None:
    """Show current configuration (without sensitive values)."""
    from briefwise.models.settings import Settings

    settings = Settings()

    click.echo("📋 Current Configuration:")
    click.echo(f"   Debug mode: {settings.debug}")
    click.echo(f"   Log level: {settings.log_level}")
    click.echo(f"   Model: {settings.openrouter_model}")
    click.echo(f"   OpenRouter timeout: {settings.openrouter_timeout}s")
    timeout = (
        f"{settings.source_fetch_timeout}s" if settings.source_fetch_timeout else "none"
    )
    click.echo(f"   Source fetch timeout: {timeout}")
    click.echo(
        f"   Trending cache: {settings.trending_cache_max_entries} entries, "
        f"{settings.trending_cache_ttl_seconds:g}s TTL"
    )
    click.echo(f"   Max retries: {settings.max_retries}")
    click.echo(f"   Verification: {'on' if settings.enable_verification else 'off'}")

    click.echo("\n🔑 API Keys:")
    click.echo(f"   OpenRouter: {'✅' if settings.openrouter_api_key else '❌'}")
    click.echo(f"   GitHub: {'✅' if settings.github_token else '❌'}")


if __name__ == "__main__":
    cli()
