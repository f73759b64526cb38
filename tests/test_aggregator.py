"""Tests for concurrent source aggregation."""

import asyncio
from typing import List
from unittest.mock import patch

import pytest

from briefwise.clients.base import SourceProvider
from briefwise.clients.reddit import RedditProvider
from briefwise.core.aggregator import SourceAggregator, default_providers
from briefwise.core.cache import ResultCache
from briefwise.models.content import CandidateSource


class StaticProvider(SourceProvider):
    def __init__(self, name, sources, delay=0.0):
        super().__init__()
        self._name = name
        self._sources = sources
        self._delay = delay
        self.calls = 0

    @property
    def name(self):
        return self._name

    async def _fetch(self, session) -> List[CandidateSource]:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        return list(self._sources)


class ExplodingProvider(StaticProvider):
    async def _fetch(self, session):
        raise RuntimeError("provider exploded")


class RawExplodingProvider(StaticProvider):
    """Bypasses the never-raise wrapper entirely."""

    async def fetch_sources(self, session):
        raise RuntimeError("escaped the provider guard")


@pytest.fixture
def hn_sources(make_source):
    return [make_source("https://a.com/1", category="hackernews")]


@pytest.fixture
def dev_sources(make_source):
    return [make_source("https://a.com/1", category="dev"), make_source("https://b.com/2", category="dev")]


@pytest.mark.asyncio
async def test_fetch_all_concatenates_in_provider_order_without_dedup(hn_sources, dev_sources):
    aggregator = SourceAggregator(
        [StaticProvider("hn", hn_sources, delay=0.02), StaticProvider("dev", dev_sources)]
    )

    sources = await aggregator.fetch_all()

    assert [s.url for s in sources] == ["https://a.com/1", "https://a.com/1", "https://b.com/2"]


@pytest.mark.asyncio
async def test_failing_provider_does_not_affect_others(hn_sources, dev_sources):
    aggregator = SourceAggregator(
        [
            StaticProvider("hn", hn_sources),
            ExplodingProvider("broken", []),
            RawExplodingProvider("raw", []),
            StaticProvider("dev", dev_sources),
        ]
    )

    sources = await aggregator.fetch_all()

    assert len(sources) == 3


@pytest.mark.asyncio
async def test_provider_failing_every_subfeed_leaves_others(dev_sources):
    reddit = RedditProvider(subreddits=["a", "b"])
    aggregator = SourceAggregator([reddit, StaticProvider("dev", dev_sources)])

    with patch.object(reddit, "_get_json", side_effect=RuntimeError("blocked")):
        sources = await aggregator.fetch_all()

    assert sources == dev_sources


@pytest.mark.asyncio
async def test_unexpected_failure_returns_empty_list(hn_sources):
    aggregator = SourceAggregator([StaticProvider("hn", hn_sources)])

    with patch.object(aggregator, "_fetch_from_providers", side_effect=RuntimeError("boom")):
        assert await aggregator.fetch_all() == []


@pytest.mark.asyncio
async def test_cache_hit_skips_providers(hn_sources):
    provider = StaticProvider("hn", hn_sources)
    aggregator = SourceAggregator([provider], cache=ResultCache())

    first = await aggregator.fetch_all()
    second = await aggregator.fetch_all()

    assert first == second == hn_sources
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_empty_result_is_not_cached():
    provider = StaticProvider("empty", [])
    cache = ResultCache()
    aggregator = SourceAggregator([provider], cache=cache)

    await aggregator.fetch_all()
    await aggregator.fetch_all()

    assert provider.calls == 2
    assert len(cache) == 0


def test_register_replaces_provider_with_same_name(hn_sources):
    aggregator = SourceAggregator([StaticProvider("hn", [])])
    replacement = StaticProvider("hn", hn_sources)
    aggregator.register_provider(replacement)

    assert aggregator.providers == [replacement]
    assert aggregator.unregister_provider("hn") is True
    assert aggregator.unregister_provider("hn") is False


def test_register_rejects_non_providers():
    aggregator = SourceAggregator([])
    with pytest.raises(ValueError):
        aggregator.register_provider(object())


def test_default_providers(mock_settings):
    aggregator = SourceAggregator(settings=mock_settings)
    names = [p["name"] for p in aggregator.list_providers()]

    assert names == ["HackerNews", "ArXiv", "GitHub", "Reddit", "Dev.to"]
    assert len(default_providers()) == 5
