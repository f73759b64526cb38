import pytest

from briefwise.models.allocation import SourceAllocation
from briefwise.models.content import (
    AudienceConfig,
    AudienceSection,
    CandidateSource,
    Newsletter,
)


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with test credentials and no .env influence."""
    from briefwise.models.settings import Settings

    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return Settings(
        _env_file=None,
        openrouter_api_key="test_key",
        github_token="test_token",
        openrouter_min_request_interval=0.0,
    )


@pytest.fixture
def make_source():
    """Factory for candidate sources."""

    def _make(url, title="Sample article", category="hackernews", summary=None, id=None):
        return CandidateSource(
            id=id or f"{category}-{abs(hash(url)) % 10000}",
            title=title,
            url=url,
            category=category,
            summary=summary,
        )

    return _make


@pytest.fixture
def audiences():
    return [
        AudienceConfig(id="eng", name="Engineers"),
        AudienceConfig(id="biz", name="Business Leaders"),
    ]


@pytest.fixture
def allocations(make_source):
    return [
        SourceAllocation(
            topic="LLM agents",
            audience_id="eng",
            audience_name="Engineers",
            sources=[make_source("https://x.com/1")],
        ),
        SourceAllocation(
            topic="LLM agents",
            audience_id="biz",
            audience_name="Business Leaders",
            sources=[make_source("https://y.com/2")],
        ),
    ]


@pytest.fixture
def newsletter():
    """Newsletter whose sections cite exactly their allocated sources."""
    return Newsletter(
        subject="This week in agents",
        audience_sections=[
            AudienceSection(
                audience_id="eng",
                audience_name="Engineers",
                content='<p>Read <a href="https://x.com/1">the post</a>.</p>',
            ),
            AudienceSection(
                audience_id="biz",
                audience_name="Business Leaders",
                content="Full story at https://y.com/2 today.",
            ),
        ],
    )
