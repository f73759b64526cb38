"""Content models for newsletter generation."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceCategory(str, Enum):
    """Provider family a candidate source was fetched from."""

    HACKERNEWS = "hackernews"
    ARXIV = "arxiv"
    GITHUB = "github"
    REDDIT = "reddit"
    DEV = "dev"


class CandidateSource(BaseModel):
    """A single externally-fetched item eligible for citation."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str = Field(..., description="Provider-prefixed identifier, e.g. 'hn-123'")
    title: str = Field(..., description="Item title")
    url: str = Field(..., description="Link to the original content")
    author: Optional[str] = Field(None, description="Author name")
    publication: Optional[str] = Field(None, description="Publication or channel")
    date: Optional[str] = Field(None, description="Publication date")
    category: SourceCategory = Field(..., description="Originating provider family")
    summary: Optional[str] = Field(None, description="Short description")


class AudienceConfig(BaseModel):
    """An audience segment the newsletter is written for."""

    id: str = Field(..., description="Audience identifier")
    name: str = Field(..., description="Display name")
    description: str = Field("", description="Who this audience is")
    keywords: List[str] = Field(
        default_factory=list, description="Relevance keywords for source matching"
    )


class SourceCitation(BaseModel):
    """A source listed explicitly under an audience section."""

    url: str = Field(..., description="Cited URL")
    title: str = Field("", description="Cited title")


class AudienceSection(BaseModel):
    """The portion of a generated newsletter written for one audience."""

    audience_id: str = Field(..., description="Audience identifier")
    audience_name: str = Field(..., description="Audience display name")
    title: str = Field("", description="Section headline")
    content: str = Field(..., description="Rich text body, may embed hyperlinks")
    sources: List[SourceCitation] = Field(
        default_factory=list, description="Explicit source list"
    )


class Newsletter(BaseModel):
    """A generated newsletter with one section per audience."""

    id: Optional[str] = Field(None, description="External identifier")
    subject: str = Field("", description="Email subject line")
    editors_note: str = Field("", description="Opening note from the editor")
    audience_sections: List[AudienceSection] = Field(
        default_factory=list, description="Per-audience sections"
    )
    conclusion: str = Field("", description="Closing paragraph")
