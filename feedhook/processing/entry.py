"""
Feed Entry Models
=================

Read-only view of an ingested feed entry as handed over by the host, plus
pydantic models implementing it for hosts without their own entry type and
for the operator CLI.
"""

from datetime import datetime, timezone
from typing import Optional, Protocol

from pydantic import BaseModel, Field, field_validator


class ThumbnailView(Protocol):
    url: str
    width: Optional[int]
    height: Optional[int]


class FeedView(Protocol):
    name: str
    website: str
    category: Optional[str]


class EntryView(Protocol):
    """What the dispatch pipeline reads from an entry. Never mutated."""

    @property
    def link(self) -> str: ...

    @property
    def title(self) -> str: ...

    @property
    def content(self) -> str: ...

    @property
    def is_read(self) -> bool: ...

    @property
    def published_ms(self) -> int: ...

    @property
    def thumbnail(self) -> Optional[ThumbnailView]: ...

    @property
    def feed(self) -> FeedView: ...


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class Thumbnail(BaseModel):
    """Entry thumbnail with optional dimensions."""
    url: str = Field(..., min_length=1, description="Thumbnail image URL")
    width: Optional[int] = Field(default=None, ge=0, description="Width in pixels")
    height: Optional[int] = Field(default=None, ge=0, description="Height in pixels")

    model_config = {"frozen": True}


class FeedInfo(BaseModel):
    """Feed an entry belongs to."""
    name: str = Field(default="", description="Feed display name")
    website: str = Field(default="", description="Feed website URL")
    category: Optional[str] = Field(default=None, description="Category name used for routing")

    model_config = {"frozen": True}


class FeedEntry(BaseModel):
    """Ingested feed entry."""
    link: str = Field(..., min_length=1, description="Entry URL")
    title: str = Field(default="", description="Entry title")
    content: str = Field(default="", description="Original HTML content")
    is_read: bool = Field(default=False, description="Whether the host already marked it read")
    published_ms: int = Field(default_factory=_now_ms, description="Publication time in epoch milliseconds")
    thumbnail: Optional[Thumbnail] = Field(default=None, description="Optional thumbnail")
    feed: FeedInfo = Field(default_factory=FeedInfo)

    model_config = {"frozen": True}

    @field_validator("title", "content", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    def __str__(self) -> str:
        return f"FeedEntry({self.title or self.link})"
