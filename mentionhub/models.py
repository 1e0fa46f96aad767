# -*- coding: utf-8 -*-
"""
models.py
Data models for the mention pipeline.

- Mention: the canonical record every source is normalized into
- Raw result types: one dataclass per source (WebResult, RedditPost, ...),
  they only live inside one fetch cycle and always go through the normalizer
- FetchConfig: which topics to track and which sources to poll
- Feed / Stats: what the aggregator and the read endpoint hand back
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .utils import iso_utc


@dataclass
class Mention:
    id: int
    platform: str
    url: str
    topic: str
    fetched_at: datetime
    external_id: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    # per-source scale, not comparable across platforms
    score: Optional[float] = None
    highlights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "platform": self.platform,
            "external_id": self.external_id,
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "author": self.author,
            "published_at": iso_utc(self.published_at),
            "fetched_at": iso_utc(self.fetched_at),
            "topic": self.topic,
            "score": self.score,
            "highlights": list(self.highlights),
        }


# -------------------- per-source raw results --------------------

@dataclass
class WebResult:
    url: str
    title: Optional[str]
    text: Optional[str]
    author: Optional[str]
    published: Optional[str]
    score: float = 0.0
    highlights: List[str] = field(default_factory=list)


@dataclass
class RedditPost:
    id: str
    url: str
    title: str
    author: str
    content: str
    published: str
    subreddit: str = ""


@dataclass
class HNHit:
    id: str
    url: str
    title: str
    content: Optional[str]
    author: str
    published: str
    points: int = 0
    comments: int = 0
    kind: str = "story"  # story | comment


@dataclass
class GitHubRepo:
    id: str
    url: str
    title: str
    description: Optional[str]
    author: str
    published: str
    stars: int = 0
    homepage: Optional[str] = None
    topics: List[str] = field(default_factory=list)


@dataclass
class DevToArticle:
    id: str
    url: str
    title: str
    description: Optional[str]
    author: str
    published: str
    reactions: int = 0
    comments: int = 0
    tags: List[str] = field(default_factory=list)


@dataclass
class YouTubeVideo:
    id: str
    url: str
    title: str
    description: str
    author: str
    published: str


# -------------------- pipeline input / output --------------------

@dataclass
class FetchConfig:
    topics: List[str]
    enabled_sources: List[str]


@dataclass
class Stats:
    total: int = 0
    by_platform: List[Dict[str, Any]] = field(default_factory=list)
    by_topic: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "byPlatform": [dict(r) for r in self.by_platform],
            "byTopic": [dict(r) for r in self.by_topic],
        }


@dataclass
class Feed:
    mentions: List[Mention] = field(default_factory=list)
    stats: Stats = field(default_factory=Stats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mentions": [m.to_dict() for m in self.mentions],
            "stats": self.stats.to_dict(),
        }


@dataclass
class AdapterOutcome:
    """Result of one adapter call; error is set when the list is empty because something failed."""
    source: str
    mentions: List[Mention] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FetchReport:
    fetched: int = 0
    inserted: int = 0
    updated: int = 0
    failed_sources: Dict[str, str] = field(default_factory=dict)
    # set when persisting stopped part-way; rows already written stay written
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "success": self.ok,
            "fetched": self.fetched,
            "inserted": self.inserted,
            "updated": self.updated,
            "failedSources": dict(self.failed_sources),
        }
        if self.error:
            out["error"] = "Failed to store mentions"
            out["details"] = self.error
        return out
