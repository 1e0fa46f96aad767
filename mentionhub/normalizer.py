# -*- coding: utf-8 -*-
"""
normalizer.py
Source-specific raw result -> canonical Mention.

Pure functions, no I/O. Missing optional fields become None / [] instead of
raising. Topic tagging: the first configured topic found (case-insensitive
substring) in title + content (+ tags) wins; when nothing matches the first
configured topic is used, so unmatched content counts towards the primary
topic in the stats.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .models import (
    DevToArticle, GitHubRepo, HNHit, Mention, RedditPost, WebResult, YouTubeVideo,
)
from .sources.devto import REACTIONS_SCALE
from .sources.github import STARS_SCALE
from .sources.hackernews import POINTS_SCALE
from .utils import detect_platform, parse_date, utc_now

UNKNOWN_TOPIC = "unknown"
HIGHLIGHT_CHARS = 200

# live-response ids: base + position in that source's list
ID_BASE: Dict[str, int] = {
    "exa": 1,
    "hackernews": 1000,
    "reddit": 2000,
    "github": 3000,
    "devto": 4000,
    "youtube": 5000,
}


def assign_topic(parts: Iterable[Optional[str]], topics: Sequence[str]) -> str:
    text = " ".join(p for p in parts if p).lower()
    for topic in topics:
        if topic and topic.lower() in text:
            return topic
    return topics[0] if topics else UNKNOWN_TOPIC


def _excerpt(content: Optional[str]) -> List[str]:
    return [content[:HIGHLIGHT_CHARS]] if content else []


def _from_web(r: WebResult, topics, app_suffixes) -> Dict[str, Any]:
    return dict(
        platform=detect_platform(r.url, app_suffixes),
        external_id=None,
        url=r.url,
        title=r.title,
        content=r.text,
        author=r.author,
        published_at=parse_date(r.published),
        topic=assign_topic([r.title, r.text], topics),
        score=r.score,
        highlights=[h[:HIGHLIGHT_CHARS] for h in r.highlights],
    )


def _from_reddit(p: RedditPost, topics, app_suffixes) -> Dict[str, Any]:
    return dict(
        platform="reddit",
        external_id=p.id,
        url=p.url,
        title=p.title or None,
        content=p.content or None,
        author=p.author or None,
        published_at=parse_date(p.published),
        topic=assign_topic([p.title, p.content], topics),
        score=0.0,
        highlights=_excerpt(p.content),
    )


def _from_hn(h: HNHit, topics, app_suffixes) -> Dict[str, Any]:
    return dict(
        platform="hackernews",
        external_id=h.id,
        url=h.url,
        title=h.title or None,
        content=h.content,
        author=h.author or None,
        published_at=parse_date(h.published),
        topic=assign_topic([h.title, h.content], topics),
        score=h.points / POINTS_SCALE,
        highlights=_excerpt(h.content),
    )


def _from_github(r: GitHubRepo, topics, app_suffixes) -> Dict[str, Any]:
    return dict(
        platform="github",
        external_id=r.id,
        url=r.url,
        title=r.title or None,
        content=r.description,
        author=r.author or None,
        published_at=parse_date(r.published),
        topic=assign_topic([r.title, r.description, " ".join(r.topics), r.homepage], topics),
        score=r.stars / STARS_SCALE,
        highlights=_excerpt(r.description),
    )


def _from_devto(a: DevToArticle, topics, app_suffixes) -> Dict[str, Any]:
    return dict(
        platform="devto",
        external_id=a.id,
        url=a.url,
        title=a.title or None,
        content=a.description,
        author=a.author or None,
        published_at=parse_date(a.published),
        topic=assign_topic([a.title, a.description, " ".join(a.tags)], topics),
        score=a.reactions / REACTIONS_SCALE,
        highlights=_excerpt(a.description),
    )


def _from_youtube(v: YouTubeVideo, topics, app_suffixes) -> Dict[str, Any]:
    return dict(
        platform="youtube",
        external_id=v.id,
        url=v.url,
        title=v.title or None,
        content=v.description or None,
        author=v.author or None,
        published_at=parse_date(v.published),
        topic=assign_topic([v.title, v.description], topics),
        score=0.0,
        highlights=_excerpt(v.description),
    )


NORMALIZERS: Dict[str, Callable[..., Dict[str, Any]]] = {
    "exa": _from_web,
    "reddit": _from_reddit,
    "hackernews": _from_hn,
    "github": _from_github,
    "devto": _from_devto,
    "youtube": _from_youtube,
}


def normalize(source: str, raw: Any, topics: Sequence[str], *,
              index: int = 0,
              fetched_at: Optional[datetime] = None,
              app_suffixes: Sequence[str] = (".vercel.app",)) -> Mention:
    try:
        fn = NORMALIZERS[source]
    except KeyError:
        raise ValueError(f"no normalizer for source {source!r}") from None
    fields = fn(raw, list(topics), tuple(app_suffixes))
    return Mention(
        id=ID_BASE.get(source, 0) + index,
        fetched_at=fetched_at or utc_now(),
        **fields,
    )


def normalize_all(source: str, raws: Iterable[Any], topics: Sequence[str], *,
                  fetched_at: Optional[datetime] = None,
                  app_suffixes: Sequence[str] = (".vercel.app",)) -> List[Mention]:
    fetched_at = fetched_at or utc_now()
    return [
        normalize(source, raw, topics, index=i, fetched_at=fetched_at, app_suffixes=app_suffixes)
        for i, raw in enumerate(raws)
    ]
