# -*- coding: utf-8 -*-
"""
sources/reddit.py
Reddit search via the public Atom feeds (no auth). Feeds carry no vote
count, so the normalizer scores Reddit posts 0.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import feedparser

from ..models import RedditPost
from ..utils import dedupe_by, entry_time, iso_utc, normalize_link, strip_html
from .base import SourceAdapter


class RedditAdapter(SourceAdapter):
    source_id = "reddit"

    def __init__(self, client, settings=None):
        super().__init__(client, settings)
        self.base_url = self.settings.get("base_url", "https://www.reddit.com").rstrip("/")
        self.subreddits = list(self.settings.get("subreddits") or [])

    def feed_urls(self, topics: List[str]) -> List[tuple]:
        """(url, params) for every feed polled this cycle."""
        out = []
        for t in topics:
            out.append(self._search(t, limit=20))
            for i, sub in enumerate(self.subreddits):
                out.append(self._search(t, subreddit=sub, limit=15 if i == 0 else 10))
        for q in self.settings.get("queries") or []:
            if isinstance(q, str):
                q = {"q": q}
            out.append(self._search(q["q"], subreddit=q.get("subreddit"), limit=int(q.get("limit", 15))))
        return out

    def _search(self, query: str, subreddit: Optional[str] = None, limit: int = 20) -> tuple:
        params: Dict[str, Any] = {"q": query, "sort": "new", "limit": limit}
        if subreddit:
            params["restrict_sr"] = 1
            return f"{self.base_url}/r/{subreddit}/search.rss", params
        return f"{self.base_url}/search.rss", params

    async def _fetch(self, topics: List[str]) -> List[RedditPost]:
        posts = await self._gather([self._feed(url, params) for url, params in self.feed_urls(topics)])
        return dedupe_by(posts, lambda p: p.id)

    async def _feed(self, url: str, params: Dict[str, Any]) -> List[RedditPost]:
        return parse_feed(await self._get_text(url, params=params))


def parse_feed(text: str) -> List[RedditPost]:
    """Atom text -> posts. Entries without an id or link are skipped."""
    feed = feedparser.parse(text)
    posts: List[RedditPost] = []
    for entry in feed.get("entries", []):
        post = _parse_entry(entry)
        if post is not None:
            posts.append(post)
    return posts


def _entry_link(entry: Any) -> str:
    """
    First http(s) href among the alternate links, then `link`. feedparser copies
    the entry id into `link` when there is no <link> (guidislink), e.g. "t3_abc".
    """
    candidates = [ln.get("href") for ln in entry.get("links") or [] if ln.get("rel", "alternate") == "alternate"]
    candidates.append(entry.get("link"))
    for href in candidates:
        href = (href or "").strip()
        if href.lower().startswith(("http://", "https://")):
            return href
    return ""


def _parse_entry(entry: Any) -> Optional[RedditPost]:
    raw_id = (entry.get("id") or "").strip()
    link = _entry_link(entry)
    if not raw_id or not link:
        return None

    content = ""
    if entry.get("content"):
        content = entry["content"][0].get("value", "")
    elif entry.get("summary"):
        content = entry["summary"]

    subreddit = ""
    if entry.get("tags"):
        subreddit = entry["tags"][0].get("term", "") or ""

    author = (entry.get("author") or "").strip()
    if author.startswith("/u/"):
        author = author[3:]

    return RedditPost(
        id=raw_id.rsplit("/", 1)[-1],
        url=normalize_link(link),
        title=strip_html(entry.get("title") or ""),
        author=author,
        content=strip_html(content, limit=500),
        published=iso_utc(entry_time(entry)) or "",
        subreddit=subreddit,
    )
