# -*- coding: utf-8 -*-
"""
sources/youtube.py
YouTube without an API key:
- search through public Invidious instances, tried in order, first success wins
- optional channel uploads via the Atom feed (feeds/videos.xml)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import feedparser

from ..models import YouTubeVideo
from ..utils import dedupe_by, entry_time, iso_utc, parse_date, strip_html, utc_now
from .base import SourceAdapter, SourceError

log = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={}"
CHANNEL_FEED_URL = "https://www.youtube.com/feeds/videos.xml"


class YouTubeAdapter(SourceAdapter):
    source_id = "youtube"

    def __init__(self, client, settings=None):
        super().__init__(client, settings)
        self.instances = [i.rstrip("/") for i in (self.settings.get("instances") or [])]
        self.instance_timeout = float(self.settings.get("instance_timeout_sec", 5))
        self.max_results = int(self.settings.get("max_results", 20))

    def queries(self, topics: List[str]) -> List[str]:
        out = [f"{t} tutorial" for t in topics]
        out.extend(self.settings.get("queries") or [])
        return out

    async def _fetch(self, topics: List[str]) -> List[YouTubeVideo]:
        calls = [self._search(q) for q in self.queries(topics)]
        calls.extend(self._channel(c) for c in self.settings.get("channels") or [])
        videos = await self._gather(calls)
        return dedupe_by(videos, lambda v: v.id)

    async def _search(self, query: str) -> List[YouTubeVideo]:
        if not self.instances:
            raise SourceError("no Invidious instances configured")
        params = {"q": query, "type": "video", "sort": "upload_date"}
        for instance in self.instances:
            try:
                data = await self._get_json(f"{instance}/api/v1/search", params=params,
                                            timeout=self.instance_timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.info("[youtube] instance %s failed: %s", instance, e)
                continue
            if not isinstance(data, list):
                log.info("[youtube] instance %s returned an unexpected payload", instance)
                continue
            videos = [v for v in (parse_search_item(item) for item in data) if v is not None]
            return videos[: self.max_results]
        raise SourceError(f"all Invidious instances failed for {query!r}")

    async def _channel(self, channel_id: str) -> List[YouTubeVideo]:
        text = await self._get_text(CHANNEL_FEED_URL, params={"channel_id": channel_id})
        return parse_channel_feed(text)


def parse_search_item(item: Dict[str, Any]) -> Optional[YouTubeVideo]:
    if not isinstance(item, dict) or not item.get("videoId"):
        return None
    published = parse_date(item.get("published")) if item.get("published") else None
    return YouTubeVideo(
        id=item["videoId"],
        url=WATCH_URL.format(item["videoId"]),
        title=item.get("title") or "",
        description=(item.get("description") or "")[:300],
        author=item.get("author") or "",
        # Invidious gives epoch seconds; a missing value means "just uploaded"
        published=iso_utc(published or utc_now()),
    )


def parse_channel_feed(text: str) -> List[YouTubeVideo]:
    """Channel Atom feed -> videos; entries without a video id are skipped."""
    feed = feedparser.parse(text)
    out: List[YouTubeVideo] = []
    for entry in feed.get("entries", []):
        video_id = (entry.get("yt_videoid") or "").strip()
        if not video_id:
            continue
        out.append(YouTubeVideo(
            id=video_id,
            url=WATCH_URL.format(video_id),
            title=strip_html(entry.get("title") or ""),
            description=strip_html(entry.get("summary") or "", limit=300),
            author=entry.get("author") or "",
            published=iso_utc(entry_time(entry)) or "",
        ))
    return out
