# Hacker News via the Algolia search API (no auth), last N days only

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from ..models import HNHit
from ..utils import dedupe_by, strip_html
from .base import SourceAdapter, SourceError

HN_ITEM_URL = "https://news.ycombinator.com/item?id={}"
# score = points / POINTS_SCALE
POINTS_SCALE = 100.0


class HackerNewsAdapter(SourceAdapter):
    source_id = "hackernews"

    def __init__(self, client, settings=None):
        super().__init__(client, settings)
        self.base_url = self.settings.get("base_url", "https://hn.algolia.com/api/v1").rstrip("/")
        self.days = int(self.settings.get("days", 30))
        self.hits_per_page = int(self.settings.get("hits_per_page", 30))

    async def _fetch(self, topics: List[str]) -> List[HNHit]:
        calls = []
        for t in topics:
            calls.append(self._search(t, "story"))
            calls.append(self._search(t, "comment"))
        for q in self.settings.get("queries") or []:
            calls.append(self._search(q, "story"))
        hits = await self._gather(calls)
        return dedupe_by(hits, lambda h: h.id)

    async def _search(self, query: str, tags: str) -> List[HNHit]:
        since = int(time.time()) - self.days * 24 * 3600
        params = {
            "query": query,
            "tags": tags,
            "hitsPerPage": self.hits_per_page,
            "numericFilters": f"created_at_i>{since}",
        }
        data = await self._get_json(f"{self.base_url}/search", params=params)
        if not isinstance(data, dict) or not isinstance(data.get("hits"), list):
            raise SourceError(f"unexpected HN payload for {query!r}")
        kind = "comment" if "comment" in tags else "story"
        return [h for h in (parse_hit(hit, kind) for hit in data["hits"]) if h is not None]


def parse_hit(hit: Dict[str, Any], kind: str = "story") -> Optional[HNHit]:
    if not isinstance(hit, dict) or not hit.get("objectID"):
        return None
    object_id = str(hit["objectID"])
    content = hit.get("story_text") or hit.get("comment_text") or None
    return HNHit(
        id=object_id,
        url=hit.get("url") or HN_ITEM_URL.format(object_id),
        title=hit.get("title") or hit.get("story_title") or "HN Discussion",
        content=strip_html(content) or None,
        author=hit.get("author") or "",
        published=hit.get("created_at") or "",
        points=int(hit.get("points") or 0),
        comments=int(hit.get("num_comments") or 0),
        kind=kind,
    )
