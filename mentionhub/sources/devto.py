# Dev.to articles API (no auth). There is no search endpoint: tags are
# queried directly and the "top" listing is filtered client-side.

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ..models import DevToArticle
from ..utils import dedupe_by
from .base import SourceAdapter, SourceError

_TAG_RE = re.compile(r"[^a-z0-9]")
# score = positive reactions / REACTIONS_SCALE
REACTIONS_SCALE = 50.0


def topic_tag(topic: str) -> str:
    """dev.to tags are lowercase alphanumerics: 'Next.js' -> 'nextjs'."""
    return _TAG_RE.sub("", topic.lower())


class DevToAdapter(SourceAdapter):
    source_id = "devto"

    def __init__(self, client, settings=None):
        super().__init__(client, settings)
        self.base_url = self.settings.get("base_url", "https://dev.to/api").rstrip("/")
        self.per_page = int(self.settings.get("per_page", 30))

    def tags(self, topics: List[str]) -> List[str]:
        out: List[str] = []
        for t in list(map(topic_tag, topics)) + list(self.settings.get("extra_tags") or []):
            if t and t not in out:
                out.append(t)
        return out

    async def _fetch(self, topics: List[str]) -> List[DevToArticle]:
        calls = [self._by_tag(tag) for tag in self.tags(topics)]
        calls.append(self._top_matching(topics))
        articles = await self._gather(calls)
        return dedupe_by(articles, lambda a: a.id)

    async def _by_tag(self, tag: str) -> List[DevToArticle]:
        params = {"tag": tag, "per_page": self.per_page, "top": 7}
        return self._parse_list(await self._get_json(f"{self.base_url}/articles", params=params))

    async def _top_matching(self, topics: List[str]) -> List[DevToArticle]:
        params = {"per_page": 100, "top": 30}
        articles = self._parse_list(await self._get_json(f"{self.base_url}/articles", params=params))
        needles = [t.lower() for t in topics]
        return [a for a in articles if _mentions_any(a, needles)]

    @staticmethod
    def _parse_list(data: Any) -> List[DevToArticle]:
        if not isinstance(data, list):
            raise SourceError("unexpected dev.to payload")
        return [a for a in (parse_article(item) for item in data) if a is not None]


def _mentions_any(a: DevToArticle, needles: List[str]) -> bool:
    title = (a.title or "").lower()
    desc = (a.description or "").lower()
    tags = [t.lower() for t in a.tags]
    return any(n in title or n in desc or any(n in t for t in tags) for n in needles)


def parse_article(item: Dict[str, Any]) -> Optional[DevToArticle]:
    if not isinstance(item, dict) or item.get("id") is None or not item.get("url"):
        return None
    user = item.get("user") or {}
    tags = item.get("tag_list") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]
    return DevToArticle(
        id=str(item["id"]),
        url=item["url"],
        title=item.get("title") or "",
        description=item.get("description") or None,
        author=user.get("name") or user.get("username") or "",
        published=item.get("published_at") or "",
        reactions=int(item.get("positive_reactions_count") or 0),
        comments=int(item.get("comments_count") or 0),
        tags=list(tags),
    )
