# GitHub repository search. Unauthenticated: 10 req/min; GITHUB_TOKEN raises that to 30.

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from ..models import GitHubRepo
from ..utils import dedupe_by
from .base import SourceAdapter, SourceError


# score = stars / STARS_SCALE
STARS_SCALE = 100.0


class GitHubAdapter(SourceAdapter):
    source_id = "github"

    def __init__(self, client, settings=None):
        super().__init__(client, settings)
        self.base_url = self.settings.get("base_url", "https://api.github.com").rstrip("/")
        self.per_page = int(self.settings.get("per_page", 30))

    def queries(self, topics: List[str]) -> List[str]:
        out = [f"{t} deployed in:readme stars:>5" for t in topics]
        out.extend(self.settings.get("queries") or [])
        return out

    def headers(self) -> Dict[str, str]:
        h = {"Accept": "application/vnd.github.v3+json"}
        token = os.environ.get("GITHUB_TOKEN", "").strip()
        if token:
            h["Authorization"] = f"Bearer {token}"
        return h

    async def _fetch(self, topics: List[str]) -> List[GitHubRepo]:
        repos = await self._gather([self._search(q) for q in self.queries(topics)])
        return dedupe_by(repos, lambda r: r.id)

    async def _search(self, query: str) -> List[GitHubRepo]:
        params = {"q": query, "sort": "updated", "order": "desc", "per_page": self.per_page}
        data = await self._get_json(f"{self.base_url}/search/repositories", params=params, headers=self.headers())
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise SourceError(f"unexpected GitHub payload for {query!r}")
        return [r for r in (parse_repo(item) for item in data["items"]) if r is not None]


def parse_repo(item: Dict[str, Any]) -> Optional[GitHubRepo]:
    if not isinstance(item, dict) or item.get("id") is None or not item.get("html_url"):
        return None
    owner = item.get("owner") or {}
    return GitHubRepo(
        id=str(item["id"]),
        url=item["html_url"],
        title=item.get("full_name") or item["html_url"],
        description=item.get("description") or None,
        author=owner.get("login") or "",
        published=item.get("updated_at") or item.get("created_at") or "",
        stars=int(item.get("stargazers_count") or 0),
        homepage=item.get("homepage") or None,
        topics=list(item.get("topics") or []),
    )
