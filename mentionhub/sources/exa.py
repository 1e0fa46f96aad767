# -*- coding: utf-8 -*-
"""
sources/exa.py
Web-Search adapter (Exa neural search, needs EXA_API_KEY).

Only third-party pages are kept: results on the product's own domains are
dropped, deployed user subdomains (foo.vercel.app) are kept.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List

from ..models import WebResult
from ..utils import dedupe_by, is_first_party, normalize_link
from .base import SourceAdapter, SourceError


class ExaAdapter(SourceAdapter):
    source_id = "exa"
    timeout = 30.0

    def __init__(self, client, settings=None):
        super().__init__(client, settings)
        self.endpoint = self.settings.get("endpoint", "https://api.exa.ai/search")
        self.num_results = int(self.settings.get("num_results", 20))
        self.deny_domains = list(self.settings.get("first_party_domains") or [])
        self.app_suffixes = list(self.settings.get("app_suffixes") or [])

    def queries(self, topics: List[str]) -> List[str]:
        out: List[str] = []
        for t in topics:
            out.append(t)
            out.append(f"{t} deployed launched project")
        out.extend(self.settings.get("queries") or [])
        return out

    async def _fetch(self, topics: List[str]) -> List[WebResult]:
        api_key = os.environ.get("EXA_API_KEY", "").strip()
        if not api_key:
            raise SourceError("EXA_API_KEY environment variable is required")

        results = await self._gather([self._search(q, api_key) for q in self.queries(topics)])
        kept = [r for r in results if not is_first_party(r.url, self.deny_domains, self.app_suffixes)]
        return dedupe_by(kept, lambda r: r.url)

    async def _search(self, query: str, api_key: str) -> List[WebResult]:
        payload = {
            "query": query,
            "type": "neural",
            "useAutoprompt": True,
            "numResults": self.num_results,
            "contents": {
                "text": {"maxCharacters": 500},
                "highlights": {"numSentences": 2, "highlightsPerUrl": 2},
            },
        }
        data = await self._post_json(self.endpoint, payload, headers={"x-api-key": api_key})
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise SourceError(f"unexpected Exa payload for {query!r}")
        return [r for r in (parse_result(item) for item in data["results"]) if r is not None]


def parse_result(item: Dict[str, Any]) -> WebResult | None:
    if not isinstance(item, dict) or not item.get("url"):
        return None
    return WebResult(
        url=normalize_link(item["url"]),
        title=item.get("title") or None,
        text=item.get("text") or None,
        author=item.get("author") or None,
        published=item.get("publishedDate") or None,
        score=float(item.get("score") or 0.0),
        highlights=[h for h in (item.get("highlights") or []) if isinstance(h, str)],
    )
