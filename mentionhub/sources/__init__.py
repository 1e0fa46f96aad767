# Source adapter registry: source id -> adapter class

from __future__ import annotations

from typing import Any, Dict, Optional, Type

import httpx

from .base import SourceAdapter, SourceError, SourceResult
from .devto import DevToAdapter
from .exa import ExaAdapter
from .github import GitHubAdapter
from .hackernews import HackerNewsAdapter
from .reddit import RedditAdapter
from .youtube import YouTubeAdapter

ADAPTERS: Dict[str, Type[SourceAdapter]] = {
    "exa": ExaAdapter,
    "hackernews": HackerNewsAdapter,
    "reddit": RedditAdapter,
    "github": GitHubAdapter,
    "devto": DevToAdapter,
    "youtube": YouTubeAdapter,
}


def build_adapter(source_id: str, client: httpx.AsyncClient,
                  settings: Optional[Dict[str, Any]] = None) -> SourceAdapter:
    try:
        cls = ADAPTERS[source_id]
    except KeyError:
        raise ValueError(f"unknown source: {source_id}") from None
    return cls(client, settings)


__all__ = [
    "ADAPTERS", "SourceAdapter", "SourceError", "SourceResult", "build_adapter",
]
