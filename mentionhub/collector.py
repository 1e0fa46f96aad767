# -*- coding: utf-8 -*-
"""
collector.py
Fetch orchestration: Idle -> Fetching -> Merging -> (Persisting ->) Done

All enabled adapters run concurrently on one shared httpx client. Every call
is guarded here as well as inside the adapter: an exception or a timeout
becomes an empty result tagged with the source id, so one broken source never
fails the cycle. The collector waits for every adapter (bounded by
pipeline.timeout_sec) before merging.

Two modes:
- live():      fetch -> normalize -> aggregate -> return
- scheduled(): fetch -> normalize -> aggregate -> upsert into the store
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import aiosqlite
import httpx

from .aggregator import aggregate
from .config import load_cfg, load_sources_cfg
from .models import AdapterOutcome, Feed, FetchConfig, FetchReport
from .normalizer import normalize_all
from .sources import SourceAdapter, build_adapter
from .storage import upsert_mentions
from .utils import utc_now

log = logging.getLogger(__name__)


class State(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"
    PERSISTING = "persisting"
    DONE = "done"


@dataclass
class LiveFeed:
    config: FetchConfig
    feed: Feed
    failed_sources: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out = {"success": True}
        out.update(self.feed.to_dict())
        out.update({
            "topics": list(self.config.topics),
            "enabledSources": list(self.config.enabled_sources),
            "failedSources": dict(self.failed_sources),
            "pagination": {"limit": len(self.feed.mentions), "offset": 0, "hasMore": False},
        })
        return out


class Collector:
    def __init__(
        self,
        cfg: Optional[Dict[str, Any]] = None,
        sources_cfg: Optional[Dict[str, Any]] = None,
        adapters: Optional[Mapping[str, SourceAdapter]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cfg = cfg or load_cfg()
        self.sources_cfg = sources_cfg or load_sources_cfg()
        # pre-built adapters (tests, embedding); anything missing is built per cycle
        self._adapters = dict(adapters or {})
        self._transport = transport
        self.state = State.IDLE

    # ---------- helpers ----------

    def _set_state(self, state: State) -> None:
        log.debug("[collector] %s -> %s", self.state.value, state.value)
        self.state = state

    @property
    def timeout(self) -> float:
        return float(self.cfg["pipeline"].get("timeout_sec", 55))

    @property
    def app_suffixes(self) -> List[str]:
        return list(self.sources_cfg.get("exa", {}).get("app_suffixes") or [])

    def _client(self) -> httpx.AsyncClient:
        http = self.cfg.get("http", {})
        return httpx.AsyncClient(
            timeout=float(http.get("timeout_sec", 15)),
            headers={"User-Agent": http.get("user_agent", "mention-hub/1.0")},
            follow_redirects=True,
            transport=self._transport,
        )

    async def _guarded(self, source: str, adapter: SourceAdapter, topics: List[str]) -> AdapterOutcome:
        try:
            result = await asyncio.wait_for(adapter.run(topics), timeout=self.timeout)
            mentions = normalize_all(source, result.items, topics,
                                     fetched_at=utc_now(), app_suffixes=self.app_suffixes)
        except asyncio.TimeoutError:
            log.warning("[collector] %s timed out after %.0fs", source, self.timeout)
            return AdapterOutcome(source, [], f"timeout after {self.timeout:.0f}s")
        except Exception as e:
            log.warning("[collector] %s failed: %r", source, e)
            return AdapterOutcome(source, [], f"{type(e).__name__}: {e}")
        return AdapterOutcome(source, mentions, result.error)

    # ---------- fetching ----------

    async def gather(self, config: FetchConfig) -> List[AdapterOutcome]:
        """One outcome per enabled source, in enable order. No sources -> no requests."""
        if not config.enabled_sources:
            return []
        self._set_state(State.FETCHING)
        async with self._client() as client:
            calls = []
            for source in config.enabled_sources:
                adapter = self._adapters.get(source) or build_adapter(
                    source, client, self.sources_cfg.get(source, {}))
                calls.append(self._guarded(source, adapter, list(config.topics)))
            outcomes = await asyncio.gather(*calls)
        failed = {o.source: o.error for o in outcomes if o.error}
        log.info("[collector] fetched %d mentions from %d sources (%d failed)",
                 sum(len(o.mentions) for o in outcomes), len(outcomes), len(failed))
        return list(outcomes)

    async def _merged(self, config: FetchConfig):
        outcomes = await self.gather(config)
        self._set_state(State.MERGING)
        feed = aggregate({o.source: o.mentions for o in outcomes})
        failed = {o.source: o.error for o in outcomes if o.error}
        return feed, failed

    async def live(self, config: FetchConfig) -> LiveFeed:
        try:
            feed, failed = await self._merged(config)
        finally:
            self._set_state(State.DONE)
        return LiveFeed(config=config, feed=feed, failed_sources=failed)

    async def scheduled(self, config: FetchConfig, db: aiosqlite.Connection) -> FetchReport:
        try:
            feed, failed = await self._merged(config)
            self._set_state(State.PERSISTING)
            inserted, updated, error = await upsert_mentions(db, feed.mentions)
        finally:
            self._set_state(State.DONE)
        report = FetchReport(fetched=len(feed.mentions), inserted=inserted, updated=updated,
                             failed_sources=failed, error=error)
        log.info("[collector] stored: inserted=%d updated=%d", report.inserted, report.updated)
        return report
