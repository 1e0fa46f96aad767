# -*- coding: utf-8 -*-
"""
sources/base.py
Common plumbing for the source adapters.

An adapter turns a topic list into a list of its own raw result type.
fetch() never raises: network errors, non-2xx replies and malformed payloads
end up as an empty list plus a logged reason. run() exposes that reason to
the collector as a SourceResult.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Sequence

import httpx

log = logging.getLogger(__name__)


class SourceError(Exception):
    """A single upstream call failed (status, payload or configuration)."""


@dataclass
class SourceResult:
    source: str
    items: List[Any] = field(default_factory=list)
    error: Optional[str] = None


class SourceAdapter:
    source_id: str = ""
    # per-call timeout, seconds; overridden by settings["timeout_sec"]
    timeout: float = 15.0

    def __init__(self, client: httpx.AsyncClient, settings: Optional[Dict[str, Any]] = None):
        self.client = client
        self.settings = settings or {}
        self.timeout = float(self.settings.get("timeout_sec", self.timeout))

    # ---------- public ----------

    async def fetch(self, topics: Sequence[str]) -> List[Any]:
        return (await self.run(topics)).items

    async def run(self, topics: Sequence[str]) -> SourceResult:
        try:
            items = await self._fetch(list(topics))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = _describe(e)
            log.warning("[%s] fetch failed: %s", self.source_id, reason)
            return SourceResult(self.source_id, [], reason)
        log.info("[%s] %d results", self.source_id, len(items))
        return SourceResult(self.source_id, items, None)

    # ---------- for subclasses ----------

    async def _fetch(self, topics: List[str]) -> List[Any]:
        raise NotImplementedError

    async def _gather(self, calls: Sequence[Awaitable[List[Any]]]) -> List[Any]:
        """
        Run sub-queries concurrently and concatenate them in call order.
        A failing sub-query is logged and skipped; if every one fails the
        first error is raised so run() reports the adapter as failed.
        """
        if not calls:
            return []
        results = await asyncio.gather(*calls, return_exceptions=True)
        out: List[Any] = []
        errors: List[BaseException] = []
        for r in results:
            if isinstance(r, BaseException):
                if isinstance(r, asyncio.CancelledError):
                    raise r
                errors.append(r)
                log.warning("[%s] sub-query failed: %s", self.source_id, _describe(r))
                continue
            out.extend(r)
        if errors and len(errors) == len(results):
            raise errors[0]
        return out

    async def _get(self, url: str, *, params: Optional[Dict[str, Any]] = None,
                   headers: Optional[Dict[str, str]] = None,
                   timeout: Optional[float] = None) -> httpx.Response:
        resp = await self.client.get(
            url, params=params, headers=headers,
            timeout=timeout if timeout is not None else self.timeout,
        )
        if resp.status_code != 200:
            raise SourceError(f"GET {url} -> http {resp.status_code}")
        return resp

    async def _post_json(self, url: str, payload: Dict[str, Any], *,
                         headers: Optional[Dict[str, str]] = None,
                         timeout: Optional[float] = None) -> Any:
        resp = await self.client.post(
            url, json=payload, headers=headers,
            timeout=timeout if timeout is not None else self.timeout,
        )
        if resp.status_code != 200:
            raise SourceError(f"POST {url} -> http {resp.status_code}: {(resp.text or '')[:200]}")
        return _json(resp)

    async def _get_json(self, url: str, **kw) -> Any:
        return _json(await self._get(url, **kw))

    async def _get_text(self, url: str, **kw) -> str:
        return (await self._get(url, **kw)).text


def _json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise SourceError(f"{resp.request.url} returned invalid JSON: {e}") from e


def _describe(e: BaseException) -> str:
    if isinstance(e, SourceError):
        return str(e)
    if isinstance(e, httpx.TimeoutException):
        return f"timeout ({type(e).__name__})"
    return f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
