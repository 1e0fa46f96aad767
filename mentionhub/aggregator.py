# -*- coding: utf-8 -*-
"""
aggregator.py
Merge per-source mention lists into one feed:
- dedupe by url, first occurrence wins (sources are visited in the given order)
- newest first; missing dates sort as epoch 0, i.e. last; ties keep prior order
- stats computed from the deduplicated list only
"""

from __future__ import annotations

from functools import reduce
from itertools import chain
from typing import Dict, List, Mapping, Sequence, Set, Tuple

from .models import Feed, Mention, Stats

_Acc = Tuple[Set[str], List[Mention]]


def _keep_first(acc: _Acc, m: Mention) -> _Acc:
    seen, kept = acc
    if m.url not in seen:
        seen.add(m.url)
        kept.append(m)
    return acc


def dedupe(mentions: Sequence[Mention]) -> List[Mention]:
    # fresh accumulator per call
    _, kept = reduce(_keep_first, mentions, (set(), []))
    return kept


def _sort_key(m: Mention) -> float:
    return m.published_at.timestamp() if m.published_at else 0.0


def sort_newest_first(mentions: Sequence[Mention]) -> List[Mention]:
    # sorted() stays stable with reverse=True
    return sorted(mentions, key=_sort_key, reverse=True)


def compute_stats(mentions: Sequence[Mention]) -> Stats:
    by_platform: Dict[str, int] = {}
    by_topic: Dict[str, int] = {}
    for m in mentions:
        by_platform[m.platform] = by_platform.get(m.platform, 0) + 1
        by_topic[m.topic] = by_topic.get(m.topic, 0) + 1
    platforms = sorted(by_platform.items(), key=lambda kv: kv[1], reverse=True)
    return Stats(
        total=len(mentions),
        by_platform=[{"platform": p, "count": c} for p, c in platforms],
        by_topic=[{"topic": t, "count": c} for t, c in by_topic.items()],
    )


def aggregate(per_source: Mapping[str, Sequence[Mention]]) -> Feed:
    merged = list(chain.from_iterable(per_source.values()))
    mentions = sort_newest_first(dedupe(merged))
    return Feed(mentions=mentions, stats=compute_stats(mentions))
