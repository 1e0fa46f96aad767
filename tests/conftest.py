# -*- coding: utf-8 -*-
"""Shared fixtures: mention factory, static adapters, config copies."""

import copy
from datetime import datetime, timezone

import pytest

from mentionhub.config import DEFAULT_CFG, DEFAULT_SOURCES_CFG
from mentionhub.models import Mention
from mentionhub.sources import SourceAdapter
from mentionhub.utils import parse_date


class StaticAdapter(SourceAdapter):
    """Returns a fixed list of raw results, no network."""

    def __init__(self, source_id, items):
        super().__init__(client=None)
        self.source_id = source_id
        self.items = list(items)
        self.calls = 0

    async def _fetch(self, topics):
        self.calls += 1
        return list(self.items)


class ExplodingAdapter(SourceAdapter):
    """Raises straight out of run(), past its own guard."""

    def __init__(self, source_id):
        super().__init__(client=None)
        self.source_id = source_id

    async def run(self, topics):
        raise RuntimeError("adapter blew up")


@pytest.fixture
def make_mention():
    def _make(url, published=None, platform="blog", topic="vercel", **kw):
        fields = dict(
            id=kw.pop("id", 1),
            platform=platform,
            url=url,
            topic=topic,
            fetched_at=kw.pop("fetched_at", datetime(2024, 6, 2, tzinfo=timezone.utc)),
            published_at=parse_date(published),
        )
        fields.update(kw)
        return Mention(**fields)
    return _make


@pytest.fixture
def cfg(tmp_path):
    c = copy.deepcopy(DEFAULT_CFG)
    c["storage"]["db_path"] = str(tmp_path / "mentions.db")
    return c


@pytest.fixture
def sources_cfg():
    return copy.deepcopy(DEFAULT_SOURCES_CFG)


@pytest.fixture
def static_adapter():
    return StaticAdapter


@pytest.fixture
def exploding_adapter():
    return ExplodingAdapter


@pytest.fixture
def reject_url():
    """Install a trigger so inserting `url` fails inside SQLite, like a full disk would."""
    async def _install(db, url):
        await db.execute(
            "CREATE TRIGGER reject_url BEFORE INSERT ON mentions "
            f"WHEN NEW.url = '{url}' BEGIN SELECT RAISE(ABORT, 'disk full'); END;"
        )
        await db.commit()
    return _install
