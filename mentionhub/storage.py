# -*- coding: utf-8 -*-
"""
storage.py
SQLite (aiosqlite) persistence for mentions:
- init / create tables (idempotent)
- upsert keyed by url (coalesce: an incoming NULL never overwrites a value)
- filtered, paginated reads, newest first, undated rows last
- platform / topic stats
Timestamps are stored as UTC milliseconds, highlights as a JSON array
(an empty list is stored as NULL so it cannot clobber existing highlights).
"""

from __future__ import annotations

import functools
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import aiosqlite

from .models import Mention, Stats
from .utils import dt_to_ms, ms_to_dt, now_ms

log = logging.getLogger(__name__)


class StorageError(Exception):
    """The mention store is missing or a query against it failed."""


SCHEMA_MENTIONS = """
CREATE TABLE IF NOT EXISTS mentions (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    platform     TEXT NOT NULL,
    external_id  TEXT,
    url          TEXT NOT NULL UNIQUE,
    title        TEXT,
    content      TEXT,
    author       TEXT,
    published_at INTEGER,
    fetched_at   INTEGER NOT NULL,
    topic        TEXT,
    score        REAL,
    highlights   TEXT
);
"""

SCHEMA_IDX = """
CREATE INDEX IF NOT EXISTS idx_mentions_platform  ON mentions(platform);
CREATE INDEX IF NOT EXISTS idx_mentions_topic     ON mentions(topic);
CREATE INDEX IF NOT EXISTS idx_mentions_published ON mentions(published_at DESC);
"""

COLUMNS = ("id, platform, external_id, url, title, content, author, "
           "published_at, fetched_at, topic, score, highlights")


def _wrap_errors(fn):
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except sqlite3.Error as e:
            raise StorageError(f"{fn.__name__}: {e}") from e
    return wrapper


# --------- connect / schema ---------

async def _connect(p: Path) -> aiosqlite.Connection:
    db = await aiosqlite.connect(str(p))
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL;")
    await db.execute("PRAGMA synchronous=NORMAL;")
    return db


@_wrap_errors
async def ensure_schema(db: aiosqlite.Connection) -> None:
    await db.execute(SCHEMA_MENTIONS)
    for stmt in filter(None, SCHEMA_IDX.split(";")):
        s = stmt.strip()
        if s:
            await db.execute(s + ";")
    await db.commit()


@_wrap_errors
async def init_db(db_path: Union[str, Path]) -> aiosqlite.Connection:
    """Open (creating file and tables if missing) and return a connection. Used by the write path."""
    p = Path(db_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    db = await _connect(p)
    await ensure_schema(db)
    return db


@_wrap_errors
async def open_db(db_path: Union[str, Path]) -> aiosqlite.Connection:
    """Read path: never creates anything, a missing store is an error the caller can fall back on."""
    p = Path(db_path)
    if not p.exists():
        raise StorageError(f"database not found: {p}")
    db = await _connect(p)
    async with db.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name='mentions';"
    ) as cur:
        row = await cur.fetchone()
    if row is None:
        await db.close()
        raise StorageError(f"mentions table missing in {p}")
    return db


# --------- upsert ---------

def _encode_highlights(highlights: Optional[List[str]]) -> Optional[str]:
    if not highlights:
        return None
    return json.dumps(list(highlights), ensure_ascii=False)


def _decode_highlights(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        return []
    return [h for h in data if isinstance(h, str)] if isinstance(data, list) else []


@_wrap_errors
async def upsert_mention(db: aiosqlite.Connection, m: Mention) -> bool:
    """
    Insert, or on url conflict refresh title/content/score/highlights where
    the incoming value is not NULL. id, fetched_at and the other columns keep
    their first-insert values. Returns True when a new row was created.
    """
    if not m.url:
        raise ValueError("upsert_mention: missing url")
    highlights = _encode_highlights(m.highlights)
    fetched = dt_to_ms(m.fetched_at) or now_ms()

    cur = await db.execute(
        """
        INSERT INTO mentions(platform, external_id, url, title, content, author,
                             published_at, fetched_at, topic, score, highlights)
        VALUES(?,?,?,?,?,?,?,?,?,?,?)
        ON CONFLICT(url) DO NOTHING
        """,
        (m.platform, m.external_id, m.url, m.title, m.content, m.author,
         dt_to_ms(m.published_at), fetched, m.topic, m.score, highlights),
    )
    inserted = cur.rowcount == 1
    await cur.close()

    if not inserted:
        await db.execute(
            """
            UPDATE mentions SET
                title      = COALESCE(?, title),
                content    = COALESCE(?, content),
                score      = COALESCE(?, score),
                highlights = COALESCE(?, highlights)
            WHERE url = ?
            """,
            (m.title, m.content, m.score, highlights, m.url),
        )
    await db.commit()
    return inserted


async def upsert_mentions(db: aiosqlite.Connection,
                          mentions: Iterable[Mention]) -> Tuple[int, int, Optional[str]]:
    """
    Row by row, stopping at the first StorageError; rows written before it
    stay written. Returns (inserted, updated, error or None).
    """
    inserted = updated = 0
    for m in mentions:
        try:
            created = await upsert_mention(db, m)
        except StorageError as e:
            log.error("[storage] upsert stopped at %s: %s", m.url, e)
            return inserted, updated, str(e)
        if created:
            inserted += 1
        else:
            updated += 1
    return inserted, updated, None


# --------- reads ---------

def _row_to_mention(row: Any) -> Mention:
    return Mention(
        id=row["id"],
        platform=row["platform"],
        external_id=row["external_id"],
        url=row["url"],
        title=row["title"],
        content=row["content"],
        author=row["author"],
        published_at=ms_to_dt(row["published_at"]),
        fetched_at=ms_to_dt(row["fetched_at"]),
        topic=row["topic"],
        score=row["score"],
        highlights=_decode_highlights(row["highlights"]),
    )


def _filter_clause(platform: Optional[str], topic: Optional[str]) -> Tuple[str, List[Any]]:
    sql = " WHERE 1=1"
    params: List[Any] = []
    if platform and platform != "all":
        sql += " AND platform = ?"
        params.append(platform)
    if topic and topic != "all":
        sql += " AND topic = ?"
        params.append(topic)
    return sql, params


@_wrap_errors
async def list_mentions(
    db: aiosqlite.Connection,
    *,
    platform: Optional[str] = None,
    topic: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Mention]:
    where, params = _filter_clause(platform, topic)
    sql = (
        f"SELECT {COLUMNS} FROM mentions{where}"
        " ORDER BY published_at IS NULL, published_at DESC, id ASC"
        " LIMIT ? OFFSET ?;"
    )
    out: List[Mention] = []
    async with db.execute(sql, (*params, int(limit), int(offset))) as cur:
        async for row in cur:
            out.append(_row_to_mention(row))
    return out


@_wrap_errors
async def get_stats(db: aiosqlite.Connection) -> Stats:
    async with db.execute("SELECT COUNT(*) FROM mentions;") as cur:
        total = (await cur.fetchone())[0]

    by_platform: List[Dict[str, Any]] = []
    async with db.execute(
        "SELECT platform, COUNT(*) AS n FROM mentions GROUP BY platform ORDER BY n DESC, platform;"
    ) as cur:
        async for row in cur:
            by_platform.append({"platform": row[0], "count": row[1]})

    by_topic: List[Dict[str, Any]] = []
    async with db.execute(
        "SELECT topic, COUNT(*) AS n FROM mentions GROUP BY topic ORDER BY n DESC, topic;"
    ) as cur:
        async for row in cur:
            by_topic.append({"topic": row[0], "count": row[1]})

    return Stats(total=int(total), by_platform=by_platform, by_topic=by_topic)
