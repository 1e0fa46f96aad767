# -*- coding: utf-8 -*-
"""
config.py
ops/config.yml and ops/sources.yml are optional; missing keys fall back to
the defaults below (one level deep merge, no magic beyond that).
Secrets are read from the environment only.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .models import FetchConfig
from .utils import split_csv

log = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parents[1]
OPS_DIR = ROOT / "ops"

# Web-Search first: on a URL collision the first source wins
SOURCE_IDS = ("exa", "hackernews", "reddit", "github", "devto", "youtube")

DEFAULT_CFG: Dict[str, Any] = {
    "pipeline": {
        "topics": ["vercel", "v0"],
        "enabled_sources": list(SOURCE_IDS),
        "timeout_sec": 55,
    },
    "storage": {
        "db_path": "mentions.db",
    },
    "server": {
        "host": "127.0.0.1",
        "port": 8000,
        "default_limit": 50,
        "max_limit": 500,
    },
    "http": {
        "user_agent": "mention-hub/1.0",
        "timeout_sec": 15,
    },
}

DEFAULT_SOURCES_CFG: Dict[str, Any] = {
    "exa": {
        "endpoint": "https://api.exa.ai/search",
        "num_results": 20,
        "timeout_sec": 30,
        "queries": [
            "check out my project vercel.app live demo",
            "just shipped launched on vercel",
        ],
        "first_party_domains": [
            "vercel.com", "vercel.app", "nextjs.org", "v0.dev", "v0.app", "turborepo.org",
        ],
        "app_suffixes": [".vercel.app"],
    },
    "reddit": {
        "base_url": "https://www.reddit.com",
        "subreddits": ["nextjs", "webdev"],
        "queries": [
            {"q": ".vercel.app", "limit": 25},
            {"q": "vercel", "subreddit": "SideProject", "limit": 15},
            {"q": "vercel.app", "subreddit": "webdev", "limit": 15},
            {"q": "vercel.app", "subreddit": "reactjs", "limit": 15},
        ],
    },
    "hackernews": {
        "base_url": "https://hn.algolia.com/api/v1",
        "days": 30,
        "hits_per_page": 30,
        "queries": ["v0.dev"],
    },
    "github": {
        "base_url": "https://api.github.com",
        "per_page": 30,
        "queries": ["vercel.app in:readme stars:>10"],
    },
    "devto": {
        "base_url": "https://dev.to/api",
        "per_page": 30,
        "extra_tags": ["nextjs"],
    },
    "youtube": {
        "instances": [
            "https://inv.nadeko.net",
            "https://invidious.nerdvpn.de",
            "https://invidious.jing.rocks",
        ],
        "instance_timeout_sec": 5,
        "max_results": 20,
        "queries": ["nextjs vercel"],
        "channels": [],
    },
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        log.warning("failed to read %s, using defaults: %s", path, e)
        return {}


def _merge(defaults: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(defaults)
    for key, value in (data or {}).items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = {**out[key], **value}
        else:
            out[key] = value
    return out


def load_cfg(path: Optional[Path] = None) -> Dict[str, Any]:
    """ops/config.yml (or $MENTIONHUB_CONFIG) over DEFAULT_CFG; $MENTIONHUB_DB overrides the db path."""
    if path is None:
        env_path = os.environ.get("MENTIONHUB_CONFIG")
        path = Path(env_path) if env_path else OPS_DIR / "config.yml"
    cfg = _merge(DEFAULT_CFG, _read_yaml(Path(path)))
    db_env = os.environ.get("MENTIONHUB_DB", "").strip()
    if db_env:
        cfg["storage"]["db_path"] = db_env
    return cfg


def load_sources_cfg(path: Optional[Path] = None) -> Dict[str, Any]:
    if path is None:
        path = OPS_DIR / "sources.yml"
    data = _read_yaml(Path(path))
    return _merge(DEFAULT_SOURCES_CFG, data.get("sources", data))


def db_path(cfg: Dict[str, Any]) -> Path:
    p = Path(cfg["storage"]["db_path"])
    return p if p.is_absolute() else ROOT / p


def _clean_topics(topics: Iterable[str]) -> List[str]:
    out: List[str] = []
    seen = set()
    for t in topics:
        t = (t or "").strip()
        if not t or t.lower() in seen:
            continue
        seen.add(t.lower())
        out.append(t)
    return out


def _clean_sources(sources: Iterable[str]) -> List[str]:
    out: List[str] = []
    for s in sources:
        s = (s or "").strip().lower()
        if not s or s in out:
            continue
        if s not in SOURCE_IDS:
            log.warning("unknown source id %r ignored", s)
            continue
        out.append(s)
    # Web-Search goes first when present, the rest keep their enable order
    if "exa" in out:
        out.remove("exa")
        out.insert(0, "exa")
    return out


def fetch_config_from_params(
    topics: Optional[str] = None,
    sources: Optional[str] = None,
    cfg: Optional[Dict[str, Any]] = None,
) -> FetchConfig:
    """
    Build a FetchConfig from comma-separated query/CLI values.
    None means "use the configured default"; an explicit empty sources value
    means "fetch nothing".
    """
    cfg = cfg or load_cfg()
    pipeline = cfg["pipeline"]

    topic_list = _clean_topics(split_csv(topics)) if topics is not None else []
    if not topic_list:
        topic_list = _clean_topics(pipeline.get("topics") or [])

    if sources is None:
        source_list = _clean_sources(pipeline.get("enabled_sources") or [])
    else:
        source_list = _clean_sources(split_csv(sources))

    return FetchConfig(topics=topic_list, enabled_sources=source_list)
