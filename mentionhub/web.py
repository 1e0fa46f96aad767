# -*- coding: utf-8 -*-
"""
web.py
Flask HTTP surface (async views, needs flask[async]):
- GET /api/cron/fetch   scheduled run, bearer token must match CRON_SECRET
- GET /api/live         live fetch, nothing touches the store
- GET /api/mentions     persisted feed with filters and pagination
- GET /api/health
A 503 from /api/mentions means "store unavailable, fall back to /api/live".
"""

from __future__ import annotations

import hmac
import logging
import os
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request

from .collector import Collector
from .config import db_path, fetch_config_from_params, load_cfg, load_sources_cfg
from .storage import StorageError, get_stats, init_db, list_mentions, open_db

log = logging.getLogger(__name__)


def create_app(cfg: Optional[Dict[str, Any]] = None,
               sources_cfg: Optional[Dict[str, Any]] = None,
               collector_kwargs: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config["MENTIONHUB"] = cfg or load_cfg()
    app.config["MENTIONHUB_SOURCES"] = sources_cfg or load_sources_cfg()
    # extra Collector kwargs (adapters / transport) for tests
    app.config["MENTIONHUB_COLLECTOR"] = dict(collector_kwargs or {})
    app.register_error_handler(StorageError, _storage_error)
    _register_routes(app)
    return app


def _cfg() -> Dict[str, Any]:
    return current_app.config["MENTIONHUB"]


def _collector() -> Collector:
    return Collector(cfg=_cfg(), sources_cfg=current_app.config["MENTIONHUB_SOURCES"],
                     **current_app.config["MENTIONHUB_COLLECTOR"])


def _storage_error(e: StorageError):
    log.error("[web] storage unavailable: %s", e)
    return jsonify({"error": "Database temporarily unavailable", "details": str(e), "retry": True}), 503


def require_cron_secret(f):
    """Bearer token must equal CRON_SECRET; without a configured secret the check is skipped."""
    @wraps(f)
    async def decorated_function(*args, **kwargs):
        secret = os.environ.get("CRON_SECRET", "").strip()
        if secret:
            header = request.headers.get("Authorization", "")
            if not hmac.compare_digest(header.encode(), f"Bearer {secret}".encode()):
                return jsonify({"error": "Unauthorized"}), 401
        else:
            log.warning("[web] CRON_SECRET not set, scheduled trigger is open")
        return await f(*args, **kwargs)
    return decorated_function


def _int_arg(name: str, default: int, lo: int, hi: Optional[int] = None) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    value = int(raw)  # ValueError -> 400
    value = max(lo, value)
    return min(hi, value) if hi is not None else value


def _register_routes(app: Flask) -> None:

    @app.route("/api/health")
    def health_check():
        return jsonify({"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()})

    @app.route("/api/cron/fetch")
    @require_cron_secret
    async def cron_fetch():
        config = fetch_config_from_params(cfg=_cfg())
        db = await init_db(db_path(_cfg()))
        try:
            report = await _collector().scheduled(config, db)
        except StorageError:
            raise
        except Exception as e:
            log.exception("[web] cron fetch failed")
            return jsonify({"error": "Failed to fetch mentions", "details": str(e)}), 500
        finally:
            await db.close()
        return jsonify(report.to_dict()), (200 if report.ok else 500)

    @app.route("/api/live")
    async def live_fetch():
        config = fetch_config_from_params(
            topics=request.args.get("topics"),
            sources=request.args.get("sources"),
            cfg=_cfg(),
        )
        try:
            result = await _collector().live(config)
        except Exception as e:
            log.exception("[web] live fetch failed")
            return jsonify({"error": "Failed to fetch mentions", "details": str(e)}), 500
        return jsonify(result.to_dict())

    @app.route("/api/mentions")
    async def get_mentions():
        server = _cfg()["server"]
        try:
            limit = _int_arg("limit", int(server.get("default_limit", 50)), 1, int(server.get("max_limit", 500)))
            offset = _int_arg("offset", 0, 0)
        except ValueError:
            return jsonify({"error": "limit and offset must be integers"}), 400
        platform = request.args.get("platform") or None
        topic = request.args.get("topic") or None

        db = await open_db(db_path(_cfg()))
        try:
            mentions = await list_mentions(db, platform=platform, topic=topic, limit=limit, offset=offset)
            stats = await get_stats(db)
        finally:
            await db.close()

        return jsonify({
            "mentions": [m.to_dict() for m in mentions],
            "stats": stats.to_dict(),
            "pagination": {
                "limit": limit,
                "offset": offset,
                # a full page may or may not be followed by more rows
                "hasMore": len(mentions) == limit,
            },
        })
