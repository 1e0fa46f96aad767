# -*- coding: utf-8 -*-
"""
main.py
Command line entry:
  python -m mentionhub.main fetch  [--topics a,b] [--sources exa,reddit]   one scheduled run (stored)
  python -m mentionhub.main live   [--topics a,b] [--sources ...]          live run, prints JSON
  python -m mentionhub.main loop   --interval 900 [--run-seconds N]        repeat scheduled runs
  python -m mentionhub.main serve  [--host 127.0.0.1] [--port 8000]        HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional

from .collector import Collector
from .config import db_path, fetch_config_from_params, load_cfg, load_sources_cfg
from .models import FetchReport
from .storage import init_db

log = logging.getLogger("mentionhub")


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


async def fetch_once(cfg: Dict[str, Any], topics: Optional[str] = None,
                     sources: Optional[str] = None) -> FetchReport:
    config = fetch_config_from_params(topics, sources, cfg=cfg)
    db = await init_db(db_path(cfg))
    try:
        return await Collector(cfg=cfg, sources_cfg=load_sources_cfg()).scheduled(config, db)
    finally:
        await db.close()


async def run_loop(cfg: Dict[str, Any], interval: int, run_seconds: int = 0,
                   topics: Optional[str] = None, sources: Optional[str] = None) -> None:
    """Scheduled runs every `interval` seconds; a failed cycle is logged and the loop goes on."""
    async def _forever():
        while True:
            try:
                report = await fetch_once(cfg, topics, sources)
                log.info("[loop] cycle done: %s", report.to_dict())
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.error("[loop] cycle failed: %r", e)
            await asyncio.sleep(interval)

    log.info("[loop] started, every %ss", interval)
    try:
        if run_seconds and run_seconds > 0:
            try:
                await asyncio.wait_for(_forever(), timeout=run_seconds)
            except asyncio.TimeoutError:
                pass
        else:
            await _forever()
    finally:
        log.info("[loop] finished")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mentionhub", description="Social mention aggregation.")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("fetch", "live", "loop"):
        p = sub.add_parser(name)
        p.add_argument("--topics", default=None, help="comma separated, default from config")
        p.add_argument("--sources", default=None, help="comma separated source ids, default from config")
        if name == "loop":
            p.add_argument("--interval", type=int, default=900, help="seconds between runs")
            p.add_argument("--run-seconds", type=int, default=0, help="0 = run forever")

    p = sub.add_parser("serve")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    cfg = load_cfg()

    if args.command == "fetch":
        report = asyncio.run(fetch_once(cfg, args.topics, args.sources))
        print(json.dumps(report.to_dict(), indent=2))
        return 0 if report.ok else 1

    if args.command == "live":
        config = fetch_config_from_params(args.topics, args.sources, cfg=cfg)
        result = asyncio.run(Collector(cfg=cfg).live(config))
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0

    if args.command == "loop":
        asyncio.run(run_loop(cfg, args.interval, args.run_seconds, args.topics, args.sources))
        return 0

    from .web import create_app
    server = cfg["server"]
    create_app(cfg).run(host=args.host or server["host"], port=args.port or int(server["port"]))
    return 0


if __name__ == "__main__":
    sys.exit(main())
