# Shared helpers: time, text clean-up, URL / platform detection

from __future__ import annotations

import calendar
import html
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from dateutil import parser as date_parser

T = TypeVar("T")

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def now_ms() -> int:
    """Current UTC time in milliseconds."""
    return int(time.time() * 1000)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ms_to_dt(ms: Optional[int]) -> Optional[datetime]:
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)


def dt_to_ms(dt: Optional[datetime]) -> Optional[int]:
    if dt is None:
        return None
    return int(dt.timestamp() * 1000)


def parse_date(value) -> Optional[datetime]:
    """
    ISO-8601 / RFC 822 string, epoch seconds or datetime -> aware UTC datetime.
    Anything unparsable becomes None (sorted last downstream).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        try:
            dt = date_parser.parse(str(value).strip())
        except (ValueError, OverflowError, TypeError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def entry_time(entry: Any) -> Optional[datetime]:
    """feedparser entry -> published (else updated) time; the *_parsed structs are UTC."""
    for key in ("published_parsed", "updated_parsed"):
        st = entry.get(key)
        if st:
            try:
                return datetime.fromtimestamp(calendar.timegm(st), tz=timezone.utc)
            except (OverflowError, ValueError, TypeError):
                continue
    return parse_date(entry.get("published") or entry.get("updated"))


def iso_utc(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def strip_html(text: Optional[str], limit: Optional[int] = None) -> str:
    """Decode entities, drop tags, collapse whitespace, optionally clip."""
    if not text:
        return ""
    out = html.unescape(text)
    out = _TAG_RE.sub(" ", out)
    out = _WS_RE.sub(" ", out).strip()
    if limit is not None:
        out = out[:limit]
    return out


def normalize_link(url: Optional[str]) -> Optional[str]:
    """
    Drop utm_* / ref tracking params and the fragment so the same page
    reached through different links keys to one URL.
    """
    if not url:
        return url
    try:
        u = urlparse(url.strip())
    except ValueError:
        return url
    qs = [
        (k, v)
        for (k, v) in parse_qsl(u.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in {"ref", "ref_src"}
    ]
    return urlunparse((u.scheme, u.netloc, u.path, u.params, urlencode(qs, doseq=True), ""))


def url_host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def _host_is(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


# host suffix -> platform, checked in order
PLATFORM_HOSTS = (
    ("twitter.com", "twitter"),
    ("x.com", "twitter"),
    ("linkedin.com", "linkedin"),
    ("reddit.com", "reddit"),
    ("redd.it", "reddit"),
    ("news.ycombinator.com", "hackernews"),
    ("youtube.com", "youtube"),
    ("youtu.be", "youtube"),
    ("github.com", "github"),
    ("dev.to", "devto"),
)


def detect_platform(url: str, app_suffixes: Sequence[str] = (".vercel.app",)) -> str:
    """Platform from URL host; deployed user subdomains are 'app', everything else 'blog'."""
    host = url_host(url)
    if not host:
        return "blog"
    for domain, platform in PLATFORM_HOSTS:
        if _host_is(host, domain):
            return platform
    for suffix in app_suffixes:
        if is_user_subdomain(host, suffix):
            return "app"
    return "blog"


def is_user_subdomain(host: str, suffix: str) -> bool:
    # ".vercel.app" matches "foo.vercel.app" but not "vercel.app" or "www.vercel.app"
    suffix = suffix.lower()
    if not suffix.startswith("."):
        suffix = "." + suffix
    return host.endswith(suffix) and host != "www" + suffix and len(host) > len(suffix)


def is_first_party(url: str, deny_domains: Iterable[str], app_suffixes: Sequence[str] = ()) -> bool:
    """
    True when the URL lives on one of the product's own domains.
    Deployed user subdomains are third-party even though their parent domain is denied.
    """
    host = url_host(url)
    if not host:
        return False
    if any(is_user_subdomain(host, s) for s in app_suffixes):
        return False
    return any(_host_is(host, d.lower()) for d in deny_domains)


def dedupe_by(items: Iterable[T], key: Callable[[T], str]) -> List[T]:
    """Keep the first item for every key, preserving order."""
    seen = set()
    out: List[T] = []
    for it in items:
        k = key(it)
        if k in seen:
            continue
        seen.add(k)
        out.append(it)
    return out


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]
