# -*- coding: utf-8 -*-
"""Source adapters against httpx.MockTransport; no real network."""

import asyncio
import json
from datetime import datetime, timezone

import httpx

from mentionhub.normalizer import normalize
from mentionhub.sources import build_adapter
from mentionhub.sources.devto import topic_tag
from mentionhub.sources.reddit import parse_feed
from mentionhub.sources.youtube import parse_channel_feed

REDDIT_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>search results</title>
  <entry>
    <author><name>/u/alice</name><uri>https://www.reddit.com/user/alice</uri></author>
    <category term="nextjs" label="r/nextjs"/>
    <content type="html">&lt;p&gt;Deployed my app on &lt;b&gt;Vercel&lt;/b&gt; today&lt;/p&gt;</content>
    <id>t3_abc123</id>
    <link href="https://www.reddit.com/r/nextjs/comments/abc123/my_app/"/>
    <updated>2024-06-01T10:00:00+00:00</updated>
    <title>My Vercel app &amp; friends</title>
  </entry>
  <entry>
    <author><name>/u/bob</name></author>
    <id>t3_nolink</id>
    <updated>2024-06-01T11:00:00+00:00</updated>
    <title>No link here</title>
  </entry>
</feed>
"""

REDDIT_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>r/webdev</title>
    <item>
      <title>Vercel preview deploys</title>
      <link>https://www.reddit.com/r/webdev/comments/r1/preview/</link>
      <guid isPermaLink="false">t3_r1</guid>
      <pubDate>Sat, 01 Jun 2024 12:00:00 GMT</pubDate>
    </item>
    <item>
      <title>guid only</title>
      <guid>t3_r2</guid>
      <pubDate>Sat, 01 Jun 2024 13:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

YOUTUBE_CHANNEL_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015"
      xmlns:media="http://search.yahoo.com/mrss/"
      xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <id>yt:video:vid123</id>
    <yt:videoId>vid123</yt:videoId>
    <title>Deploying to Vercel</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=vid123"/>
    <author><name>Some Channel</name></author>
    <published>2024-06-01T09:00:00+00:00</published>
    <media:group><media:description>How to deploy</media:description></media:group>
  </entry>
</feed>
"""


def _run(source, handler, topics, settings=None):
    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            adapter = build_adapter(source, client, settings or {})
            return await adapter.run(topics)
    return asyncio.run(main())


# ---------- Web-Search ----------

def test_exa_filters_first_party_and_dedupes(monkeypatch):
    monkeypatch.setenv("EXA_API_KEY", "k")
    seen = []

    def handler(request):
        assert request.headers["x-api-key"] == "k"
        seen.append(json.loads(request.content)["query"])
        return httpx.Response(200, json={"results": [
            {"url": "https://vercel.com/blog/x", "title": "first party"},
            {"url": "https://www.vercel.app/", "title": "marketing"},
            {"url": "https://alice.vercel.app/", "title": "my app", "score": 0.3},
            {"url": "https://blog.example.com/p?utm_source=x", "title": "third party",
             "highlights": ["nice"], "publishedDate": "2024-05-01T00:00:00.000Z"},
        ]})

    settings = {"first_party_domains": ["vercel.com", "vercel.app"], "app_suffixes": [".vercel.app"],
                "queries": ["extra query"]}
    result = _run("exa", handler, ["vercel"], settings)
    assert result.error is None
    assert [r.url for r in result.items] == ["https://alice.vercel.app/", "https://blog.example.com/p"]
    assert seen == ["vercel", "vercel deployed launched project", "extra query"]


def test_exa_without_key_fails_without_calls(monkeypatch):
    monkeypatch.delenv("EXA_API_KEY", raising=False)

    def handler(request):
        raise AssertionError("no request expected")

    result = _run("exa", handler, ["vercel"])
    assert result.items == []
    assert "EXA_API_KEY" in result.error


# ---------- Reddit ----------

def test_reddit_feed_parsing():
    posts = parse_feed(REDDIT_FEED)
    assert len(posts) == 1
    p = posts[0]
    assert p.id == "t3_abc123"
    assert p.url == "https://www.reddit.com/r/nextjs/comments/abc123/my_app/"
    assert p.author == "alice"
    assert p.title == "My Vercel app & friends"
    assert p.content == "Deployed my app on Vercel today"
    assert p.subreddit == "nextjs"
    assert p.published == "2024-06-01T10:00:00Z"


def test_reddit_entry_without_link_is_skipped():
    # feedparser falls back to the id for `link` ("t3_nolink"); that is not a url
    assert [p.id for p in parse_feed(REDDIT_FEED)] == ["t3_abc123"]
    assert all(p.url.startswith("https://") for p in parse_feed(REDDIT_RSS))


def test_reddit_rss_dates_come_from_the_parsed_struct():
    posts = parse_feed(REDDIT_RSS)
    assert [p.id for p in posts] == ["t3_r1"]
    assert posts[0].published == "2024-06-01T12:00:00Z"
    m = normalize("reddit", posts[0], ["vercel"])
    assert m.published_at == datetime(2024, 6, 1, 12, tzinfo=timezone.utc)


def test_reddit_malformed_feed_does_not_raise():
    assert parse_feed("<feed><entry><title>broken") == []
    assert parse_feed("not xml at all") == []


def test_reddit_dedupes_across_feeds_and_tolerates_one_failure():
    calls = []

    def handler(request):
        calls.append(str(request.url))
        if "/r/webdev/" in request.url.path:
            return httpx.Response(503)
        return httpx.Response(200, text=REDDIT_FEED)

    result = _run("reddit", handler, ["vercel"], {"subreddits": ["nextjs", "webdev"], "queries": []})
    assert result.error is None
    assert [p.id for p in result.items] == ["t3_abc123"]
    assert len(calls) == 3
    assert any("restrict_sr=1" in c for c in calls)


def test_reddit_all_feeds_failing_is_reported():
    result = _run("reddit", lambda r: httpx.Response(429), ["vercel"], {"subreddits": [], "queries": []})
    assert result.items == []
    assert "429" in result.error


# ---------- Hacker News ----------

def test_hackernews_stories_and_comments():
    def handler(request):
        tags = request.url.params["tags"]
        assert request.url.params["numericFilters"].startswith("created_at_i>")
        if tags == "story":
            return httpx.Response(200, json={"hits": [
                {"objectID": "1", "title": "Vercel story", "url": "https://example.com/a",
                 "author": "pg", "created_at": "2024-06-01T00:00:00Z", "points": 120},
                {"objectID": "2", "title": "Ask HN", "author": "x", "created_at": "2024-06-02T00:00:00Z"},
            ]})
        return httpx.Response(200, json={"hits": [
            {"objectID": "1", "comment_text": "dup id", "author": "y", "created_at": "2024-06-01T00:00:00Z"},
            {"objectID": "3", "comment_text": "<p>I use vercel</p>", "story_title": "Some story",
             "author": "z", "created_at": "2024-06-03T00:00:00Z"},
        ]})

    result = _run("hackernews", handler, ["vercel"], {"queries": []})
    by_id = {h.id: h for h in result.items}
    assert sorted(by_id) == ["1", "2", "3"]
    assert by_id["1"].points == 120
    assert by_id["2"].url == "https://news.ycombinator.com/item?id=2"
    assert by_id["3"].kind == "comment"
    assert by_id["3"].content == "I use vercel"


def test_hackernews_invalid_json_returns_empty():
    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(
                lambda r: httpx.Response(200, text="<html>oops</html>"))) as client:
            return await build_adapter("hackernews", client, {}).fetch(["vercel"])
    assert asyncio.run(main()) == []


# ---------- GitHub ----------

def test_github_search(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "tok")

    def handler(request):
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.params["sort"] == "updated"
        return httpx.Response(200, json={"items": [
            {"id": 11, "full_name": "alice/site", "html_url": "https://github.com/alice/site",
             "description": "my site", "stargazers_count": 40, "updated_at": "2024-06-01T00:00:00Z",
             "owner": {"login": "alice"}, "topics": ["vercel"], "homepage": "https://alice.vercel.app"},
            {"id": 12, "full_name": "broken"},
        ]})

    result = _run("github", handler, ["vercel"], {"queries": ["vercel.app in:readme"]})
    assert [r.id for r in result.items] == ["11"]
    assert result.items[0].author == "alice"
    assert result.items[0].topics == ["vercel"]


# ---------- Dev.to ----------

def test_devto_tags_and_client_side_filter():
    tagged = [{"id": 1, "title": "Next on Vercel", "description": "d", "url": "https://dev.to/a/1",
               "published_at": "2024-06-01T00:00:00Z", "user": {"name": "A", "username": "a"},
               "positive_reactions_count": 10, "comments_count": 1, "tag_list": ["vercel"]}]
    top = [
        {"id": 1, "title": "dup", "url": "https://dev.to/a/1", "user": {"username": "a"}, "tag_list": []},
        {"id": 2, "title": "Why I left Vercel", "url": "https://dev.to/b/2", "user": {"username": "b"},
         "tag_list": "webdev, hosting"},
        {"id": 3, "title": "Rust tips", "url": "https://dev.to/c/3", "user": {"username": "c"}, "tag_list": []},
    ]
    seen_tags = []

    def handler(request):
        tag = request.url.params.get("tag")
        if tag:
            seen_tags.append(tag)
            return httpx.Response(200, json=tagged)
        return httpx.Response(200, json=top)

    result = _run("devto", handler, ["Vercel"], {"extra_tags": ["nextjs"]})
    assert seen_tags == ["vercel", "nextjs"]
    assert [a.id for a in result.items] == ["1", "2"]
    assert result.items[1].tags == ["webdev", "hosting"]


def test_devto_topic_tag():
    assert topic_tag("Next.js") == "nextjs"
    assert topic_tag("v0") == "v0"


# ---------- YouTube ----------

def test_youtube_instance_failover():
    hits = []

    def handler(request):
        hits.append(request.url.host)
        if request.url.host == "bad.example":
            return httpx.Response(500)
        return httpx.Response(200, json=[
            {"videoId": "v1", "title": "Vercel tutorial", "author": "c", "published": 1717200000},
            {"videoId": "v1", "title": "dup"},
            {"title": "no id"},
        ])

    settings = {"instances": ["https://bad.example", "https://good.example"], "queries": []}
    result = _run("youtube", handler, ["vercel"], settings)
    assert hits == ["bad.example", "good.example"]
    assert [v.id for v in result.items] == ["v1"]
    assert result.items[0].url == "https://www.youtube.com/watch?v=v1"
    assert result.items[0].published.startswith("2024-06-01")


def test_youtube_all_instances_down():
    settings = {"instances": ["https://a.example", "https://b.example"], "queries": []}
    result = _run("youtube", lambda r: httpx.Response(502), ["vercel"], settings)
    assert result.items == []
    assert "Invidious" in result.error


def test_youtube_channel_feed():
    videos = parse_channel_feed(YOUTUBE_CHANNEL_FEED)
    assert [v.id for v in videos] == ["vid123"]
    assert videos[0].title == "Deploying to Vercel"
    assert videos[0].author == "Some Channel"
    assert videos[0].published == "2024-06-01T09:00:00Z"
