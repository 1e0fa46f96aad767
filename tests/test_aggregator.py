# -*- coding: utf-8 -*-
import random

from mentionhub.aggregator import aggregate, compute_stats, dedupe, sort_newest_first


def test_same_url_from_two_sources_collapses(make_mention):
    feed = aggregate({
        "exa": [make_mention("https://a.com/1", "2024-01-01", platform="blog")],
        "reddit": [make_mention("https://a.com/1", None, platform="reddit")],
    })
    assert [m.url for m in feed.mentions] == ["https://a.com/1"]
    # first source wins
    assert feed.mentions[0].platform == "blog"
    assert feed.stats.total == 1


def test_dated_mention_sorts_before_undated(make_mention):
    feed = aggregate({"exa": [
        make_mention("https://a.com/undated", None),
        make_mention("https://a.com/dated", "2024-06-01"),
    ]})
    assert [m.url for m in feed.mentions] == ["https://a.com/dated", "https://a.com/undated"]


def test_equal_timestamps_keep_relative_order(make_mention):
    ms = [make_mention(f"https://a.com/{i}", "2024-06-01") for i in range(5)]
    assert [m.url for m in sort_newest_first(ms)] == [m.url for m in ms]


def test_dedupe_and_sort_properties(make_mention):
    rng = random.Random(7)
    per_source = {}
    for source in ("exa", "hackernews", "reddit"):
        per_source[source] = [
            make_mention(
                f"https://a.com/{rng.randint(0, 15)}",
                rng.choice([None, "2024-01-01", "2024-03-05T12:00:00Z", "2023-12-31"]),
            )
            for _ in range(20)
        ]
    feed = aggregate(per_source)
    urls = [m.url for m in feed.mentions]
    assert len(urls) == len(set(urls))

    keys = [m.published_at.timestamp() if m.published_at else 0.0 for m in feed.mentions]
    assert all(a >= b for a, b in zip(keys, keys[1:]))


def test_output_independent_of_completion_timing(make_mention):
    a = [make_mention("https://a.com/1", "2024-01-02"), make_mention("https://a.com/2", None)]
    b = [make_mention("https://a.com/3", "2024-01-03")]
    first = aggregate({"exa": a, "reddit": b})
    again = aggregate({"exa": list(a), "reddit": list(b)})
    assert [m.url for m in first.mentions] == [m.url for m in again.mentions]


def test_stats_from_deduplicated_set(make_mention):
    feed = aggregate({
        "exa": [
            make_mention("https://a.com/1", platform="blog", topic="vercel"),
            make_mention("https://a.com/2", platform="blog", topic="v0"),
        ],
        "reddit": [
            make_mention("https://a.com/1", platform="reddit", topic="vercel"),
            make_mention("https://r.com/3", platform="reddit", topic="vercel"),
            make_mention("https://r.com/4", platform="reddit", topic="vercel"),
            make_mention("https://r.com/5", platform="reddit", topic="vercel"),
        ],
    })
    assert feed.stats.total == 5
    assert feed.stats.by_platform == [
        {"platform": "reddit", "count": 3},
        {"platform": "blog", "count": 2},
    ]
    # first-appearance order, not count order
    assert [r["topic"] for r in feed.stats.by_topic] == ["vercel", "v0"]
    assert sum(r["count"] for r in feed.stats.by_topic) == 5


def test_empty_input():
    feed = aggregate({})
    assert feed.to_dict() == {"mentions": [], "stats": {"total": 0, "byPlatform": [], "byTopic": []}}


def test_dedupe_keeps_first(make_mention):
    ms = [make_mention("https://a.com/1", id=1), make_mention("https://a.com/1", id=2)]
    assert [m.id for m in dedupe(ms)] == [1]
    assert compute_stats(dedupe(ms)).total == 1


def test_dedupe_large_input_and_fresh_state(make_mention):
    ms = [make_mention(f"https://a.com/{i % 5000}", id=i) for i in range(20000)]
    kept = dedupe(ms)
    assert len(kept) == 5000
    assert [m.id for m in kept[:3]] == [0, 1, 2]
    # the accumulator does not leak between calls
    assert len(dedupe(ms[:10])) == 10
