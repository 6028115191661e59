# mypy: ignore-errors
"""Unit tests for the Redis-backed feed cache."""

import json
from unittest.mock import MagicMock

import redis

from vecinu.services.feed_cache import FeedCache


def test_feed_keys() -> None:
    assert FeedCache.feed_key() == "feed"
    assert FeedCache.feed_key("fabric") == "feed:nbh:fabric"
    assert FeedCache.feed_key("fabric", "SELL") == "feed:cat:SELL:nbh:fabric"
    assert FeedCache.post_key("abc") == "post:abc"


def test_disabled_cache_is_a_no_op() -> None:
    cache = FeedCache(None)
    assert cache.enabled is False
    assert cache.get_feed("feed:nbh:fabric") is None
    cache.set_feed("feed:nbh:fabric", {"data": []})
    assert cache.invalidate_feed() == 0
    cache.invalidate_post("abc")


def test_set_and_get_round_trip(mock_redis) -> None:
    cache = FeedCache(mock_redis, feed_ttl=120, post_ttl=600)
    cache.set_feed("feed:nbh:fabric", {"data": [1, 2]})
    mock_redis.set.assert_called_once_with("feed:nbh:fabric", json.dumps({"data": [1, 2]}), ex=120)

    mock_redis.get.return_value = json.dumps({"data": [1, 2]})
    assert cache.get_feed("feed:nbh:fabric") == {"data": [1, 2]}


def test_post_entries_use_post_ttl(mock_redis) -> None:
    cache = FeedCache(mock_redis, feed_ttl=120, post_ttl=600)
    cache.set_post("abc", {"data": {}})
    assert mock_redis.set.call_args.kwargs == {"ex": 600}
    assert mock_redis.set.call_args.args[0] == "post:abc"


def test_corrupt_entry_is_a_miss(mock_redis) -> None:
    mock_redis.get.return_value = "{not json"
    assert FeedCache(mock_redis).get_feed("feed") is None


def test_non_dict_entry_is_a_miss(mock_redis) -> None:
    mock_redis.get.return_value = json.dumps([1, 2, 3])
    assert FeedCache(mock_redis).get_post("abc") is None


def test_redis_errors_never_propagate() -> None:
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("down")
    client.set.side_effect = redis.TimeoutError("slow")
    client.keys.side_effect = redis.ConnectionError("down")
    client.delete.side_effect = redis.ConnectionError("down")
    cache = FeedCache(client)

    assert cache.get_feed("feed") is None
    cache.set_feed("feed", {"data": []})
    assert cache.invalidate_feed() == 0
    cache.invalidate_post("abc")


def test_invalidate_feed_deletes_every_feed_key(mock_redis) -> None:
    mock_redis.keys.return_value = ["feed:nbh:fabric", "feed:cat:ALERT:nbh:fabric"]
    mock_redis.delete.return_value = 2

    assert FeedCache(mock_redis).invalidate_feed() == 2
    mock_redis.keys.assert_called_once_with("feed:*")
    mock_redis.delete.assert_called_once_with("feed:nbh:fabric", "feed:cat:ALERT:nbh:fabric")


def test_invalidate_feed_with_nothing_cached(mock_redis) -> None:
    assert FeedCache(mock_redis).invalidate_feed() == 0
    mock_redis.delete.assert_not_called()
