"""Tests for the Redis cache adapter with a mocked client."""

import json
import logging
from unittest.mock import MagicMock

import redis

from cachedao.stores.redis import RedisCache


def test_get_multi_decodes_found_keys_only():
    client = MagicMock()
    client.mget.return_value = [json.dumps({"id": 1}), None, json.dumps({"id": 3})]
    cache = RedisCache(client)

    assert cache.get_multi(["a", "b", "c"]) == {"a": {"id": 1}, "c": {"id": 3}}
    client.mget.assert_called_once_with(["a", "b", "c"])


def test_get_multi_without_keys_skips_redis():
    client = MagicMock()
    assert RedisCache(client).get_multi([]) == {}
    client.mget.assert_not_called()


def test_read_errors_are_treated_as_misses(caplog):
    client = MagicMock()
    client.mget.side_effect = redis.ConnectionError("refused")

    with caplog.at_level(logging.WARNING):
        assert RedisCache(client).get_multi(["a"]) == {}

    assert "Redis cache read failed" in caplog.text


def test_set_multi_pipelines_with_ttl():
    client = MagicMock()
    pipe = client.pipeline.return_value
    cache = RedisCache(client, ttl=60)

    cache.set_multi({"a": {"id": 1}, "b": {"id": 2}})

    client.pipeline.assert_called_once_with(transaction=False)
    pipe.set.assert_any_call("a", json.dumps({"id": 1}), ex=60)
    pipe.set.assert_any_call("b", json.dumps({"id": 2}), ex=60)
    pipe.execute.assert_called_once()


def test_set_without_ttl_stores_forever():
    client = MagicMock()
    pipe = client.pipeline.return_value

    RedisCache(client).set("a", {"when": "2024-01-01 00:00:00"})

    pipe.set.assert_called_once_with("a", json.dumps({"when": "2024-01-01 00:00:00"}), ex=None)


def test_write_errors_are_swallowed():
    client = MagicMock()
    client.pipeline.return_value.execute.side_effect = redis.TimeoutError("slow")

    RedisCache(client).set_multi({"a": 1})


def test_delete_reports_whether_key_existed():
    client = MagicMock()
    client.delete.side_effect = [1, 0, redis.ConnectionError("refused")]
    cache = RedisCache(client)

    assert cache.delete("a") is True
    assert cache.delete("a") is False
    assert cache.delete("a") is False


def test_get_single_key():
    client = MagicMock()
    client.mget.return_value = [json.dumps("value")]

    assert RedisCache(client).get("a") == "value"
