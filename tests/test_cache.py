"""Unit tests for app.core.cache: key layout, JSON round trip, and best-effort failure handling."""

import json
import unittest
from unittest.mock import MagicMock

import redis

from app.core.cache import StrategyCache


class TestDisabledCache(unittest.TestCase):
    """With no client every operation is a miss or a no-op."""

    def test_noop_without_client(self) -> None:
        cache = StrategyCache(None)
        self.assertFalse(cache.enabled)
        self.assertIsNone(cache.get_json("strategies:public:x"))
        self.assertFalse(cache.set_json("k", {"a": 1}, 60))
        self.assertEqual(cache.delete_pattern("strategies:*"), 0)
        self.assertFalse(cache.ping())


class TestKeys(unittest.TestCase):
    def test_fingerprint_ignores_param_order(self) -> None:
        cache = StrategyCache(MagicMock())
        a = cache.public_key({"page": 1, "limit": 20, "q": None})
        b = cache.public_key({"q": None, "limit": 20, "page": 1})
        self.assertEqual(a, b)
        self.assertTrue(a.startswith("strategies:public:"))
        self.assertNotEqual(a, cache.public_key({"page": 2, "limit": 20, "q": None}))

    def test_top_and_user_keys(self) -> None:
        cache = StrategyCache(MagicMock())
        self.assertEqual(cache.top_key(10), "strategies:top:10")
        self.assertTrue(cache.user_key("u1", {}).startswith("user:u1:strategies:"))


class TestReadWrite(unittest.TestCase):
    def test_set_uses_ttl_and_get_decodes(self) -> None:
        client = MagicMock()
        cache = StrategyCache(client, list_ttl=300, top_ttl=600)
        cache.set_json("strategies:top:10", {"strategies": []}, cache.top_ttl)
        client.set.assert_called_once_with("strategies:top:10", json.dumps({"strategies": []}), ex=600)

        client.get.return_value = '{"strategies": [1]}'
        self.assertEqual(cache.get_json("strategies:top:10"), {"strategies": [1]})

    def test_undecodable_entry_is_a_miss(self) -> None:
        client = MagicMock()
        client.get.return_value = "{not json"
        self.assertIsNone(StrategyCache(client).get_json("k"))

    def test_redis_errors_are_swallowed(self) -> None:
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        client.scan_iter.side_effect = redis.ConnectionError("down")
        client.ping.side_effect = redis.ConnectionError("down")
        cache = StrategyCache(client)
        self.assertIsNone(cache.get_json("k"))
        self.assertFalse(cache.set_json("k", 1, 10))
        self.assertEqual(cache.delete_pattern("k*"), 0)
        self.assertFalse(cache.ping())


class TestInvalidation(unittest.TestCase):
    def test_invalidate_public_clears_list_and_top(self) -> None:
        client = MagicMock()
        client.scan_iter.side_effect = lambda match, count: iter([f"{match[:-1]}abc"])
        client.delete.return_value = 1
        StrategyCache(client).invalidate_public()
        patterns = [call.kwargs["match"] for call in client.scan_iter.call_args_list]
        self.assertEqual(patterns, ["strategies:public:*", "strategies:top:*"])
        self.assertEqual(client.delete.call_count, 2)

    def test_invalidate_user_scoped_to_owner(self) -> None:
        client = MagicMock()
        client.scan_iter.return_value = iter([])
        StrategyCache(client).invalidate_user("u42")
        client.scan_iter.assert_called_once_with(match="user:u42:strategies:*", count=500)
        client.delete.assert_not_called()


if __name__ == "__main__":
    unittest.main()
