"""LRU + TTL 缓存测试。"""

import pytest

from agent_engine.models.tool import ToolResult
from agent_engine.tool_cache import LRUCache, make_cache_key


class FakeClock:
    """可手动推进的毫秒时钟"""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCacheKey:

    def test_argument_order_does_not_matter(self):
        assert make_cache_key("read_file", {"a": 1, "b": 2}) == make_cache_key("read_file", {"b": 2, "a": 1})

    def test_tool_name_is_part_of_key(self):
        assert make_cache_key("read_file", {"path": "x"}) != make_cache_key("list_dir", {"path": "x"})

    def test_empty_args(self):
        assert make_cache_key("git_status", {}) == make_cache_key("git_status", None)


class TestLRUCache:

    def test_get_missing(self):
        assert LRUCache(2).get("nope") is None

    def test_set_and_get(self):
        cache = LRUCache(2)
        cache.set("k", ToolResult.ok("v"), ttl=1000)
        assert cache.get("k").data == "v"
        assert "k" in cache
        assert len(cache) == 1

    def test_ttl_expiry_removes_entry(self):
        clock = FakeClock()
        cache = LRUCache(2, clock=clock)
        cache.set("k", ToolResult.ok("v"), ttl=100)
        clock.now = 100
        assert cache.get("k") is not None
        clock.now = 101
        assert cache.get("k") is None
        assert "k" not in cache

    def test_evicts_least_recently_used(self):
        cache = LRUCache(2)
        cache.set("a", ToolResult.ok(1), ttl=1000)
        cache.set("b", ToolResult.ok(2), ttl=1000)
        # 访问 a 使 b 成为最久未使用
        cache.get("a")
        cache.set("c", ToolResult.ok(3), ttl=1000)
        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2

    def test_overwrite_does_not_evict(self):
        cache = LRUCache(2)
        cache.set("a", ToolResult.ok(1), ttl=1000)
        cache.set("b", ToolResult.ok(2), ttl=1000)
        cache.set("a", ToolResult.ok(10), ttl=1000)
        assert len(cache) == 2
        assert cache.get("a").data == 10
        assert cache.get("b").data == 2

    def test_delete_and_clear(self):
        cache = LRUCache(3)
        cache.set("a", ToolResult.ok(1), ttl=1000)
        cache.set("b", ToolResult.ok(2), ttl=1000)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            LRUCache(0)
