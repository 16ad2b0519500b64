"""LRU result cache with per-entry TTL."""

import json
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from .models.tool import CacheEntry, ToolResult


def make_cache_key(tool: str, args: Dict[str, Any]) -> str:
    """缓存键：工具名 + 参数的规范化 JSON（键排序）"""
    return f"{tool}:{json.dumps(args or {}, sort_keys=True, default=str)}"


class LRUCache:
    """容量固定的 LRU 缓存，条目过期后读取视为未命中并被移除"""

    def __init__(self, max_size: int = 200, clock: Optional[Callable[[], float]] = None):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._clock = clock or (lambda: time.time() * 1000)

    def get(self, key: str) -> Optional[ToolResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: str, value: ToolResult, ttl: float) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock(), ttl=ttl)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
