from __future__ import annotations

from typing import Any, Optional


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the services use."""

    def __init__(self) -> None:
        self._kv: dict[str, Any] = {}
        self._hash: dict[str, dict[str, str]] = {}
        self._sets: dict[str, set[str]] = {}
        self._lists: dict[str, list[Any]] = {}
        self.ttls: dict[str, int] = {}

    def ping(self) -> bool:
        return True

    def set(self, key: str, value: Any, nx: bool = False, ex: Optional[int] = None) -> bool:
        if nx and key in self._kv:
            return False
        self._kv[key] = value if isinstance(value, bytes) else str(value)
        if ex is not None:
            self.ttls[key] = int(ex)
        return True

    def get(self, key: str) -> Optional[Any]:
        return self._kv.get(key)

    def delete(self, *keys: str) -> int:
        n = 0
        for key in keys:
            for store in (self._kv, self._hash, self._sets, self._lists):
                if key in store:
                    del store[key]
                    n += 1
            self.ttls.pop(key, None)
        return n

    def exists(self, key: str) -> int:
        return 1 if any(key in s for s in (self._kv, self._hash, self._sets, self._lists)) else 0

    def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = int(seconds)
        return bool(self.exists(key))

    def hset(self, key: str, mapping: dict[str, Any]) -> None:
        h = self._hash.setdefault(key, {})
        for k, v in mapping.items():
            h[str(k)] = str(v)

    def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._hash.get(key, {}))

    def sadd(self, key: str, *members: str) -> int:
        s = self._sets.setdefault(key, set())
        before = len(s)
        s.update(str(m) for m in members)
        return len(s) - before

    def srem(self, key: str, *members: str) -> int:
        s = self._sets.get(key, set())
        n = 0
        for m in members:
            if m in s:
                s.discard(m)
                n += 1
        if key in self._sets and not s:
            del self._sets[key]
        return n

    def smembers(self, key: str) -> set[str]:
        return set(self._sets.get(key, set()))

    def rpush(self, key: str, *values: Any) -> int:
        items = self._lists.setdefault(key, [])
        items.extend(values)
        return len(items)

    def lrange(self, key: str, start: int, end: int) -> list[Any]:
        items = self._lists.get(key, [])
        if end == -1:
            return list(items[start:])
        return list(items[start : end + 1])
