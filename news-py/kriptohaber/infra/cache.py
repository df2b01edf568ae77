from __future__ import annotations

import json
import time
from dataclasses import dataclass
from threading import RLock
from typing import Protocol

import redis
from cachetools import TTLCache


class TranslationStore(Protocol):
    def get(self, key: str) -> dict | None: ...

    def set(self, key: str, value: dict) -> None: ...


@dataclass
class Cache:
    redis_client: redis.Redis | None
    memory: TTLCache
    ttl_seconds: int
    lock: RLock
    prefix: str = "translation"

    def _key(self, key: str) -> str:
        return cache_key(self.prefix, key)

    def get(self, key: str) -> dict | None:
        full_key = self._key(key)
        if self.redis_client is not None:
            try:
                data = self.redis_client.get(full_key)
                if data:
                    return json.loads(data)
            except Exception:
                pass
        with self.lock:
            return self.memory.get(full_key)

    def set(self, key: str, value: dict) -> None:
        full_key = self._key(key)
        if self.redis_client is not None:
            try:
                self.redis_client.setex(full_key, self.ttl_seconds, json.dumps(value, ensure_ascii=False))
            except Exception:
                pass
        with self.lock:
            self.memory[full_key] = value


def init_cache(redis_url: str | None, ttl_seconds: int, maxsize: int = 2048) -> Cache:
    client = None
    if redis_url:
        try:
            client = redis.from_url(redis_url, socket_timeout=1)
            client.ping()
        except Exception:
            client = None
    return Cache(
        redis_client=client,
        memory=TTLCache(maxsize=maxsize, ttl=ttl_seconds),
        ttl_seconds=ttl_seconds,
        lock=RLock(),
    )


def cache_key(*parts: str) -> str:
    return ":".join([p for p in parts if p])


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
