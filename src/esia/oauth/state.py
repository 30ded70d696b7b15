"""Single-use OAuth ``state`` storage."""
from __future__ import annotations

import threading
import time
import uuid
from typing import Dict, Protocol, runtime_checkable

import redis

from ..config import EsiaSettings


@runtime_checkable
class StateStore(Protocol):
    def issue(self, ttl: int = 300) -> str: ...
    def consume(self, state: str) -> bool: ...


class MemoryStateStore:
    """Process-local store for a single worker and for tests."""

    def __init__(self):
        self._states: Dict[str, float] = {}
        self._lock = threading.Lock()

    def issue(self, ttl: int = 300) -> str:
        state = str(uuid.uuid4())
        with self._lock:
            self._purge()
            self._states[state] = time.time() + ttl
        return state

    def consume(self, state: str) -> bool:
        with self._lock:
            expires = self._states.pop(state, None)
        return expires is not None and expires >= time.time()

    def _purge(self):
        now = time.time()
        for k in [k for k, exp in self._states.items() if exp < now]:
            del self._states[k]


class RedisStateStore:
    def __init__(self, url: str):
        self.r = redis.from_url(url, decode_responses=True)

    def issue(self, ttl: int = 300) -> str:
        state = str(uuid.uuid4())
        self.r.set(f"esia:state:{state}", "1", ex=ttl, nx=True)
        return state

    def consume(self, state: str) -> bool:
        key = f"esia:state:{state}"
        with self.r.pipeline() as p:
            p.delete(key)
            deleted, = p.execute()
        return deleted == 1


def make_state_store(settings: EsiaSettings) -> StateStore:
    if settings.state_store == "redis":
        return RedisStateStore(settings.redis_url)
    if settings.state_store == "memory":
        return MemoryStateStore()
    raise ValueError(f"unsupported ESIA_STATE_STORE {settings.state_store!r}")
