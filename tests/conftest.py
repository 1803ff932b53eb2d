"""Shared fixtures: a scripted in-memory stand-in for the asyncpg pool."""

import uuid
from collections import defaultdict, deque
from typing import Any, Dict, List, Tuple

import pytest

from config import settings_conf

JWT_SECRET = "test-jwt-secret-with-enough-length"

DEFAULT_RESULTS = {
    'fetch': list,
    'fetchrow': lambda: None,
    'fetchval': lambda: None,
    'execute': lambda: 'OK'
}

class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.conn.rollbacks += 1
        return False

class FakeConnection:
    """Records queries and answers them from per-method result queues.

    Results are queued with ``queue(method, result)`` and consumed in call
    order. A queued exception is raised instead of returned. Rows are plain
    dicts.
    """

    def __init__(self):
        self.results: Dict[str, deque] = defaultdict(deque)
        self.calls: List[Tuple[str, str, tuple]] = []
        self.transactions = 0
        self.rollbacks = 0
        self.listeners: Dict[str, Any] = {}

    def queue(self, method: str, *results):
        self.results[method].extend(results)
        return self

    def _answer(self, method: str, query: str, args: tuple):
        self.calls.append((method, ' '.join(query.split()), args))
        if self.results[method]:
            result = self.results[method].popleft()
            if isinstance(result, Exception):
                raise result
            return result
        return DEFAULT_RESULTS[method]()

    async def fetch(self, query, *args):
        return self._answer('fetch', query, args)

    async def fetchrow(self, query, *args):
        return self._answer('fetchrow', query, args)

    async def fetchval(self, query, *args):
        return self._answer('fetchval', query, args)

    async def execute(self, query, *args):
        return self._answer('execute', query, args)

    def transaction(self):
        return FakeTransaction(self)

    async def add_listener(self, channel, callback):
        self.listeners[channel] = callback

    async def remove_listener(self, channel, callback):
        self.listeners.pop(channel, None)

    def queries(self, method: str = None) -> List[str]:
        return [query for m, query, _ in self.calls if method is None or m == method]

    def args(self, method: str) -> List[tuple]:
        return [args for m, _, args in self.calls if m == method]

class FakeAcquire:
    def __init__(self, pool):
        self.pool = pool

    async def __aenter__(self):
        self.pool.acquired += 1
        return self.pool.conn

    async def __aexit__(self, exc_type, exc, tb):
        self.pool.acquired -= 1
        return False

    def __await__(self):
        async def _acquire():
            self.pool.acquired += 1
            return self.pool.conn
        return _acquire().__await__()

class FakePool:
    """Single-connection pool supporting ``async with`` and ``await`` acquire."""

    def __init__(self):
        self.conn = FakeConnection()
        self.acquired = 0

    def acquire(self):
        return FakeAcquire(self)

    async def release(self, conn):
        self.acquired -= 1

@pytest.fixture
def pool():
    return FakePool()

@pytest.fixture
def conn(pool):
    return pool.conn

@pytest.fixture
def jwt_settings(monkeypatch):
    monkeypatch.setitem(settings_conf, 'supabase_jwt_secret', JWT_SECRET)
    monkeypatch.setitem(settings_conf, 'jwt_audience', 'authenticated')
    return settings_conf

@pytest.fixture
def seller_id():
    return str(uuid.uuid4())

@pytest.fixture
def buyer_id():
    return str(uuid.uuid4())
