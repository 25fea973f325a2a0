"""Test helpers and utilities for the test suite."""

import os
import sys
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import jwt
from dotenv import load_dotenv

load_dotenv()

TEST_USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"
TEST_EMAIL = "test_user@example.com"


def print_test_status(message: str):
    """Print test status messages with timestamp."""
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    print(f"[{timestamp}] {message}")
    sys.stdout.flush()


def create_test_jwt_token(
    user_id: str = TEST_USER_ID,
    email: str = TEST_EMAIL,
    audience: str = "authenticated",
    expires_in: int = 3600,
    issuer: str = "test_issuer",
):
    """Create a test JWT token for authentication.

    Accepted by verify_supabase_jwt only when USE_TEST_TOKENS=1.
    """
    now = int(time.time())
    payload = {
        "sub": user_id,
        "email": email,
        "aud": audience,
        "exp": now + expires_in,
        "iat": now,
        "iss": issuer,
        "role": "authenticated",
    }
    return jwt.encode(payload, "test_secret", algorithm="HS256")


def auth_headers(user_id: str = TEST_USER_ID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_test_jwt_token(user_id=user_id)}"}


def parse_sse_events(body: str) -> List[Any]:
    """Decode a text/event-stream body into JSON events plus the final "[DONE]"."""
    import json

    events = []
    for line in body.splitlines():
        if not line.startswith("data: "):
            continue
        data = line[len("data: ") :]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


def make_client(app) -> httpx.AsyncClient:
    """In-process client for the FastAPI app, no server needed."""
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


class FakeCursor:
    """psycopg AsyncCursor stand-in returning queued results in order.

    ``results`` is a list of row lists; each execute() consumes one entry and
    fetchone()/fetchall() read from it. Executed statements are recorded.
    """

    def __init__(self, results: Optional[List[List[dict]]] = None, error: Exception = None):
        self.results = list(results or [])
        self.error = error
        self.executed: List[tuple] = []
        self._current: List[dict] = []
        self.rowcount = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, query, params=None):
        self.executed.append((query, params))
        if self.error is not None:
            raise self.error
        self._current = self.results.pop(0) if self.results else []
        self.rowcount = len(self._current)

    async def executemany(self, query, params_seq):
        for params in params_seq:
            self.executed.append((query, params))
        if self.error is not None:
            raise self.error

    async def fetchone(self):
        return self._current[0] if self._current else None

    async def fetchall(self):
        return list(self._current)


class FakeConnection:
    def __init__(self, cursor: FakeCursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False

    def cursor(self, *args, **kwargs):
        return self._cursor

    async def commit(self):
        self.committed = True

    async def rollback(self):
        self.rolled_back = True


def fake_connection_factory(connection: FakeConnection):
    """Replacement for storage.database.get_connection yielding ``connection``."""
    from contextlib import asynccontextmanager

    @asynccontextmanager
    async def _get_connection():
        yield connection

    return _get_connection


def set_service_env(monkeypatch, gemini=True, supabase=True, database=True, redis=True, history=True):
    """Toggle the service environment variables the availability checks read."""
    values = {
        "GEMINI_API_KEY": "test-gemini-key" if gemini else None,
        "GOOGLE_API_KEY": None,
        "SUPABASE_URL": "https://example.supabase.co" if supabase else None,
        "SUPABASE_SERVICE_ROLE_KEY": "service-role-key" if supabase else None,
        "REDIS_URL": "redis://localhost:6379/0" if redis else None,
        "UPSTASH_REDIS_URL": None,
        "ENABLE_SAVE_CHAT_HISTORY": "true" if history else "false",
    }
    for name, value in values.items():
        if value is None:
            monkeypatch.delenv(name, raising=False)
        else:
            monkeypatch.setenv(name, value)
    db_values = {"host": "localhost", "user": "postgres", "password": "pw", "dbname": "postgres"}
    for name, value in db_values.items():
        if database:
            monkeypatch.setenv(name, value)
        else:
            monkeypatch.delenv(name, raising=False)


async def async_iter(items):
    """Async iterator over ``items``, standing in for SDK streams."""
    for item in items:
        yield item


async def collect(generator) -> list:
    return [chunk async for chunk in generator]
