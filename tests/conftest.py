"""Shared pytest fixtures: test-token auth, service environment and the ASGI client."""

import os
import sys

# CRITICAL: Set Windows event loop policy FIRST, before other imports
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# Test tokens (issuer test_issuer) are accepted only in test mode
os.environ["USE_TEST_TOKENS"] = "1"
os.environ.setdefault("SUPABASE_JWT_AUDIENCE", "authenticated")

import pytest

from tests.helpers import make_client, set_service_env


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from api.config.settings import rate_limit_storage

    rate_limit_storage.clear()
    yield
    rate_limit_storage.clear()


@pytest.fixture
def services(monkeypatch):
    """All optional services configured; tests switch single ones off."""
    set_service_env(monkeypatch)
    return monkeypatch


@pytest.fixture
def app():
    from api.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
async def client(app):
    async with make_client(app) as http_client:
        yield http_client
