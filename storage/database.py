"""Supabase Postgres access (psycopg 3 async).

One AsyncConnectionPool per process, opened from the API lifespan and closed
on shutdown. get_connection() hands out pooled connections and falls back to
a direct connection when the pool was never opened (scripts, tests).

Rows come back as dicts (psycopg.rows.dict_row). Row level security is not
relied upon: every query filters on the owning user_id itself.
"""

from __future__ import annotations

import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from api.utils.debug import print__database_debug

# ==============================================================================
# CONFIGURATION
# ==============================================================================
CONNECT_TIMEOUT = 30
KEEPALIVES_IDLE = 300
KEEPALIVES_INTERVAL = 30
KEEPALIVES_COUNT = 3
TCP_USER_TIMEOUT = 60000  # ms

DEFAULT_POOL_MIN_SIZE = 1
DEFAULT_POOL_MAX_SIZE = 10
DEFAULT_POOL_TIMEOUT = 30
DEFAULT_MAX_IDLE = 600
DEFAULT_MAX_LIFETIME = 3600

_pool: Optional[AsyncConnectionPool] = None
_connection_string: Optional[str] = None


def get_db_config() -> dict:
    return {
        "user": os.environ.get("user"),
        "password": os.environ.get("password"),
        "host": os.environ.get("host"),
        "port": int(os.environ.get("port", 5432)),
        "dbname": os.environ.get("dbname"),
    }


def is_database_configured() -> bool:
    config = get_db_config()
    return all(config[key] for key in ("user", "password", "host", "dbname"))


def get_connection_string() -> str:
    """Connection string with SSL, keepalives and a unique application name."""
    global _connection_string

    if _connection_string is None:
        config = get_db_config()
        app_name = f"yurie_api_{os.getpid()}_{int(time.time())}_{uuid.uuid4().hex[:8]}"
        _connection_string = (
            f"postgresql://{config['user']}:{config['password']}@"
            f"{config['host']}:{config['port']}/{config['dbname']}?"
            f"sslmode=require"
            f"&application_name={app_name}"
            f"&connect_timeout={CONNECT_TIMEOUT}"
            f"&keepalives_idle={KEEPALIVES_IDLE}"
            f"&keepalives_interval={KEEPALIVES_INTERVAL}"
            f"&keepalives_count={KEEPALIVES_COUNT}"
            f"&tcp_user_timeout={TCP_USER_TIMEOUT}"
        )
        print__database_debug(
            f"🔍 Connection string built for {config['host']}:{config['port']}/{config['dbname']}"
        )

    return _connection_string


def get_connection_kwargs() -> dict:
    # Poolers in transaction mode do not support prepared statements
    return {"autocommit": False, "prepare_threshold": None, "row_factory": dict_row}


# ==============================================================================
# POOL LIFECYCLE
# ==============================================================================
async def initialize_pool() -> Optional[AsyncConnectionPool]:
    """Open the shared pool; a missing database config leaves it closed."""
    global _pool

    if _pool is not None:
        return _pool

    if not is_database_configured():
        print__database_debug("⚠️ Database not configured, pool not created")
        return None

    pool = AsyncConnectionPool(
        conninfo=get_connection_string(),
        min_size=DEFAULT_POOL_MIN_SIZE,
        max_size=DEFAULT_POOL_MAX_SIZE,
        timeout=DEFAULT_POOL_TIMEOUT,
        max_idle=DEFAULT_MAX_IDLE,
        max_lifetime=DEFAULT_MAX_LIFETIME,
        kwargs=get_connection_kwargs(),
        open=False,
    )
    await pool.open()
    _pool = pool
    print__database_debug(
        f"✅ Connection pool opened (min={DEFAULT_POOL_MIN_SIZE}, max={DEFAULT_POOL_MAX_SIZE})"
    )
    return _pool


async def close_pool() -> None:
    global _pool, _connection_string

    if _pool is not None:
        try:
            await _pool.close()
            print__database_debug("🧹 Connection pool closed")
        finally:
            _pool = None
            _connection_string = None


@asynccontextmanager
async def get_connection():
    """Yield a connection from the pool, or a direct one when there is no pool.

    The transaction is committed when the block exits cleanly and rolled back
    on error.
    """
    if _pool is not None:
        async with _pool.connection() as conn:
            yield conn
        return

    async with await psycopg.AsyncConnection.connect(
        get_connection_string(), **get_connection_kwargs()
    ) as conn:
        yield conn
