# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import sys
import os
if sys.platform == "win32":
    import asyncio
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv
load_dotenv()

# Constants
try:
    from pathlib import Path
    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

# Standard imports
import time
import asyncio

# Import rate limiting globals from api.config.settings
from api.config.settings import (
    rate_limit_storage,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    RATE_LIMIT_BURST,
    RATE_LIMIT_MAX_WAIT
)
from api.utils.debug import print__debug

# Burst limit is evaluated over this many trailing seconds
BURST_WINDOW_SECONDS = 10


def _recent_timestamps(client_ip: str, now: float) -> tuple:
    """Drop expired entries for client_ip and return (window, burst) timestamps."""
    window = [
        timestamp for timestamp in rate_limit_storage[client_ip]
        if now - timestamp < RATE_LIMIT_WINDOW
    ]
    rate_limit_storage[client_ip] = window
    burst = [timestamp for timestamp in window if now - timestamp < BURST_WINDOW_SECONDS]
    return window, burst


def check_rate_limit_with_throttling(client_ip: str) -> dict:
    """Check rate limits and return throttling information instead of boolean."""
    now = time.time()
    window, burst = _recent_timestamps(client_ip, now)

    suggested_wait = 0
    if len(burst) >= RATE_LIMIT_BURST:
        # Wait until the oldest burst request leaves the burst window
        suggested_wait = max(0, BURST_WINDOW_SECONDS - (now - min(burst)))
    elif len(window) >= RATE_LIMIT_REQUESTS:
        suggested_wait = max(0, RATE_LIMIT_WINDOW - (now - min(window)))

    return {
        "allowed": len(burst) < RATE_LIMIT_BURST and len(window) < RATE_LIMIT_REQUESTS,
        "suggested_wait": min(suggested_wait, RATE_LIMIT_MAX_WAIT),
        "burst_count": len(burst),
        "window_count": len(window),
        "burst_limit": RATE_LIMIT_BURST,
        "window_limit": RATE_LIMIT_REQUESTS
    }


async def wait_for_rate_limit(client_ip: str) -> bool:
    """Wait for the rate limit to admit a request, giving up after 3 attempts."""
    max_attempts = 3

    for attempt in range(max_attempts):
        rate_info = check_rate_limit_with_throttling(client_ip)

        if rate_info["allowed"]:
            rate_limit_storage[client_ip].append(time.time())
            return True

        if rate_info["suggested_wait"] <= 0:
            await asyncio.sleep(0.1)
            continue

        print__debug(
            f"⏳ Throttling request from {client_ip}: waiting {rate_info['suggested_wait']:.1f}s "
            f"(burst: {rate_info['burst_count']}/{rate_info['burst_limit']}, "
            f"window: {rate_info['window_count']}/{rate_info['window_limit']}, attempt {attempt + 1})"
        )
        await asyncio.sleep(rate_info["suggested_wait"])

    print__debug(f"❌ Rate limit exceeded after {max_attempts} attempts for {client_ip}")
    return False

