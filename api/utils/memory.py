MODULE_DESCRIPTION = r"""Memory Management and Monitoring Module for FastAPI Application

This module provides memory monitoring and error logging helpers for the
Yurie answer-engine API. Streaming model responses (chat, image generation,
video downloads) keep large base64 payloads alive for the duration of a
request, so the process RSS is logged at lifecycle points and released back
to the OS when it crosses the configured threshold.

Key Features:
-------------
1. Memory Cleanup and Release:
   - Garbage collection with a configurable RSS threshold
   - Linux malloc_trim support for releasing memory to the OS

2. Memory Monitoring:
   - RSS logging with optional context labels (startup, shutdown, requests)

3. Error Logging:
   - Structured JSON error reports with request context

4. Graceful Shutdown:
   - Signal handlers that log memory state before the previous handler runs

Environment Variables:
---------------------
GC_MEMORY_THRESHOLD: RSS threshold in MB that triggers cleanup (default: 1900)
DEBUG: "1" enables the monitoring output
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import os
import sys

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
import ctypes  # For libc malloc_trim access on Linux
import gc  # Garbage collection control
import json  # JSON formatting for error details
import signal  # Signal handlers for graceful shutdown
from datetime import datetime  # Timestamp generation

import psutil  # Process and system memory monitoring
from fastapi import Request  # FastAPI request context

from api.utils.debug import print__debug, print__memory_monitoring

# ============================================================
# LIBC MALLOC_TRIM INITIALIZATION (Linux Only)
# ============================================================
try:
    libc = ctypes.CDLL("libc.so.6")
    MALLOC_TRIM_AVAILABLE = True
except (OSError, AttributeError) as e:
    # malloc_trim not available (Windows or other platforms)
    libc = None
    MALLOC_TRIM_AVAILABLE = False
    print__memory_monitoring(f"❌ Failed to load libc: {e}")

# ============================================================
# MEMORY MONITORING CONFIGURATION
# ============================================================
GC_MEMORY_THRESHOLD = int(
    os.environ.get("GC_MEMORY_THRESHOLD", "1900")
)  # MB - Threshold for GC trigger (1900MB for 2GB memory allocation)


# ============================================================
# UTILITY FUNCTIONS - MEMORY MANAGEMENT
# ============================================================
def force_release_memory():
    """Force memory release using garbage collection and malloc_trim.

    Returns:
        dict: freed_mb, gc_collected and malloc_trim_used, or an error entry
    """
    try:
        process = psutil.Process()
        initial_rss = process.memory_info().rss / 1024 / 1024

        collected = gc.collect()

        if MALLOC_TRIM_AVAILABLE:
            libc.malloc_trim(0)
            malloc_trim_used = True
        else:
            malloc_trim_used = False

        final_rss = process.memory_info().rss / 1024 / 1024
        freed_mb = initial_rss - final_rss

        print__memory_monitoring(
            f"🧹 Memory cleanup: {freed_mb:.1f}MB freed | "
            f"{initial_rss:.1f}MB → {final_rss:.1f}MB | "
            f"GC: {collected} | malloc_trim: {'✓' if malloc_trim_used else '✗'}"
        )

        return {
            "freed_mb": round(freed_mb, 2),
            "gc_collected": collected,
            "malloc_trim_used": malloc_trim_used,
            "final_rss_mb": round(final_rss, 2),
        }

    except Exception as e:
        print__memory_monitoring(f"❌ Memory cleanup error: {e}")
        return {"error": str(e), "freed_mb": 0}


def check_memory_and_gc():
    """Check current RSS and force a release when above GC_MEMORY_THRESHOLD.

    Returns:
        float: Current RSS memory usage in MB (0 if the check failed)
    """
    try:
        rss_mb = psutil.Process().memory_info().rss / 1024 / 1024

        if rss_mb > GC_MEMORY_THRESHOLD:
            print__memory_monitoring(
                f"🚨 MEMORY THRESHOLD EXCEEDED: {rss_mb:.1f}MB > {GC_MEMORY_THRESHOLD}MB - forcing memory release"
            )
            release_result = force_release_memory()
            rss_mb = release_result.get("final_rss_mb", rss_mb)

            if rss_mb > (GC_MEMORY_THRESHOLD * 0.9):
                print__memory_monitoring(
                    f"⚠ HIGH MEMORY WARNING: {rss_mb:.1f}MB after cleanup"
                )

        return rss_mb

    except Exception as e:
        print__memory_monitoring(f"❌ Could not check memory: {e}")
        return 0


def log_memory_usage(context: str = ""):
    """Log current RSS with an optional context label.

    Triggers check_memory_and_gc when the threshold is exceeded. Errors are
    logged and never raised.
    """
    try:
        process = psutil.Process()
        rss_mb = process.memory_info().rss / 1024 / 1024

        print__memory_monitoring(
            f"📊 Memory usage{f' [{context}]' if context else ''}: {rss_mb:.1f}MB RSS"
        )

        if rss_mb > GC_MEMORY_THRESHOLD:
            check_memory_and_gc()

    except Exception as e:
        print__memory_monitoring(f"❌ Could not check memory usage: {e}")


# ============================================================
# ERROR LOGGING
# ============================================================
def log_comprehensive_error(context: str, error: Exception, request: Request = None):
    """Log comprehensive error information with context.

    Args:
        context (str): Description of where/when the error occurred
        error (Exception): The exception that was raised
        request (Request, optional): FastAPI request object for additional context
    """
    error_details = {
        "context": context,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": datetime.now().isoformat(),
    }

    if request:
        error_details.update(
            {
                "method": request.method,
                "url": str(request.url),
                "client_ip": request.client.host if request.client else "unknown",
            }
        )

    print__debug(f"🚨 ERROR: {json.dumps(error_details, indent=2)}")


def setup_graceful_shutdown():
    """Register SIGTERM / SIGUSR1 handlers that log memory state.

    The previously installed handler (usually uvicorn's) is still invoked so
    the server keeps its own shutdown behaviour.
    """

    def _chain(previous):
        def signal_handler(signum, frame):
            print__memory_monitoring(
                f"📡 Received signal {signum} - preparing for graceful shutdown..."
            )
            log_memory_usage("shutdown_signal")
            if callable(previous):
                previous(signum, frame)

        return signal_handler

    signals = [signal.SIGTERM]
    if hasattr(signal, "SIGUSR1"):
        signals.append(signal.SIGUSR1)

    for signum in signals:
        try:
            signal.signal(signum, _chain(signal.getsignal(signum)))
        except ValueError:
            # signal.signal only works from the main thread
            print__memory_monitoring(
                f"⚠ Could not register handler for signal {signum} outside main thread"
            )
