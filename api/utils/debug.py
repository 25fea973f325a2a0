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


# ==============================================================================
# DEBUG FUNCTIONS
# ==============================================================================
def print__token_debug(msg: str) -> None:
    """Print print__token_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__token_debug", "0")
    if debug_mode == "1":
        print(f"[print__token_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__debug(msg: str) -> None:
    """Print DEBUG messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("DEBUG", "0")
    if debug_mode == "1":
        print(f"[DEBUG] {msg}")
        import sys

        sys.stdout.flush()


def print__chat_debug(msg: str) -> None:
    """Print print__chat_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__chat_debug", "0")
    if debug_mode == "1":
        print(f"[print__chat_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__chats_debug(msg: str) -> None:
    """Print print__chats_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__chats_debug", "0")
    if debug_mode == "1":
        print(f"[print__chats_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__notes_debug(msg: str) -> None:
    """Print print__notes_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__notes_debug", "0")
    if debug_mode == "1":
        print(f"[print__notes_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__images_debug(msg: str) -> None:
    """Print print__images_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__images_debug", "0")
    if debug_mode == "1":
        print(f"[print__images_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__videos_debug(msg: str) -> None:
    """Print print__videos_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__videos_debug", "0")
    if debug_mode == "1":
        print(f"[print__videos_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__attachments_debug(msg: str) -> None:
    """Print print__attachments_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__attachments_debug", "0")
    if debug_mode == "1":
        print(f"[print__attachments_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__gemini_debug(msg: str) -> None:
    """Print print__gemini_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__gemini_debug", "0")
    if debug_mode == "1":
        print(f"[print__gemini_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__research_debug(msg: str) -> None:
    """Print print__research_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("print__research_debug", "0")
    if debug_mode == "1":
        print(f"[print__research_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__redis_debug(msg: str) -> None:
    """Print print__redis_debug messages when debug mode is enabled."""
    debug_mode = os.environ.get("print__redis_debug", "0")
    if debug_mode == "1":
        print(f"[print__redis_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__storage_debug(msg: str) -> None:
    """Print print__storage_debug messages when debug mode is enabled."""
    debug_mode = os.environ.get("print__storage_debug", "0")
    if debug_mode == "1":
        print(f"[print__storage_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__database_debug(msg: str) -> None:
    """Print print__database_debug messages when debug mode is enabled."""
    debug_mode = os.environ.get("print__database_debug", "0")
    if debug_mode == "1":
        print(f"[print__database_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__health_debug(msg: str) -> None:
    debug_mode = os.environ.get("print__health_debug", "0")
    if debug_mode == "1":
        print(f"[print__health_debug] {msg}")
        import sys

        sys.stdout.flush()


def print__analysis_tracing_debug(msg: str) -> None:
    """Print request tracing debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    analysis_tracing_debug_mode = os.environ.get("print__analysis_tracing_debug", "0")
    if analysis_tracing_debug_mode == "1":
        print(f"[print__analysis_tracing_debug] 🔍 {msg}")
        import sys

        sys.stdout.flush()


def print__startup_debug(msg: str) -> None:
    """Print startup debug messages when debug mode is enabled."""
    debug_mode = os.environ.get("DEBUG", "0")
    if debug_mode == "1":
        print(f"[STARTUP-DEBUG] {msg}")
        sys.stdout.flush()


def print__memory_monitoring(msg: str) -> None:
    """Print MEMORY-MONITORING messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    debug_mode = os.environ.get("DEBUG", "0")
    if debug_mode == "1":
        print(f"[MEMORY-MONITORING] {msg}")
        sys.stdout.flush()
