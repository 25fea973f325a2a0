"""
Utility package for the Yurie answer-engine API.

Debug output, memory monitoring and rate limiting helpers shared by the
routes and middleware.
"""

# Debug utilities
from .debug import (
    print__token_debug,
    print__debug,
    print__chat_debug,
    print__chats_debug,
    print__notes_debug,
    print__images_debug,
    print__videos_debug,
    print__attachments_debug,
    print__gemini_debug,
    print__research_debug,
    print__redis_debug,
    print__storage_debug,
    print__database_debug,
    print__health_debug,
    print__analysis_tracing_debug,
    print__startup_debug,
)

# Memory management utilities
from .memory import (
    print__memory_monitoring,
    check_memory_and_gc,
    force_release_memory,
    log_memory_usage,
    log_comprehensive_error,
    setup_graceful_shutdown,
)

# Rate limiting utilities
from .rate_limiting import (
    check_rate_limit_with_throttling,
    wait_for_rate_limit,
)

# Export all utilities for easy access
__all__ = [
    # Debug utilities
    'print__token_debug',
    'print__debug',
    'print__chat_debug',
    'print__chats_debug',
    'print__notes_debug',
    'print__images_debug',
    'print__videos_debug',
    'print__attachments_debug',
    'print__gemini_debug',
    'print__research_debug',
    'print__redis_debug',
    'print__storage_debug',
    'print__database_debug',
    'print__health_debug',
    'print__analysis_tracing_debug',
    'print__startup_debug',

    # Memory management utilities
    'print__memory_monitoring',
    'check_memory_and_gc',
    'force_release_memory',
    'log_memory_usage',
    'log_comprehensive_error',
    'setup_graceful_shutdown',

    # Rate limiting utilities
    'check_rate_limit_with_throttling',
    'wait_for_rate_limit',
]
