"""
Dependencies package for the API server.

This package contains FastAPI dependencies for authentication
in the Yurie answer-engine application.
"""

# Import authentication dependencies
from .auth import get_current_user, get_optional_user, get_user_id

# Export all dependencies for easier access
__all__ = [
    'get_current_user',
    'get_optional_user',
    'get_user_id'
]
