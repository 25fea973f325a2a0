"""
Authentication package for the API server.

This package contains Supabase JWT verification for the Yurie answer-engine
application.
"""

# Import JWT authentication functions
from .jwt_auth import verify_supabase_jwt

# Export all authentication functions for easier access
__all__ = [
    'verify_supabase_jwt'
]
