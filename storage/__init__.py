"""
Persistence layer for the Yurie API.

Chat history lives in Redis; notes and media metadata live in Supabase
Postgres (psycopg); media bytes live in Supabase Storage (httpx).
"""

# Modules are imported by the routes that need them so a missing optional
# backend does not stop the API server from starting.

__all__ = []
