"""
MODULE_DESCRIPTION: Authentication Dependencies - Supabase Bearer Token Extraction

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

FastAPI dependencies that turn the ``Authorization: Bearer <token>`` header
into verified Supabase claims. Every per-user endpoint (notes, saved media,
attachments, chat history) depends on ``get_current_user``; the generation
endpoints (chat, imagine, video, research) accept anonymous callers through
``get_optional_user`` and only persist data when a user is known.

===================================================================================
AUTHENTICATION FLOW
===================================================================================

1. Header presence check          -> 401 "Missing Authorization header"
2. Scheme check ("Bearer ")       -> 401 "Invalid Authorization header format.
                                         Expected 'Bearer <token>'"
3. Token extraction               -> 401 "Invalid Authorization header format"
4. verify_supabase_jwt(token)     -> claims dict (``sub`` is the user id)

Unexpected exceptions are logged with log_comprehensive_error and reported as
401 "Authentication failed" so no internal detail leaks to the client.

===================================================================================
USER IDENTITY
===================================================================================

Supabase puts the auth.users primary key in the ``sub`` claim.
``get_user_id(user)`` reads it and is the only place routes derive the id
used to scope database rows, storage paths and Redis keys.

===================================================================================
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
import traceback
from typing import Optional

from fastapi import Header, HTTPException

# Import authentication functions
from api.auth.jwt_auth import verify_supabase_jwt

# Import debug utilities
from api.utils.debug import print__token_debug
from api.utils.memory import log_comprehensive_error


# ============================================================
# AUTHENTICATION DEPENDENCY
# ============================================================
def get_current_user(authorization: str = Header(None)):
    """Extract and verify the Supabase JWT from the Authorization header.

    Args:
        authorization: The Authorization header value, "Bearer <token>".

    Returns:
        dict: The verified JWT claims (``sub``, ``email``, ``role``, ``exp`` ...)

    Raises:
        HTTPException(401): Missing or malformed header, or failed verification.
    """
    try:
        # =======================================================================
        # STEP 1: AUTHENTICATION START
        # =======================================================================
        print__token_debug(
            "🔑 AUTHENTICATION START: Beginning user authentication process"
        )

        # =======================================================================
        # STEP 2: HEADER PRESENCE CHECK
        # =======================================================================
        if not authorization:
            print__token_debug("❌ AUTH ERROR: No authorization header provided")
            raise HTTPException(status_code=401, detail="Missing Authorization header")

        print__token_debug(
            f"🔍 AUTH CHECK: Authorization header present (length: {len(authorization)})"
        )

        # =======================================================================
        # STEP 3: HEADER FORMAT VALIDATION
        # =======================================================================
        if not authorization.startswith("Bearer "):
            print__token_debug("❌ AUTH ERROR: Invalid authorization header format")
            raise HTTPException(
                status_code=401,
                detail="Invalid Authorization header format. Expected 'Bearer <token>'",
            )

        # =======================================================================
        # STEP 4: TOKEN EXTRACTION
        # =======================================================================
        auth_parts = authorization.split(" ", 1)
        if len(auth_parts) != 2 or not auth_parts[1].strip():
            print__token_debug("❌ AUTH ERROR: Malformed authorization header")
            raise HTTPException(
                status_code=401, detail="Invalid Authorization header format"
            )

        token = auth_parts[1].strip()
        print__token_debug(
            f"🔍 AUTH TOKEN: Token extracted successfully (length: {len(token)})"
        )

        # =======================================================================
        # STEP 5: JWT VERIFICATION
        # =======================================================================
        user_info = verify_supabase_jwt(token)
        print__token_debug(
            f"✅ AUTH SUCCESS: User authenticated successfully - {user_info.get('sub', 'Unknown')}"
        )

        return user_info

    except HTTPException as he:
        print__token_debug(f"❌ AUTH HTTP EXCEPTION: {he.status_code} - {he.detail}")
        raise  # Re-raise HTTPException as-is
    except Exception as e:
        print__token_debug(
            f"❌ AUTH EXCEPTION: Unexpected authentication error - {type(e).__name__}: {str(e)}"
        )
        print__token_debug(f"❌ AUTH TRACE: Full traceback:\n{traceback.format_exc()}")
        log_comprehensive_error("authentication", e)
        raise HTTPException(status_code=401, detail="Authentication failed")


def get_optional_user(authorization: str = Header(None)) -> Optional[dict]:
    """Like get_current_user, but anonymous requests (no header) yield None.

    A header that is present but invalid is still rejected with 401.
    """
    if not authorization:
        print__token_debug("🔍 AUTH CHECK: No authorization header - anonymous request")
        return None
    return get_current_user(authorization)


def get_user_id(user: Optional[dict]) -> Optional[str]:
    """Return the Supabase user id (``sub`` claim) or None for anonymous users."""
    if not user:
        return None
    return user.get("sub")
