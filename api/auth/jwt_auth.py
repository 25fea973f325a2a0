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

import time

# Standard imports
import jwt
import requests
from fastapi import HTTPException

# Import constants from api.config.settings
from api.config import settings
from api.config.settings import SUPABASE_JWKS_PATH

# Import debug utilities
from api.utils.debug import print__token_debug

# Signing algorithms Supabase uses for asymmetric project keys
ASYMMETRIC_ALGORITHMS = ["RS256", "ES256"]


# ============================================================
# AUTHENTICATION - JWT VERIFICATION
# ============================================================
def _expected_audience() -> str:
    return os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")


def _decode_verified(token: str, key, algorithms: list):
    """Decode a token with a verification key, mapping PyJWT errors to 401s."""
    try:
        return jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=_expected_audience(),
        )
    except jwt.ExpiredSignatureError:
        print__token_debug("JWT token has expired")
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.InvalidAudienceError:
        print__token_debug("JWT token has invalid audience")
        raise HTTPException(status_code=401, detail="Invalid token audience")
    except jwt.InvalidSignatureError:
        print__token_debug("JWT token has invalid signature")
        raise HTTPException(status_code=401, detail="Invalid token signature")
    except jwt.DecodeError as e:
        print__token_debug(f"JWT decode error: {e}")
        raise HTTPException(status_code=401, detail="Invalid token format")
    except jwt.InvalidTokenError as e:
        print__token_debug(f"JWT token is invalid: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")


def fetch_supabase_jwks() -> dict:
    """Fetch the project's JSON Web Key Set from the Supabase auth server."""
    supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
    if not supabase_url:
        raise HTTPException(
            status_code=401,
            detail="Token verification failed - auth server not configured",
        )
    try:
        response = requests.get(f"{supabase_url}{SUPABASE_JWKS_PATH}", timeout=10)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as e:
        print__token_debug(f"Failed to fetch Supabase JWKS: {e}")
        raise HTTPException(
            status_code=401,
            detail="Token verification failed - unable to fetch signing keys",
        )


def verify_supabase_jwt(token: str):
    """Verify a Supabase access token and return its claims.

    Asymmetric tokens (header carries ``kid``) are checked against the
    project's JWKS; legacy HS256 tokens against ``SUPABASE_JWT_SECRET``. With
    ``USE_TEST_TOKENS=1`` tokens issued by ``test_issuer`` are accepted after
    audience and expiry checks only.
    """
    try:
        # EARLY VALIDATION: JWT tokens have exactly 3 dot-separated parts
        token_parts = token.split(".")
        if len(token_parts) != 3:
            raise HTTPException(status_code=401, detail="Invalid JWT token format")

        for part in token_parts:
            if not part or len(part) < 4:
                raise HTTPException(status_code=401, detail="Invalid JWT token format")

        try:
            unverified_header = jwt.get_unverified_header(token)
            unverified_payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.DecodeError as e:
            print__token_debug(f"JWT decode error after pre-validation: {e}")
            raise HTTPException(status_code=401, detail="Invalid JWT token format")

        print__token_debug(f"Token aud: {unverified_payload.get('aud')}")
        print__token_debug(f"Token iss: {unverified_payload.get('iss')}")
        print__token_debug(f"Token alg: {unverified_header.get('alg')}")

        # TEST MODE: Only enabled when USE_TEST_TOKENS environment variable is "1"
        use_test_tokens = os.getenv("USE_TEST_TOKENS", "0") == "1"
        if use_test_tokens and unverified_payload.get("iss") == "test_issuer":
            print__token_debug(
                "🧪 TEST MODE: Detected test token with test issuer - skipping signature verification"
            )
            expected_aud = _expected_audience()
            if unverified_payload.get("aud") != expected_aud:
                print__token_debug(
                    f"Test token audience mismatch. Expected: {expected_aud}, Got: {unverified_payload.get('aud')}"
                )
                raise HTTPException(
                    status_code=401, detail="Invalid test token audience"
                )

            if int(unverified_payload.get("exp", 0)) < time.time():
                print__token_debug("Test token has expired")
                raise HTTPException(status_code=401, detail="Test token has expired")

            print__token_debug("✅ TEST MODE: Test token validation successful")
            return unverified_payload

        elif unverified_payload.get("iss") == "test_issuer":
            print__token_debug(
                f"🚫 TEST MODE DISABLED: Test token detected but USE_TEST_TOKENS={os.getenv('USE_TEST_TOKENS', '0')} - rejecting token"
            )
            raise HTTPException(
                status_code=401,
                detail="Test tokens are not allowed in this environment",
            )

        # LEGACY FLOW: symmetric HS256 tokens carry no 'kid'
        if "kid" not in unverified_header:
            settings._JWT_KID_MISSING_COUNT += 1
            if settings._JWT_KID_MISSING_COUNT % 10 == 1:
                print__token_debug(
                    f"JWT token missing 'kid' field (#{settings._JWT_KID_MISSING_COUNT}) - using shared secret verification"
                )

            jwt_secret = os.getenv("SUPABASE_JWT_SECRET")
            if not jwt_secret:
                print__token_debug("SUPABASE_JWT_SECRET is not configured")
                raise HTTPException(
                    status_code=401,
                    detail="Token verification failed - auth server not configured",
                )

            payload = _decode_verified(token, jwt_secret, ["HS256"])
            print__token_debug("✅ HS256 token verification successful")
            return payload

        # ASYMMETRIC FLOW: match the signing key by 'kid'
        algorithm = unverified_header.get("alg")
        if algorithm not in ASYMMETRIC_ALGORITHMS:
            print__token_debug(f"Unsupported signing algorithm: {algorithm}")
            raise HTTPException(status_code=401, detail="Invalid token")

        jwks = fetch_supabase_jwks()
        for key in jwks["keys"]:
            if key.get("kid") == unverified_header["kid"]:
                public_key = jwt.PyJWK(key, algorithm=algorithm).key
                payload = _decode_verified(token, public_key, [algorithm])
                print__token_debug("✅ JWKS token verification successful")
                return payload

        print__token_debug("JWT public key not found in Supabase JWKS")
        raise HTTPException(
            status_code=401, detail="Invalid token: public key not found"
        )

    except HTTPException:
        raise  # Re-raise HTTPException as-is
    except jwt.DecodeError as e:
        print__token_debug(f"JWT decode error in main handler: {e}")
        raise HTTPException(status_code=401, detail="Invalid JWT token format")
    except KeyError as e:
        print__token_debug(f"JWT verification KeyError: {e}")
        raise HTTPException(status_code=401, detail="Invalid JWT token structure")
    except Exception as e:
        print__token_debug(f"JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Token verification failed")
