"""Google GenAI SDK client singleton.

One ``genai.Client`` serves every Gemini operation in the process. It is built
lazily so the API can start (and report "not configured") without a key.
"""

from __future__ import annotations

import os
from typing import Optional

from google import genai

from api.config.settings import is_gemini_configured
from api.utils.debug import print__gemini_debug
from gemini.errors import GeminiAuthError

_client: Optional[genai.Client] = None


def get_api_key() -> Optional[str]:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")


def get_gemini_client() -> genai.Client:
    """Return the shared client, creating it on first use.

    Raises:
        GeminiAuthError: neither GEMINI_API_KEY nor GOOGLE_API_KEY is set
    """
    global _client

    if _client is None:
        api_key = get_api_key()
        if not api_key:
            raise GeminiAuthError(
                "GEMINI_API_KEY or GOOGLE_API_KEY environment variable is required"
            )
        print__gemini_debug("🚀 Creating Google GenAI client")
        _client = genai.Client(api_key=api_key)

    return _client


def is_gemini_available() -> bool:
    return is_gemini_configured()
