"""Follow-up question generation.

A cheap structured-output call on the flash model after every standard
answer. Failures never reach the user: the stream just carries no
related questions.
"""

from __future__ import annotations

import json
from typing import List

from google.genai import types

from api.utils.debug import print__gemini_debug
from gemini.client import get_gemini_client
from gemini.constants import GEMINI_3_FLASH
from gemini.instructions import get_follow_up_prompt
from gemini.retry import with_gemini_retry

RESPONSE_SUMMARY_LENGTH = 600
MAX_FOLLOW_UPS = 3

FOLLOW_UP_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": 3,
            "maxItems": 3,
            "description": "Exactly 3 follow-up questions",
        }
    },
    "required": ["questions"],
}


async def generate_follow_ups(query: str, response: str) -> List[str]:
    try:
        client = get_gemini_client()
        prompt = get_follow_up_prompt(query, response[:RESPONSE_SUMMARY_LENGTH])

        result = await with_gemini_retry(
            lambda: client.aio.models.generate_content(
                model=GEMINI_3_FLASH,
                contents=prompt,
                config=types.GenerateContentConfig(
                    thinking_config=types.ThinkingConfig(thinking_level="MINIMAL"),
                    response_mime_type="application/json",
                    response_json_schema=FOLLOW_UP_SCHEMA,
                ),
            ),
            max_retries=2,
            base_delay_ms=500,
        )

        parsed = json.loads(result.text or "{}")
        questions = parsed.get("questions") if isinstance(parsed, dict) else None
        if isinstance(questions, list):
            return [q for q in questions[:MAX_FOLLOW_UPS] if isinstance(q, str)]

    except Exception as e:
        print__gemini_debug(f"❌ Follow-up generation failed: {type(e).__name__}: {e}")

    return []
