"""Chat model catalogue and the ``selectedModel`` cookie parser."""

import json
from typing import List, Optional

from pydantic import ValidationError

from api.models.requests import SelectedModel
from api.utils.debug import print__chat_debug
from gemini.constants import GEMINI_3_FLASH, GEMINI_3_PRO

# ============================================================
# MODEL CATALOGUE
# ============================================================
MODELS = [
    {
        "id": GEMINI_3_FLASH,
        "name": "Gemini 3 Flash",
        "provider": "Google",
        "providerId": "google",
        "enabled": True,
        "toolCallType": "native",
        "thinkingConfig": {"thinkingLevel": "minimal", "includeThoughts": True},
    },
    {
        "id": GEMINI_3_PRO,
        "name": "Gemini 3 Pro",
        "provider": "Google",
        "providerId": "google",
        "enabled": True,
        "toolCallType": "native",
        "thinkingConfig": {"thinkingLevel": "high", "includeThoughts": True},
    },
]

# Used when the request carries no (valid) model cookie
DEFAULT_CHAT_MODEL = SelectedModel(
    id=GEMINI_3_FLASH,
    name="Gemini 3 Flash",
    provider="Google",
    providerId="google",
    toolCallType="manual",
    toolCallModel=GEMINI_3_FLASH,
    thinkingConfig={"thinkingLevel": "medium", "includeThoughts": True},
)


def get_models() -> List[dict]:
    """Enabled models only."""
    return [model for model in MODELS if model.get("enabled")]


def parse_model_from_cookie(model_json: Optional[str]) -> SelectedModel:
    """Parse the ``selectedModel`` cookie, falling back to DEFAULT_CHAT_MODEL."""
    if not model_json:
        return DEFAULT_CHAT_MODEL

    try:
        model = SelectedModel.model_validate(json.loads(model_json))
    except (ValueError, ValidationError) as e:
        print__chat_debug(f"⚠️ Invalid selectedModel cookie, using default: {e}")
        return DEFAULT_CHAT_MODEL

    if model.name is None:
        model.name = model.id
    if model.provider is None:
        model.provider = model.providerId
    return model
