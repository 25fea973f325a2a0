"""Conversion between stored content parts and google-genai ``types.Part``.

Parts travel through the API and chat history as JSON dicts with camelCase
keys (``text``, ``thought``, ``thoughtSignature``, ``inlineData``,
``fileData``). Binary fields (inline data, thought signatures) are base64
strings in that form and raw bytes in the SDK objects.
"""

from __future__ import annotations

import base64
from typing import Any, List, Optional

from google.genai import types


def _b64decode(value: Optional[str]) -> Optional[bytes]:
    if not value:
        return None
    return base64.b64decode(value)


def _b64encode(value: Optional[bytes]) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, str):
        return value
    return base64.b64encode(value).decode("ascii")


def to_sdk_part(part: dict) -> types.Part:
    """Build an SDK part from a stored dict part."""
    inline_data = part.get("inlineData")
    if inline_data:
        return types.Part(
            inline_data=types.Blob(
                mime_type=inline_data.get("mimeType"),
                data=_b64decode(inline_data.get("data")),
            ),
            thought_signature=_b64decode(part.get("thoughtSignature")),
        )

    file_data = part.get("fileData")
    if file_data:
        return types.Part(
            file_data=types.FileData(
                file_uri=file_data.get("fileUri"),
                mime_type=file_data.get("mimeType"),
            )
        )

    return types.Part(
        text=part.get("text") or "",
        thought=part.get("thought") or None,
        thought_signature=_b64decode(part.get("thoughtSignature")),
    )


def to_sdk_content(role: str, parts: List[dict]) -> types.Content:
    return types.Content(role=role, parts=[to_sdk_part(part) for part in parts])


def media_part(media: dict) -> Optional[dict]:
    """Stored part for an attachment dict (``data`` + ``mimeType`` or ``fileUri``)."""
    if media.get("data") and media.get("mimeType"):
        return {"inlineData": {"mimeType": media["mimeType"], "data": media["data"]}}
    if media.get("fileUri"):
        file_data = {"fileUri": media["fileUri"]}
        if media.get("mimeType"):
            file_data["mimeType"] = media["mimeType"]
        return {"fileData": file_data}
    return None


def part_to_dict(part: Any) -> dict:
    """Stored form of a text / thought part from a model response."""
    stored = {"text": getattr(part, "text", None)}
    if getattr(part, "thought", None):
        stored["thought"] = True
    signature = _b64encode(getattr(part, "thought_signature", None))
    if signature:
        stored["thoughtSignature"] = signature
    return stored
