"""Storage layer exceptions.

Every repository raises one of these with the user-facing message and the
HTTP status the routes answer with; routes turn them into HTTPException.
"""

from __future__ import annotations

from typing import Optional


class StorageError(Exception):
    """Object storage / media repository failure."""

    def __init__(self, message: str, status_code: int = 500, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.cause = cause


class ChatHistoryError(Exception):
    """Chat history store failure ("Chat not found", "No chats to clear", ...)."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ==============================================================================
# NOTES
# ==============================================================================
NOT_CONFIGURED = "NOT_CONFIGURED"
AUTH_REQUIRED = "AUTH_REQUIRED"
NOT_FOUND = "NOT_FOUND"
ACCESS_DENIED = "ACCESS_DENIED"
VALIDATION_ERROR = "VALIDATION_ERROR"
CYCLE_DETECTED = "CYCLE_DETECTED"
OPERATION_FAILED = "OPERATION_FAILED"
NETWORK_ERROR = "NETWORK_ERROR"

NOTES_ERROR_MESSAGES = {
    NOT_CONFIGURED: "Notes are not available. Please configure Supabase.",
    AUTH_REQUIRED: "Please sign in to access your notes.",
    NOT_FOUND: "Note not found.",
    ACCESS_DENIED: "You don't have permission to access this note.",
    VALIDATION_ERROR: "Invalid data provided.",
    CYCLE_DETECTED: "Cannot move a note inside itself or its children.",
    OPERATION_FAILED: "Operation failed. Please try again.",
    NETWORK_ERROR: "Network error. Please check your connection and try again.",
}

NOTES_ERROR_STATUS = {
    NOT_CONFIGURED: 503,
    AUTH_REQUIRED: 401,
    NOT_FOUND: 404,
    ACCESS_DENIED: 403,
    VALIDATION_ERROR: 400,
    CYCLE_DETECTED: 400,
    OPERATION_FAILED: 500,
    NETWORK_ERROR: 503,
}

# Postgres SQLSTATE -> user-facing message
_SQLSTATE_MESSAGES = {
    "42501": NOTES_ERROR_MESSAGES[ACCESS_DENIED],
    "23505": "A note with this information already exists.",
    "23503": "Referenced item does not exist.",
}


def get_notes_error_message(code: str, details: Optional[str] = None) -> str:
    base = NOTES_ERROR_MESSAGES[code]
    return f"{base} {details}" if details else base


class NotesError(Exception):
    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or get_notes_error_message(code)
        self.status_code = NOTES_ERROR_STATUS.get(code, 500)
        super().__init__(self.message)


def notes_error_from_exception(error: Exception) -> NotesError:
    """Map a driver / network exception to a NotesError."""
    if isinstance(error, NotesError):
        return error

    sqlstate = getattr(error, "sqlstate", None)
    if sqlstate in _SQLSTATE_MESSAGES:
        code = ACCESS_DENIED if sqlstate == "42501" else OPERATION_FAILED
        return NotesError(code, _SQLSTATE_MESSAGES[sqlstate])

    message = str(error).lower()
    if "connection" in message or "network" in message:
        return NotesError(NETWORK_ERROR)
    return NotesError(OPERATION_FAILED)
