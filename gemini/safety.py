"""Input safety checks run before a query reaches the model.

Prompt-injection and jailbreak phrasing blocks the request. Basic PII
(SSN, card number, US phone number) is flagged and redacted but does not
block on its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

BLOCKED_PATTERNS = [
    # Prompt injection attempts
    re.compile(r"ignore\s+(previous|all|above)\s+instructions?", re.IGNORECASE),
    re.compile(
        r"disregard\s+(your|all|previous)\s+(instructions?|rules?|programming)",
        re.IGNORECASE,
    ),
    re.compile(r"you\s+are\s+now\s+(dan|jailbroken|unrestricted)", re.IGNORECASE),
    re.compile(
        r"pretend\s+(you('re)?|to\s+be)\s+(a\s+)?(different|evil|unrestricted)",
        re.IGNORECASE,
    ),
    re.compile(r"system\s*:\s*(you\s+are|ignore|override)", re.IGNORECASE),
    # Jailbreak patterns
    re.compile(r"\[system\]", re.IGNORECASE),
    re.compile(r"\[assistant\]", re.IGNORECASE),
    re.compile(r"do\s+anything\s+now", re.IGNORECASE),
    re.compile(r"bypass\s+(all\s+)?(restrictions?|filters?|safety)", re.IGNORECASE),
]

PII_PATTERNS = [
    re.compile(r"\b\d{3}[-.]?\d{2}[-.]?\d{4}\b"),  # SSN
    re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"),  # card number
    re.compile(r"\b\(?[2-9]\d{2}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"),  # US phone
]

REDACTED = "[REDACTED]"

INJECTION_REPLY = (
    "I can't process that request. "
    "Let me know if you have a different question I can help with! 🙂"
)
PII_REPLY = (
    "I noticed some sensitive information in your message. Could you rephrase "
    "without including personal details? I'm here to help! 💡"
)


@dataclass
class SafetyResult:
    blocked: bool
    violations: List[str] = field(default_factory=list)
    sanitized_input: str = ""


def process_input_safely(text: str) -> SafetyResult:
    violations = []
    blocked = False
    sanitized = text

    for pattern in BLOCKED_PATTERNS:
        if pattern.search(text):
            violations.append("prompt_injection")
            blocked = True
            break

    for pattern in PII_PATTERNS:
        if pattern.search(text):
            violations.append("pii")
            # only the first occurrence per pattern is replaced
            sanitized = pattern.sub(REDACTED, sanitized, count=1)

    return SafetyResult(blocked=blocked, violations=violations, sanitized_input=sanitized)


def blocked_message(violations: List[str]) -> str:
    """Canned assistant reply for a blocked request."""
    if "prompt_injection" in violations or "jailbreak" in violations:
        return INJECTION_REPLY
    return PII_REPLY
