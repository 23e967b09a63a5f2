"""Sensitive data redaction for log records.

Any mapping field whose name looks like a credential is replaced with a
fixed placeholder before it is logged, and credential-looking fragments of
free text (Authorization header values, key=value pairs) are masked.
"""

import re
from typing import Any, Pattern

REDACTED = "[REDACTED]"

SENSITIVE_KEY_PATTERN: Pattern[str] = re.compile(
    r"api[_-]?key|password|passwd|secret|token|authorization|credential|^auth$",
    re.IGNORECASE,
)

_TEXT_PATTERNS = (
    (re.compile(r"(?i)\b(bearer)\s+[a-z0-9._~+/=-]+"), r"\1 " + REDACTED),
    (re.compile(r"(?i)\b(basic)\s+[a-z0-9+/]{16,}={0,2}"), r"\1 " + REDACTED),
    (
        re.compile(r"(?i)\b(api[_-]?key|password|secret|token)\s*[:=]\s*['\"]?[^\s'\",&]+"),
        r"\1=" + REDACTED,
    ),
)

MAX_DEPTH = 10


def is_sensitive_key(name: Any) -> bool:
    return isinstance(name, str) and bool(SENSITIVE_KEY_PATTERN.search(name))


def redact_text(text: str) -> str:
    """Masks credential fragments inside a free-form string."""
    for pattern, replacement in _TEXT_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def redact(data: Any, _depth: int = 0) -> Any:
    """Returns a redacted copy of `data` (dicts, lists, tuples, strings).

    The input is never mutated.
    """
    if _depth >= MAX_DEPTH:
        return "[MAX_DEPTH_EXCEEDED]"
    if isinstance(data, dict):
        return {
            key: REDACTED if is_sensitive_key(key) else redact(value, _depth + 1)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return type(data)(redact(item, _depth + 1) for item in data)
    if isinstance(data, str):
        return redact_text(data)
    return data
