"""Redaction of credentials before request/response data reaches the logs.

Key-based redaction replaces the whole value of any field whose name is in
the sensitive set; pattern-based redaction scrubs free text such as error
messages.
"""

import re
from typing import Any, Collection, Final, FrozenSet, List, Mapping, Optional, Tuple

REDACTED: Final[str] = "[REDACTED]"

DEFAULT_SENSITIVE_FIELDS: Final[Tuple[str, ...]] = (
    "apikey",
    "api_key",
    "token",
    "password",
    "secret",
)

SENSITIVE_HEADERS: Final[FrozenSet[str]] = frozenset(
    {
        "apikey",
        "api-key",
        "x-api-key",
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
    }
)

SENSITIVE_PATTERNS: Final[List[Tuple[str, str]]] = [
    (r"(?i)(api[_-]?key|apikey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{8,})['\"]?", "API_KEY"),
    (r"(?i)bearer\s+([a-zA-Z0-9_\-\.]+)", "BEARER_TOKEN"),
    (r"(?i)(password|passwd|pwd)\s*[:=]\s*['\"]?([^\s'\"]{4,})['\"]?", "PASSWORD"),
    (r"(?i)(token|secret)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-\.+/=]{16,})['\"]?", "SECRET"),
]
"""Regex patterns scrubbed from free text, as (pattern, label) pairs."""


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("-", "_")


def redact_fields(
    data: Any,
    sensitive_fields: Optional[Collection[str]] = None,
    *,
    max_depth: int = 10,
) -> Any:
    """Recursively replace values of sensitive keys with ``[REDACTED]``.

    Matching is case-insensitive and treats ``-`` and ``_`` alike.

    Args:
        data: Dict, list, tuple or scalar to redact.
        sensitive_fields: Field names to redact (default: DEFAULT_SENSITIVE_FIELDS).
        max_depth: Maximum recursion depth.

    Returns:
        A redacted copy of ``data``.
    """
    if max_depth <= 0:
        return "[MAX_DEPTH_EXCEEDED]"

    fields = {_normalize_key(f) for f in (sensitive_fields or DEFAULT_SENSITIVE_FIELDS)}

    if isinstance(data, Mapping):
        result = {}
        for key, value in data.items():
            if _normalize_key(key) in fields:
                result[key] = REDACTED
            else:
                result[key] = redact_fields(value, fields, max_depth=max_depth - 1)
        return result
    if isinstance(data, (list, tuple)):
        items = [redact_fields(item, fields, max_depth=max_depth - 1) for item in data]
        return type(data)(items) if isinstance(data, tuple) else items
    return data


def redact_headers(
    headers: Mapping[str, str],
    sensitive_fields: Optional[Collection[str]] = None,
) -> dict:
    """Copy of ``headers`` with credential headers replaced by ``[REDACTED]``."""
    extra = {_normalize_key(f) for f in (sensitive_fields or ())}
    return {
        key: REDACTED
        if key.lower() in SENSITIVE_HEADERS or _normalize_key(key) in extra
        else value
        for key, value in headers.items()
    }


def redact_text(text: str) -> str:
    """Scrub credential-looking substrings from free text."""
    result = text
    for pattern, label in SENSITIVE_PATTERNS:
        result = re.sub(pattern, f"[REDACTED:{label}]", result)
    return result
