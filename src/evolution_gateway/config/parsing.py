"""Parsing and normalization helpers for configuration values.

Provides boolean parsing, status-code list parsing, and enum-name
normalization used by the other config sub-modules.
"""

import logging
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)


def _parse_bool(value: Any) -> bool:
    parsed = _try_parse_bool(value)
    if parsed is None:
        raise ValueError(f"Invalid boolean value '{value}'")
    return parsed


def _try_parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"true", "1", "yes", "on"}:
        return True
    if normalized in {"false", "0", "no", "off"}:
        return False
    return None


def _parse_status_codes(value: Any) -> List[int]:
    """Parse retryable status codes from a list or a comma-separated string.

    Args:
        value: Iterable of ints/strings, or a string like ``"429, 503"``

    Returns:
        Sorted, de-duplicated list of integer status codes
    """
    items: Iterable[Any]
    if isinstance(value, str):
        items = [part for part in value.split(",") if part.strip()]
    else:
        items = value
    return sorted({int(str(item).strip()) for item in items})


def _normalize_choice(value: Any, valid: Iterable[str], field_name: str) -> str:
    """Lower-case ``value`` and check it against ``valid``.

    Raises:
        ValueError: If the normalized value is not one of ``valid``
    """
    normalized = str(value).strip().lower()
    choices = sorted(valid)
    if normalized not in choices:
        raise ValueError(
            f"Invalid {field_name} '{value}'. Valid options: {', '.join(choices)}"
        )
    return normalized
