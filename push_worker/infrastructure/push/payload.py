"""Coercion of intent payloads into the string map accepted by the transport."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

DEFAULT_MAX_VALUE_LENGTH = 4000
DEFAULT_MAX_TOTAL_SIZE = 4000
TRUNCATION_MARKER = "..."


def _encoded_size(text: str) -> int:
    return len(text.encode("utf-8"))


def _truncate(value: str, max_bytes: int) -> str:
    # Cut on a code point boundary so the encoded result plus the marker fits.
    budget = max(0, max_bytes - _encoded_size(TRUNCATION_MARKER))
    head = value.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
    return head + TRUNCATION_MARKER


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str, ensure_ascii=False)
    return str(value)


def sanitize_data_payload(
    payload: Mapping[str, Any] | None,
    *,
    max_value_length: int = DEFAULT_MAX_VALUE_LENGTH,
    max_total_size: int = DEFAULT_MAX_TOTAL_SIZE,
) -> dict[str, str]:
    """Return ``payload`` as a bounded ``str -> str`` mapping.

    Values are stringified and cut to ``max_value_length`` UTF-8 bytes (the
    cut value ends with ``...`` and never splits a character). Entries are
    then admitted in the payload's own iteration order while the running
    UTF-8 size of keys plus values stays within ``max_total_size``; an entry
    that does not fit is dropped and later, smaller entries may still be
    admitted. ``None`` values are skipped. The result is therefore
    deterministic and favours earlier keys.
    """

    if not isinstance(payload, Mapping):
        return {}

    sanitized: dict[str, str] = {}
    total_size = 0
    for raw_key, raw_value in payload.items():
        if raw_value is None:
            continue
        key = str(raw_key)
        value = _stringify(raw_value)
        if _encoded_size(value) > max_value_length:
            value = _truncate(value, max_value_length)

        entry_size = _encoded_size(key) + _encoded_size(value)
        if total_size + entry_size > max_total_size:
            continue
        sanitized[key] = value
        total_size += entry_size

    return sanitized


__all__ = [
    "DEFAULT_MAX_TOTAL_SIZE",
    "DEFAULT_MAX_VALUE_LENGTH",
    "TRUNCATION_MARKER",
    "sanitize_data_payload",
]
