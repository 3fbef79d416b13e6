"""Domain entity representing a device registration."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_:\-]+$")


class Platform(str, Enum):
    """Device platforms accepted by the push transport."""

    ANDROID = "android"
    IOS = "ios"
    WEB = "web"


@dataclass
class PushToken:
    """Opaque push address registered by one of the user's devices."""

    id: str | None
    user_id: str
    tenant_id: str
    token: str
    platform: Platform
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_used_at: datetime | None = None


def is_valid_token(token: object) -> bool:
    """Return ``True`` when ``token`` looks like a provider registration token."""

    return (
        isinstance(token, str)
        and 50 < len(token) < 500
        and _TOKEN_PATTERN.match(token) is not None
    )


__all__ = ["Platform", "PushToken", "is_valid_token"]
