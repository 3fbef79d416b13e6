"""Contract between the delivery dispatcher and a push provider."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from push_worker.domain.entities import Platform


@dataclass(frozen=True)
class PushMessage:
    """One notification addressed to one device token."""

    token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    platform: Platform | None = None


@dataclass(frozen=True)
class SendResult:
    """Provider verdict for a single :class:`PushMessage`."""

    success: bool
    message_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None


class PushTransport(Protocol):
    """Capability to send per-token messages and report per-token verdicts.

    ``send_each`` returns one :class:`SendResult` per message in the same
    order. Raising means the whole call failed and no verdicts exist.
    """

    def send_each(self, messages: Sequence[PushMessage]) -> list[SendResult]:
        ...

    def health_check(self) -> bool:
        ...


__all__ = ["PushMessage", "PushTransport", "SendResult"]
