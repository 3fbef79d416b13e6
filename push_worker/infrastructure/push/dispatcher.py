"""Send one intent to every token of its recipient and classify the verdicts."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from push_worker.domain.entities import (
    DeliveryOutcome,
    DeliveryResult,
    NotificationIntent,
    PushToken,
    TokenDelivery,
)

from .payload import DEFAULT_MAX_TOTAL_SIZE, DEFAULT_MAX_VALUE_LENGTH, sanitize_data_payload
from .transport import PushMessage, PushTransport, SendResult

logger = logging.getLogger(__name__)

# Verdicts meaning the token will never accept a message again. A plain
# ``invalid-argument`` describes the message, not the token, and stays transient.
PERMANENT_ERROR_CODES = frozenset(
    {
        "registration-token-not-registered",
        "invalid-registration-token",
    }
)

TRANSPORT_UNAVAILABLE = "transport-unavailable"
MISSING_RESPONSE = "missing-response"


def classify(result: SendResult | None) -> DeliveryOutcome:
    """Return the :class:`DeliveryOutcome` for a single provider verdict."""

    if result is None:
        return DeliveryOutcome.TRANSIENT_FAILURE
    if result.success:
        return DeliveryOutcome.DELIVERED
    if result.error_code in PERMANENT_ERROR_CODES:
        return DeliveryOutcome.PERMANENTLY_INVALID_TOKEN
    return DeliveryOutcome.TRANSIENT_FAILURE


class DeliveryDispatcher:
    """Deliver intents through a :class:`PushTransport`."""

    def __init__(
        self,
        transport: PushTransport,
        *,
        max_value_length: int = DEFAULT_MAX_VALUE_LENGTH,
        max_total_size: int = DEFAULT_MAX_TOTAL_SIZE,
    ) -> None:
        self._transport = transport
        self._max_value_length = max_value_length
        self._max_total_size = max_total_size

    def dispatch(
        self, intent: NotificationIntent, tokens: Sequence[PushToken]
    ) -> DeliveryResult:
        """Send ``intent`` to each of ``tokens`` independently.

        A token is reported in ``invalid_token_ids`` only when the provider
        returned a permanent verdict for it; a transport-wide failure marks
        every token as failed and none as invalid.
        """

        if not tokens:
            return DeliveryResult()

        data = sanitize_data_payload(
            intent.payload,
            max_value_length=self._max_value_length,
            max_total_size=self._max_total_size,
        )
        messages = [
            PushMessage(
                token=token.token,
                title=intent.title,
                body=intent.body,
                data=data,
                platform=token.platform,
            )
            for token in tokens
        ]

        try:
            responses = self._transport.send_each(messages)
        except Exception as exc:
            logger.error(
                "Push transport failed for intent %s (%d tokens): %s",
                intent.id,
                len(tokens),
                exc,
            )
            return DeliveryResult(
                failed_count=len(tokens),
                attempts=[
                    TokenDelivery(
                        token_id=token.id,
                        outcome=DeliveryOutcome.TRANSIENT_FAILURE,
                        error_code=TRANSPORT_UNAVAILABLE,
                        error_message=str(exc),
                    )
                    for token in tokens
                ],
            )

        result = DeliveryResult()
        for index, token in enumerate(tokens):
            response = responses[index] if index < len(responses) else None
            outcome = classify(response)
            result.attempts.append(
                TokenDelivery(
                    token_id=token.id,
                    outcome=outcome,
                    message_id=response.message_id if response else None,
                    error_code=response.error_code if response else MISSING_RESPONSE,
                    error_message=response.error_message if response else None,
                )
            )
            if outcome is DeliveryOutcome.DELIVERED:
                result.delivered_count += 1
                continue

            result.failed_count += 1
            if outcome is DeliveryOutcome.PERMANENTLY_INVALID_TOKEN:
                result.invalid_token_ids.append(token.id)
            logger.warning(
                "Delivery of intent %s to token %s failed: %s",
                intent.id,
                token.id,
                response.error_code if response else MISSING_RESPONSE,
            )

        return result


__all__ = ["DeliveryDispatcher", "PERMANENT_ERROR_CODES", "classify"]
