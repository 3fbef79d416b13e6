"""Use case for registering a device token."""

from sqlalchemy.orm import Session

from push_worker.domain.entities import Platform, PushToken, is_valid_token
from push_worker.infrastructure.repositories import PushTokenRepository


def register_token(
    session: Session,
    *,
    user_id: str,
    tenant_id: str,
    token: str,
    platform: str | Platform,
) -> PushToken:
    """Store ``token`` for ``user_id``, reactivating an existing registration."""

    if not is_valid_token(token):
        raise ValueError("token does not look like a push registration token")
    try:
        resolved_platform = (
            platform if isinstance(platform, Platform) else Platform(str(platform).strip().lower())
        )
    except ValueError as exc:
        msg = f"Unsupported platform: {platform}"
        raise ValueError(msg) from exc

    repository = PushTokenRepository(session)
    return repository.upsert(
        PushToken(
            id=None,
            user_id=user_id,
            tenant_id=tenant_id,
            token=token,
            platform=resolved_platform,
        )
    )
