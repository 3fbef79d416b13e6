"""Persistence layer for push token registrations."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from push_worker.domain.entities import Platform, PushToken
from push_worker.infrastructure.models import PushTokenModel
from push_worker.utils import ensure_naive_utc, ensure_utc, utc_now


class PushTokenRepository:
    """Provide lookup and reconciliation helpers for :class:`PushToken` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, token_id: str) -> PushToken | None:
        model = self.session.get(PushTokenModel, token_id)
        return self._to_entity(model) if model else None

    def get_by_user_and_token(self, user_id: str, token: str) -> PushToken | None:
        model = self._get_model(user_id=user_id, token=token)
        return self._to_entity(model) if model else None

    def upsert(self, token: PushToken) -> PushToken:
        """Insert ``token`` or refresh the existing row for the same user and token."""

        model = self._get_model(user_id=token.user_id, token=token.token)
        if model is None:
            model = PushTokenModel(user_id=token.user_id, token=token.token)
        self._apply_registration(model, token)
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent registration inserted the same pair first.
            self.session.rollback()
            model = self._get_model(user_id=token.user_id, token=token.token)
            if model is None:
                raise
            self._apply_registration(model, token)
            self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_active_for_user(
        self, user_id: str, *, freshness: timedelta
    ) -> Sequence[PushToken]:
        """Return the fresh active tokens of ``user_id`` and touch ``last_used_at``."""

        now = ensure_naive_utc(utc_now())
        self.session.execute(
            update(PushTokenModel)
            .where(
                PushTokenModel.user_id == user_id,
                PushTokenModel.is_active.is_(True),
            )
            .values(last_used_at=now)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

        cutoff = ensure_naive_utc(utc_now() - freshness)
        query = (
            select(PushTokenModel)
            .where(
                PushTokenModel.user_id == user_id,
                PushTokenModel.is_active.is_(True),
                PushTokenModel.updated_at > cutoff,
            )
            .order_by(PushTokenModel.created_at.asc(), PushTokenModel.id.asc())
        )
        return [self._to_entity(model) for model in self.session.scalars(query)]

    def deactivate(self, token_ids: Iterable[str]) -> int:
        """Flip ``is_active`` off for ``token_ids``; returns how many changed."""

        ids = list(dict.fromkeys(token_id for token_id in token_ids if token_id))
        if not ids:
            return 0
        result = self.session.execute(
            update(PushTokenModel)
            .where(
                PushTokenModel.id.in_(ids),
                PushTokenModel.is_active.is_(True),
            )
            .values(is_active=False, updated_at=ensure_naive_utc(utc_now()))
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount or 0

    def count_active(self) -> int:
        return self.session.scalar(
            select(func.count(PushTokenModel.id)).where(
                PushTokenModel.is_active.is_(True)
            )
        ) or 0

    @staticmethod
    def _apply_registration(model: PushTokenModel, token: PushToken) -> None:
        now = ensure_naive_utc(utc_now())
        if model.created_at is None:
            model.created_at = now
        model.tenant_id = token.tenant_id
        model.platform = Platform(token.platform).value
        model.is_active = True
        model.updated_at = now
        model.last_used_at = model.last_used_at or now

    def _get_model(self, **filters) -> PushTokenModel | None:
        return self.session.query(PushTokenModel).filter_by(**filters).first()

    @staticmethod
    def _to_entity(model: PushTokenModel) -> PushToken:
        return PushToken(
            id=model.id,
            user_id=model.user_id,
            tenant_id=model.tenant_id,
            token=model.token,
            platform=Platform(model.platform),
            is_active=bool(model.is_active),
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
            last_used_at=ensure_utc(model.last_used_at),
        )


__all__ = ["PushTokenRepository"]
