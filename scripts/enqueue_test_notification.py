"""Utility script to queue a notification intent for manual testing."""

from __future__ import annotations

import argparse
import json

from sqlalchemy.exc import SQLAlchemyError

from push_worker.application.use_cases import enqueue_intent, register_token
from push_worker.config import ConfigurationError, load_settings
from push_worker.infrastructure.database import (
    create_session_factory,
    engine_from_settings,
    initialize_database,
)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the test notification."""

    parser = argparse.ArgumentParser(
        description="Queue a notification intent for the push dispatch worker.",
    )
    parser.add_argument("--tenant-id", required=True, help="Tenant that owns the recipient")
    parser.add_argument("--user-id", required=True, help="Recipient user identifier")
    parser.add_argument(
        "--event-type",
        default="test",
        help="Event type recorded with the intent (default: test)",
    )
    parser.add_argument("--title", default="Test notification", help="Notification title")
    parser.add_argument(
        "--body",
        default="This is a test notification from the push worker.",
        help="Notification body",
    )
    parser.add_argument(
        "--payload",
        default=None,
        help="Optional JSON object delivered as the data payload",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Register this device token for the user before queueing",
    )
    parser.add_argument(
        "--platform",
        default="android",
        choices=["android", "ios", "web"],
        help="Platform of --token (default: android)",
    )
    return parser.parse_args()


def main() -> None:
    """Queue an intent using the provided command line arguments."""

    args = parse_args()

    payload = None
    if args.payload:
        try:
            payload = json.loads(args.payload)
        except json.JSONDecodeError as exc:
            raise SystemExit(f"--payload is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise SystemExit("--payload must be a JSON object")

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        raise SystemExit(str(exc)) from exc

    engine = engine_from_settings(settings)
    initialize_database(engine)
    session = create_session_factory(engine)()
    try:
        if args.token:
            token = register_token(
                session,
                user_id=args.user_id,
                tenant_id=args.tenant_id,
                token=args.token,
                platform=args.platform,
            )
            print(f"Token registered: {token.id} ({token.platform.value})")
        intent = enqueue_intent(
            session,
            tenant_id=args.tenant_id,
            user_id=args.user_id,
            event_type=args.event_type,
            title=args.title,
            body=args.body,
            payload=payload,
        )
    except ValueError as exc:
        session.rollback()
        raise SystemExit(f"Could not queue the notification: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Database error while queueing the notification: {exc}") from exc
    else:
        print(
            "Notification queued:\n"
            f"  ID: {intent.id}\n"
            f"  User: {intent.user_id}\n"
            f"  Title: {intent.title}"
        )
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    main()
