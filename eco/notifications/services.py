"""Service layer for per-user notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from eco.constants import (
    FIRESTORE_BATCH_LIMIT,
    NOTIFICATIONS,
    NOTIFICATIONS_LIST_LIMIT,
)
from eco.core.types import Notification
from eco.errors import ValidationError
from eco.utils import docs_to_list, new_id, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def serialize_notification(notification: dict[str, Any]) -> dict[str, Any]:
    """JSON-safe copy with ISO timestamps."""
    data = dict(notification)
    created_at = data.get("created_at")
    if hasattr(created_at, "isoformat"):
        data["created_at"] = created_at.isoformat()
    return data


class NotificationService:
    """Service class for notification operations."""

    @staticmethod
    def _query(db: Client, user_id: str, is_read: bool, limit: int) -> list[Any]:
        docs = (
            db.collection(NOTIFICATIONS)
            .where(filter=firestore.FieldFilter("user_id", "==", user_id))
            .where(filter=firestore.FieldFilter("is_read", "==", is_read))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
            .stream()
        )
        return docs_to_list(docs)

    @staticmethod
    def list_for_user(
        db: Client, user_id: str, limit: int = NOTIFICATIONS_LIST_LIMIT
    ) -> list[Notification]:
        """Up to ``limit`` notifications: unread first, then newest first."""
        items = NotificationService._query(db, user_id, False, limit)
        if len(items) < limit:
            items += NotificationService._query(db, user_id, True, limit - len(items))
        return items  # type: ignore[return-value]

    @staticmethod
    def unread_count(db: Client, user_id: str) -> int:
        return len(NotificationService._query_unread(db, user_id))

    @staticmethod
    def mark_read(
        db: Client,
        user_id: str,
        ids: list[str] | None = None,
        mark_all: bool = False,
    ) -> int:
        """Mark the caller's notifications read; returns how many changed.

        Ids that belong to someone else or do not exist are skipped.
        """
        if not mark_all and not ids:
            raise ValidationError("Provide ids[] or all=true.")

        if mark_all:
            refs = [
                db.collection(NOTIFICATIONS).document(n["id"])
                for n in NotificationService._query_unread(db, user_id)
            ]
        else:
            refs = []
            for notification_id in dict.fromkeys(ids or []):
                if not isinstance(notification_id, str) or not notification_id:
                    continue
                ref = db.collection(NOTIFICATIONS).document(notification_id)
                doc = ref.get()
                if not doc.exists:
                    continue
                data = doc.to_dict() or {}
                if data.get("user_id") == user_id and not data.get("is_read"):
                    refs.append(ref)

        batch = db.batch()
        operation_count = 0
        for ref in refs:
            batch.update(ref, {"is_read": True})
            operation_count += 1
            if operation_count >= FIRESTORE_BATCH_LIMIT:
                batch.commit()
                batch = db.batch()
                operation_count = 0
        if operation_count > 0:
            batch.commit()
        return len(refs)

    @staticmethod
    def _query_unread(db: Client, user_id: str) -> list[dict[str, Any]]:
        docs = (
            db.collection(NOTIFICATIONS)
            .where(filter=firestore.FieldFilter("user_id", "==", user_id))
            .where(filter=firestore.FieldFilter("is_read", "==", False))
            .stream()
        )
        return docs_to_list(docs)

    @staticmethod
    def notify(
        db: Client,
        user_id: str,
        kind: str,
        title: str,
        body: str = "",
        action_url: str | None = None,
        writer: Any = None,
    ) -> str:
        """Create an unread notification for a user.

        With ``writer`` (a batch or transaction) the write joins it instead of
        being applied on its own.
        """
        notification_id = new_id()
        ref = db.collection(NOTIFICATIONS).document(notification_id)
        data = {
            "user_id": user_id,
            "kind": kind,
            "title": title,
            "body": body,
            "action_url": action_url,
            "is_read": False,
            "created_at": utcnow(),
        }
        if writer is None:
            ref.set(data)
        else:
            writer.set(ref, data)
        return notification_id
