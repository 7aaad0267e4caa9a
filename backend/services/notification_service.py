"""Notification sink for workflow events.

Notifications are written in their own session after the triggering
transition has committed. A failed write is logged and dropped; it never
propagates to, or rolls back, the transition that caused it.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from db.session import SessionLocal
from models.notification import Notification
from models.user import User
from constants import Role

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory or SessionLocal

    def notify(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Persist one notification. Returns False instead of raising on failure."""
        if user_id is None:
            return False
        db = None
        try:
            db = self._session_factory()
            db.add(Notification(
                user_id=user_id,
                type=getattr(type, "value", type),
                title=title,
                message=message,
                extra=metadata,
            ))
            db.commit()
            logger.info(f"Notification created for user {user_id}: {title}")
            return True
        except Exception as e:
            if db is not None:
                db.rollback()
            logger.error(f"Failed to create notification for user {user_id}: {e}", exc_info=True)
            return False
        finally:
            if db is not None:
                db.close()

    def notify_many(self, user_ids: Iterable[int], type: str, title: str, message: str,
                    metadata: Optional[Dict[str, Any]] = None) -> int:
        return sum(1 for uid in user_ids if self.notify(uid, type, title, message, metadata))

    def active_user_ids(self, role: Role) -> list:
        """Ids of active users holding ``role``; empty on lookup failure."""
        db = None
        try:
            db = self._session_factory()
            rows = db.query(User.id).filter(User.role == role.value, User.is_active.is_(True)).all()
            return [row[0] for row in rows]
        except Exception as e:
            logger.error(f"Could not look up {role.value} users: {e}")
            return []
        finally:
            if db is not None:
                db.close()


notifier = NotificationDispatcher()
