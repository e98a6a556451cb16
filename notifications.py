import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from models import Notification, NotificationPriority, NotificationType
from periods import local_now
from schemas import NotificationOut, NotificationPage, Pagination, Payload

logger = logging.getLogger(__name__)


def get_current_user_id() -> int:
    return 1


def create_notification(
    session: Session,
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    payload: Optional[Payload] = None,
    priority: NotificationPriority = NotificationPriority.medium,
    *,
    now: Optional[datetime] = None,
) -> Optional[Notification]:
    """Stage a notification inside a savepoint of the caller's session.

    Delivery is best-effort: a failure rolls back only the savepoint, is
    logged and reported as ``None`` instead of propagating. Work the caller
    already had pending is left alone, and the caller's commit persists the
    notification together with it.
    """
    try:
        if payload is not None and payload.type != NotificationType(type).value:
            raise ValueError(
                f"Payload kind {payload.type} does not match notification type {type}"
            )
        notification = Notification(
            user_id=user_id,
            type=NotificationType(type),
            title=title,
            message=message,
            payload=payload.model_dump(mode="json") if payload is not None else None,
            subject_id=payload.subject_id if payload is not None else None,
            priority=NotificationPriority(priority),
            read=False,
            created_at=now or local_now(),
        )
        with session.begin_nested():
            session.add(notification)
        return notification
    except Exception:
        logger.exception(
            f"notification_create_failed: user_id={user_id} type={type} title={title!r}"
        )
        return None


class NotificationService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def get(self, notification_id: int) -> Notification:
        notification = self.session.get(Notification, notification_id)
        if not notification or notification.user_id != self.user_id:
            raise ValueError("Notification not found")
        return notification

    def unread_count(self) -> int:
        return int(
            self.session.execute(
                select(func.count(Notification.id)).where(
                    Notification.user_id == self.user_id,
                    Notification.read.is_(False),
                )
            ).scalar_one()
        )

    def list(
        self, page: int = 1, limit: int = 20, unread_only: bool = False
    ) -> NotificationPage:
        page = max(page, 1)
        limit = max(limit, 1)
        conditions = [Notification.user_id == self.user_id]
        if unread_only:
            conditions.append(Notification.read.is_(False))

        total = int(
            self.session.execute(
                select(func.count(Notification.id)).where(*conditions)
            ).scalar_one()
        )
        stmt = (
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        rows = self.session.scalars(stmt).all()
        return NotificationPage(
            notifications=[NotificationOut.model_validate(n) for n in rows],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit),
            ),
            unread_count=self.unread_count(),
        )

    def mark_read(self, notification_id: int) -> Notification:
        notification = self.get(notification_id)
        notification.read = True
        self.session.commit()
        self.session.refresh(notification)
        return notification

    def mark_all_read(self) -> int:
        result = self.session.execute(
            update(Notification)
            .where(
                Notification.user_id == self.user_id,
                Notification.read.is_(False),
            )
            .values(read=True)
        )
        self.session.commit()
        return result.rowcount or 0

    def delete(self, notification_id: int) -> None:
        notification = self.get(notification_id)
        self.session.delete(notification)
        self.session.commit()
