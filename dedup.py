from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import Notification, NotificationType

SUPPRESSION_WINDOWS: dict[NotificationType, timedelta] = {
    NotificationType.budget_alert: timedelta(hours=24),
    NotificationType.recurring_expense: timedelta(hours=24),
    NotificationType.goal_reminder: timedelta(days=7),
}


def suppression_window(notification_type: NotificationType) -> timedelta:
    return SUPPRESSION_WINDOWS[notification_type]


class DedupGuard:
    """At most one notification per (user, type, subject) per window."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def is_suppressed(
        self,
        user_id: int,
        notification_type: NotificationType,
        subject_id: int,
        now: datetime,
    ) -> bool:
        since = now - suppression_window(notification_type)
        stmt = (
            select(Notification.id)
            .where(
                Notification.user_id == user_id,
                Notification.type == notification_type,
                Notification.subject_id == subject_id,
                Notification.created_at >= since,
            )
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def admit(
        self,
        user_id: int,
        notification_type: NotificationType,
        subject_id: int,
        now: datetime,
    ) -> bool:
        return not self.is_suppressed(user_id, notification_type, subject_id, now)
