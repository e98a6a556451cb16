from datetime import datetime, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from dedup import DedupGuard, suppression_window
from models import Notification, NotificationType, User

NOW = datetime(2026, 3, 10, 10, 0)


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = Session(engine)
    session.add_all([User(id=1, username="alice"), User(id=2, username="bob")])
    session.commit()
    return session


def _notify(session: Session, type: NotificationType, subject_id: int, age: timedelta, user_id: int = 1):
    session.add(
        Notification(
            user_id=user_id,
            type=type,
            title="t",
            message="m",
            subject_id=subject_id,
            created_at=NOW - age,
        )
    )
    session.commit()


def test_windows_per_type():
    assert suppression_window(NotificationType.budget_alert) == timedelta(hours=24)
    assert suppression_window(NotificationType.recurring_expense) == timedelta(hours=24)
    assert suppression_window(NotificationType.goal_reminder) == timedelta(days=7)


def test_budget_alert_suppressed_inside_window_only():
    session = _session()
    guard = DedupGuard(session)
    assert guard.admit(1, NotificationType.budget_alert, 7, NOW)

    _notify(session, NotificationType.budget_alert, 7, timedelta(hours=23))
    assert guard.is_suppressed(1, NotificationType.budget_alert, 7, NOW)
    assert not guard.is_suppressed(1, NotificationType.budget_alert, 7, NOW + timedelta(hours=2))
    session.close()


def test_goal_reminder_uses_seven_day_window():
    session = _session()
    guard = DedupGuard(session)
    _notify(session, NotificationType.goal_reminder, 3, timedelta(days=6))
    assert guard.is_suppressed(1, NotificationType.goal_reminder, 3, NOW)
    assert guard.admit(1, NotificationType.goal_reminder, 3, NOW + timedelta(days=2))
    session.close()


def test_suppression_is_keyed_by_user_type_and_subject():
    session = _session()
    guard = DedupGuard(session)
    _notify(session, NotificationType.budget_alert, 7, timedelta(hours=1))

    assert guard.admit(1, NotificationType.budget_alert, 8, NOW)
    assert guard.admit(2, NotificationType.budget_alert, 7, NOW)
    assert guard.admit(1, NotificationType.recurring_expense, 7, NOW)
    session.close()
