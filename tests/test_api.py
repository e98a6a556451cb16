from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from database import Base, build_engine, build_session_factory, session_scope
from main import app, get_db
from models import Frequency, Notification, NotificationType, RecurringExpense, User
from notifications import create_notification
from periods import local_today

NOW = datetime(2026, 3, 10, 10, 0)


@pytest.fixture()
def client(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'api.db'}")
    Base.metadata.create_all(engine)
    factory = build_session_factory(engine)
    with session_scope(factory) as session:
        session.add_all([User(id=1, username="alice"), User(id=2, username="bob")])
        session.flush()
        for user_id, title in ((1, "mine"), (1, "also mine"), (2, "theirs")):
            create_notification(
                session, user_id, NotificationType.goal_reminder, title, "m", now=NOW
            )

    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app), factory
    app.dependency_overrides.clear()


def _ids(factory, user_id: int) -> list[int]:
    with session_scope(factory) as session:
        return [
            n.id
            for n in session.query(Notification).filter(Notification.user_id == user_id)
        ]


def test_list_and_mark_read(client):
    http, factory = client
    body = http.get("/api/notifications").json()
    assert body["pagination"]["total"] == 2
    assert body["unread_count"] == 2

    first = _ids(factory, 1)[0]
    resp = http.post(f"/api/notifications/{first}/read")
    assert resp.status_code == 200
    assert resp.json()["read"] is True

    resp = http.post("/api/notifications/read-all")
    assert resp.json()["updated"] == 1


def test_other_users_notification_is_not_found(client):
    http, factory = client
    [theirs] = _ids(factory, 2)
    assert http.post(f"/api/notifications/{theirs}/read").status_code == 404
    assert http.delete(f"/api/notifications/{theirs}").status_code == 404
    assert http.delete("/api/notifications/9999").status_code == 404

    mine = _ids(factory, 1)[0]
    assert http.delete(f"/api/notifications/{mine}").status_code == 200
    assert len(_ids(factory, 1)) == 1


def test_process_due_posts_transactions(client):
    http, factory = client
    today = local_today()
    with session_scope(factory) as session:
        session.add(
            RecurringExpense(
                user_id=1,
                name="Gym",
                amount_cents=2_500,
                category="Health",
                frequency=Frequency.monthly,
                start_date=today,
                next_due_date=today,
                is_active=True,
            )
        )

    body = http.post("/api/recurring/process-due").json()
    assert body["message"] == "Processed 1 recurring expenses"
    [txn] = body["transactions"]
    assert txn["amount_cents"] == 2_500
    assert txn["note"] == "Gym (Recurring)"

    again = http.post("/api/recurring/process-due").json()
    assert again["transactions"] == []
