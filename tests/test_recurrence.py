from datetime import date
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import Base
from models import Frequency, RecurringExpense, Transaction, TransactionType, User
from recurrence import (
    RecurrenceState,
    RecurringEngine,
    apply_rollover,
    calculate_next_date,
    rollover,
    step,
)


def _expense(
    frequency: Frequency = Frequency.monthly,
    next_due: date = date(2024, 1, 31),
    start: date = date(2024, 1, 31),
    end: Optional[date] = None,
    user_id: int = 1,
) -> RecurringExpense:
    return RecurringExpense(
        user_id=user_id,
        name="Rent",
        amount_cents=100_000,
        category="Housing",
        frequency=frequency,
        start_date=start,
        end_date=end,
        next_due_date=next_due,
        is_active=True,
    )


def test_calculate_next_date_snaps_to_month_end():
    assert calculate_next_date(Frequency.monthly, date(2024, 1, 31)) == date(2024, 2, 29)
    assert calculate_next_date(Frequency.monthly, date(2025, 1, 31)) == date(2025, 2, 28)
    assert calculate_next_date(Frequency.monthly, date(2024, 12, 15)) == date(2025, 1, 15)


def test_calculate_next_date_other_frequencies():
    assert calculate_next_date(Frequency.daily, date(2024, 2, 28)) == date(2024, 2, 29)
    assert calculate_next_date(Frequency.weekly, date(2024, 12, 28)) == date(2025, 1, 4)
    assert calculate_next_date(Frequency.yearly, date(2024, 2, 29)) == date(2025, 2, 28)


def test_step_returns_to_anchor_day_after_short_month():
    expense = _expense()
    apply_rollover(expense, step(expense))
    assert expense.next_due_date == date(2024, 2, 29)
    apply_rollover(expense, step(expense))
    assert expense.next_due_date == date(2024, 3, 31)


def test_rollover_leaves_today_and_future_untouched():
    expense = _expense(next_due=date(2024, 3, 10), start=date(2024, 1, 10))
    for today in (date(2024, 3, 10), date(2024, 3, 1)):
        result = rollover(expense, today)
        assert not result.changed
        assert result.next_due_date == date(2024, 3, 10)


def test_rollover_advances_past_due_expense_once():
    expense = _expense(next_due=date(2024, 3, 10), start=date(2024, 1, 10))
    result = rollover(expense, date(2024, 5, 1))
    assert result.changed
    assert result.state == RecurrenceState.active
    apply_rollover(expense, result)
    assert expense.next_due_date == date(2024, 4, 10)
    assert expense.is_active


def test_rollover_past_end_date_deactivates_and_freezes():
    expense = _expense(
        frequency=Frequency.weekly,
        next_due=date(2024, 3, 10),
        start=date(2024, 1, 7),
        end=date(2024, 3, 15),
    )
    result = rollover(expense, date(2024, 3, 11))
    assert result.state == RecurrenceState.inactive
    apply_rollover(expense, result)
    assert expense.is_active is False
    assert expense.next_due_date == date(2024, 3, 10)

    assert not rollover(expense, date(2024, 6, 1)).changed


def _session_with_user() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = Session(engine)
    session.add_all([User(id=1, username="alice"), User(id=2, username="bob")])
    session.commit()
    return session


def test_process_due_materializes_each_missed_date_once():
    session = _session_with_user()
    expense = _expense(next_due=date(2024, 1, 1), start=date(2024, 1, 1))
    session.add(expense)
    session.commit()

    engine = RecurringEngine(session)
    posted = engine.process_due(1, today=date(2024, 3, 1))
    assert [t.date for t in posted] == [
        date(2024, 1, 1),
        date(2024, 2, 1),
        date(2024, 3, 1),
    ]
    assert all(t.note == "Rent (Recurring)" for t in posted)
    assert expense.next_due_date == date(2024, 4, 1)

    assert engine.process_due(1, today=date(2024, 3, 1)) == []
    assert session.query(Transaction).count() == 3
    session.close()


def test_process_due_skips_existing_occurrence_but_consumes_it():
    session = _session_with_user()
    expense = _expense(next_due=date(2024, 1, 1), start=date(2024, 1, 1))
    session.add(expense)
    session.flush()
    session.add(
        Transaction(
            user_id=1,
            type=TransactionType.expense,
            category="Housing",
            amount_cents=100_000,
            date=date(2024, 1, 1),
            origin_expense_id=expense.id,
            occurrence_date=date(2024, 1, 1),
        )
    )
    session.commit()

    posted = RecurringEngine(session).process_due(1, today=date(2024, 1, 15))
    assert posted == []
    assert expense.next_due_date == date(2024, 2, 1)
    assert session.query(Transaction).count() == 1
    session.close()


def test_process_due_stops_at_end_date():
    session = _session_with_user()
    expense = _expense(
        next_due=date(2024, 1, 1), start=date(2024, 1, 1), end=date(2024, 2, 15)
    )
    session.add(expense)
    session.commit()

    posted = RecurringEngine(session).process_due(1, today=date(2024, 6, 1))
    assert len(posted) == 2
    assert expense.is_active is False
    assert expense.next_due_date == date(2024, 2, 1)
    assert RecurringEngine(session).process_due(1, today=date(2024, 6, 1)) == []
    session.close()


def test_process_due_is_scoped_to_user():
    session = _session_with_user()
    session.add_all(
        [
            _expense(next_due=date(2024, 1, 1), start=date(2024, 1, 1), user_id=1),
            _expense(next_due=date(2024, 1, 1), start=date(2024, 1, 1), user_id=2),
        ]
    )
    session.commit()

    posted = RecurringEngine(session).process_due(2, today=date(2024, 1, 1))
    assert len(posted) == 1
    assert posted[0].user_id == 2
    session.close()


def test_process_due_failure_stops_only_that_expense(monkeypatch, caplog):
    session = _session_with_user()
    rent = _expense(next_due=date(2024, 1, 1), start=date(2024, 1, 1))
    gym = _expense(next_due=date(2024, 1, 5), start=date(2024, 1, 5))
    gym.name = "Gym"
    session.add_all([rent, gym])
    session.commit()

    original = RecurringEngine._post_occurrence

    def racing_post(self, expense, occurrence_date):
        if expense.name == "Rent":
            raise IntegrityError(
                "INSERT INTO transactions", {}, Exception("UNIQUE constraint failed")
            )
        return original(self, expense, occurrence_date)

    monkeypatch.setattr(RecurringEngine, "_post_occurrence", racing_post)

    posted = RecurringEngine(session).process_due(1, today=date(2024, 1, 10))
    assert [t.note for t in posted] == ["Gym (Recurring)"]
    assert rent.next_due_date == date(2024, 1, 1)
    assert gym.next_due_date == date(2024, 2, 5)
    assert "process_due_failed" in caplog.text
    session.close()
