import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import Frequency, RecurringExpense, Transaction, TransactionType
from periods import local_today

logger = logging.getLogger(__name__)


class RecurrenceState(str, Enum):
    active = "active"
    inactive = "inactive"


@dataclass(frozen=True)
class Rollover:
    state: RecurrenceState
    next_due_date: date
    changed: bool

    @property
    def is_active(self) -> bool:
        return self.state == RecurrenceState.active


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def _add_months(base: date, months: int, *, desired_day: int) -> date:
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    return date(year, month, min(desired_day, days_in_month(year, month)))


def _anchor_day(expense: RecurringExpense) -> int:
    # A due date that was snapped to a short month's end returns to the
    # original day once the month is long enough again.
    due = expense.next_due_date
    at_month_end = due.day == days_in_month(due.year, due.month)
    if at_month_end and expense.start_date.day > due.day:
        return expense.start_date.day
    return due.day


def calculate_next_date(
    frequency: Frequency, from_date: date, anchor_day: Optional[int] = None
) -> date:
    anchor_day = anchor_day or from_date.day
    if frequency == Frequency.daily:
        return from_date + timedelta(days=1)
    if frequency == Frequency.weekly:
        return from_date + timedelta(weeks=1)
    if frequency == Frequency.monthly:
        return _add_months(from_date, 1, desired_day=anchor_day)
    return _add_months(from_date, 12, desired_day=anchor_day)


def current_state(expense: RecurringExpense) -> RecurrenceState:
    return RecurrenceState.active if expense.is_active else RecurrenceState.inactive


def step(expense: RecurringExpense) -> Rollover:
    """Consume the current due date and move to the next one.

    Past ``end_date`` the expense becomes inactive and keeps its last valid
    due date.
    """
    candidate = calculate_next_date(
        expense.frequency, expense.next_due_date, _anchor_day(expense)
    )
    if expense.end_date is not None and candidate > expense.end_date:
        return Rollover(RecurrenceState.inactive, expense.next_due_date, True)
    return Rollover(RecurrenceState.active, candidate, True)


def rollover(expense: RecurringExpense, today: date) -> Rollover:
    if not expense.is_active or today <= expense.next_due_date:
        return Rollover(current_state(expense), expense.next_due_date, False)
    return step(expense)


def apply_rollover(expense: RecurringExpense, result: Rollover) -> None:
    if not result.changed:
        return
    expense.next_due_date = result.next_due_date
    expense.is_active = result.is_active


class RecurringEngine:
    def __init__(self, session: Session) -> None:
        self.session = session

    def catch_up_expense(
        self, expense: RecurringExpense, today: Optional[date] = None
    ) -> list[Transaction]:
        today = today or local_today()
        posted: list[Transaction] = []
        iterations = 0
        max_iterations = 366
        while (
            expense.is_active
            and expense.next_due_date <= today
            and iterations < max_iterations
        ):
            occurrence_date = expense.next_due_date
            try:
                txn = self._post_occurrence(expense, occurrence_date)
            except Exception:
                self.session.rollback()
                logger.exception(
                    f"process_due_failed: expense_id={expense.id} "
                    f"occurrence_date={occurrence_date}"
                )
                break
            if txn is not None:
                posted.append(txn)
            apply_rollover(expense, step(expense))
            self.session.commit()
            iterations += 1
        return posted

    def process_due(self, user_id: int, today: Optional[date] = None) -> list[Transaction]:
        today = today or local_today()
        stmt = (
            select(RecurringExpense)
            .where(
                RecurringExpense.user_id == user_id,
                RecurringExpense.is_active.is_(True),
                RecurringExpense.next_due_date <= today,
            )
            .order_by(RecurringExpense.next_due_date)
        )
        expenses = self.session.scalars(stmt).all()
        posted: list[Transaction] = []
        for expense in expenses:
            posted.extend(self.catch_up_expense(expense, today))
        logger.info(
            f"process_due: user_id={user_id} expenses={len(expenses)} "
            f"transactions={len(posted)}"
        )
        return posted

    def _post_occurrence(
        self, expense: RecurringExpense, occurrence_date: date
    ) -> Optional[Transaction]:
        exists_stmt = (
            select(Transaction.id)
            .where(
                Transaction.user_id == expense.user_id,
                Transaction.origin_expense_id == expense.id,
                Transaction.occurrence_date == occurrence_date,
            )
            .limit(1)
        )
        if self.session.execute(exists_stmt).scalar_one_or_none():
            return None

        txn = Transaction(
            user_id=expense.user_id,
            type=TransactionType.expense,
            category=expense.category,
            amount_cents=expense.amount_cents,
            date=occurrence_date,
            note=f"{expense.name} (Recurring)",
            origin_expense_id=expense.id,
            occurrence_date=occurrence_date,
        )
        self.session.add(txn)
        self.session.flush()
        return txn
