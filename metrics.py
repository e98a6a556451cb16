import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Budget, Goal, RecurringExpense, Transaction, TransactionType

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class BudgetMetrics:
    spent_cents: int
    utilization: float


@dataclass(frozen=True)
class GoalMetrics:
    progress: float
    days_left: int


@dataclass(frozen=True)
class RecurringMetrics:
    days_until_due: int


def budget_spent(session: Session, budget: Budget) -> int:
    return int(
        session.execute(
            select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                Transaction.user_id == budget.user_id,
                Transaction.category == budget.category,
                Transaction.type == TransactionType.expense,
                Transaction.date.between(budget.start_date, budget.end_date),
            )
        ).scalar_one()
        or 0
    )


def budget_utilization(spent_cents: int, amount_cents: int) -> float:
    if amount_cents <= 0:
        return 0.0
    return spent_cents / amount_cents * 100


def goal_progress(current_cents: int, target_cents: int) -> float:
    if target_cents <= 0:
        return 100.0
    return min(current_cents / target_cents, 1) * 100


def days_until(target: date, now: datetime) -> int:
    """Whole days from ``now`` to the start of ``target``, rounded up."""
    delta = datetime.combine(target, time.min) - now
    return math.ceil(delta / ONE_DAY)


class MetricAggregator:
    def __init__(self, session: Session) -> None:
        self.session = session

    def for_budget(self, budget: Budget) -> BudgetMetrics:
        spent = budget_spent(self.session, budget)
        return BudgetMetrics(
            spent_cents=spent,
            utilization=budget_utilization(spent, budget.amount_cents),
        )

    def for_goal(self, goal: Goal, now: datetime) -> GoalMetrics:
        return GoalMetrics(
            progress=goal_progress(goal.current_amount_cents, goal.target_amount_cents),
            days_left=days_until(goal.deadline, now),
        )

    def for_recurring(self, expense: RecurringExpense, now: datetime) -> RecurringMetrics:
        return RecurringMetrics(days_until_due=days_until(expense.next_due_date, now))
