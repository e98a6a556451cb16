from dataclasses import dataclass
from typing import Optional

from metrics import BudgetMetrics, GoalMetrics, RecurringMetrics
from models import (
    Budget,
    Goal,
    GoalStatus,
    NotificationPriority,
    NotificationType,
    RecurringExpense,
    User,
)
from schemas import (
    BudgetAlertPayload,
    GoalReminderPayload,
    Payload,
    RecurringExpensePayload,
)


BUDGET_EXCEEDED = 100.0
BUDGET_CRITICAL = 90.0
GOAL_URGENT_DAYS = 7
GOAL_URGENT_PROGRESS = 90.0
GOAL_CHECK_DAYS = 30
GOAL_CHECK_PROGRESS = 50.0
RECURRING_LOOKAHEAD_DAYS = 3


@dataclass(frozen=True)
class CandidateNotification:
    user_id: int
    type: NotificationType
    title: str
    message: str
    payload: Payload
    priority: NotificationPriority

    @property
    def subject_id(self) -> int:
        return self.payload.subject_id


@dataclass(frozen=True)
class GoalTransition:
    previous: GoalStatus
    status: GoalStatus

    @property
    def changed(self) -> bool:
        return self.previous != self.status


@dataclass(frozen=True)
class GoalDecision:
    notification: Optional[CandidateNotification]
    transition: GoalTransition


def format_amount(cents: int) -> str:
    return f"{cents / 100:,.2f}"


def goal_transition(goal: Goal, progress: float) -> GoalTransition:
    previous = goal.status
    if previous == GoalStatus.active and progress >= 100:
        return GoalTransition(previous, GoalStatus.completed)
    return GoalTransition(previous, previous)


def apply_goal_transition(goal: Goal, transition: GoalTransition) -> None:
    if transition.changed:
        goal.status = transition.status


class TriggerEvaluator:
    """Turns entity metrics into at most one candidate notification."""

    def evaluate_budget(
        self, budget: Budget, user: User, metrics: BudgetMetrics
    ) -> Optional[CandidateNotification]:
        if not budget.is_active or not user.notify_budget_alerts:
            return None

        utilization = metrics.utilization
        if utilization >= BUDGET_EXCEEDED:
            title = "Budget Exceeded!"
            message = (
                f"You have exceeded your {budget.name} budget by "
                f"{utilization - 100:.1f}%"
            )
            priority = NotificationPriority.high
        elif utilization >= BUDGET_CRITICAL:
            title = "Budget Almost Exceeded"
            message = f"You have used {utilization:.1f}% of your {budget.name} budget"
            priority = NotificationPriority.high
        elif utilization >= budget.alert_threshold:
            title = "Budget Alert"
            message = f"You have used {utilization:.1f}% of your {budget.name} budget"
            priority = NotificationPriority.medium
        else:
            return None

        return CandidateNotification(
            user_id=budget.user_id,
            type=NotificationType.budget_alert,
            title=title,
            message=message,
            payload=BudgetAlertPayload(
                budget_id=budget.id,
                budget_name=budget.name,
                budget_amount_cents=budget.amount_cents,
                spent_cents=metrics.spent_cents,
                utilization=utilization,
            ),
            priority=priority,
        )

    def evaluate_goal(self, goal: Goal, user: User, metrics: GoalMetrics) -> GoalDecision:
        unchanged = GoalTransition(goal.status, goal.status)
        if goal.status != GoalStatus.active or not user.notify_goal_reminders:
            return GoalDecision(None, unchanged)

        progress = metrics.progress
        days = metrics.days_left
        transition = unchanged
        if days <= GOAL_URGENT_DAYS and progress < GOAL_URGENT_PROGRESS:
            title = "Goal Deadline Approaching"
            message = (
                f'Your goal "{goal.name}" is due in {days} days and is '
                f"{progress:.1f}% complete"
            )
            priority = NotificationPriority.high
        elif days <= GOAL_CHECK_DAYS and progress < GOAL_CHECK_PROGRESS:
            title = "Goal Progress Check"
            message = (
                f'Your goal "{goal.name}" is {progress:.1f}% complete with '
                f"{days} days remaining"
            )
            priority = NotificationPriority.medium
        elif progress >= 100:
            title = "Goal Achieved!"
            message = f'Congratulations! You\'ve achieved your goal "{goal.name}"'
            priority = NotificationPriority.high
            transition = goal_transition(goal, progress)
        else:
            return GoalDecision(None, unchanged)

        candidate = CandidateNotification(
            user_id=goal.user_id,
            type=NotificationType.goal_reminder,
            title=title,
            message=message,
            payload=GoalReminderPayload(
                goal_id=goal.id,
                goal_name=goal.name,
                target_amount_cents=goal.target_amount_cents,
                current_amount_cents=goal.current_amount_cents,
                progress=progress,
                days_until_deadline=days,
            ),
            priority=priority,
        )
        return GoalDecision(candidate, transition)

    def evaluate_recurring(
        self, expense: RecurringExpense, user: User, metrics: RecurringMetrics
    ) -> Optional[CandidateNotification]:
        if not expense.is_active or not user.notify_recurring_expenses:
            return None

        days = metrics.days_until_due
        if days < 0 or days > RECURRING_LOOKAHEAD_DAYS:
            return None

        if days == 0:
            title = "Recurring Expense Due Today"
            when = "today"
            priority = NotificationPriority.high
        else:
            title = f"Recurring Expense Due in {days} Days"
            when = f"in {days} days"
            priority = NotificationPriority.medium

        return CandidateNotification(
            user_id=expense.user_id,
            type=NotificationType.recurring_expense,
            title=title,
            message=(
                f"{expense.name} ({expense.category}) - "
                f"{format_amount(expense.amount_cents)} is due {when}"
            ),
            payload=RecurringExpensePayload(
                expense_id=expense.id,
                expense_name=expense.name,
                amount_cents=expense.amount_cents,
                category=expense.category,
                due_date=expense.next_due_date,
                days_until_due=days,
            ),
            priority=priority,
        )
