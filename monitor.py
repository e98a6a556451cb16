import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionFactory, session_scope
from dedup import DedupGuard
from metrics import MetricAggregator
from models import Budget, Goal, GoalStatus, RecurringExpense, User
from notifications import create_notification
from periods import local_now
from recurrence import apply_rollover, rollover
from triggers import CandidateNotification, TriggerEvaluator, apply_goal_transition

logger = logging.getLogger(__name__)

EntityHandler = Callable[[Session, int, datetime], bool]


class ScanKind(str, Enum):
    budget = "budget"
    goal = "goal"
    recurring = "recurring"


@dataclass
class ScanResult:
    kind: ScanKind
    evaluated: int = 0
    notified: int = 0
    failed: int = 0


class MonitorService:
    """Sweeps budgets, goals and recurring expenses for every user.

    Each entity is handled in its own session so a failure rolls back and
    skips that entity only. With more than one worker the entities of a sweep
    are spread over a bounded thread pool.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        workers: Optional[int] = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.session_factory = session_factory
        self.workers = workers if workers is not None else get_settings().scan_workers
        self.clock = clock
        self.evaluator = TriggerEvaluator()

    def run(self, kind: ScanKind) -> ScanResult:
        if kind == ScanKind.budget:
            return self.scan_budgets()
        if kind == ScanKind.goal:
            return self.scan_goals()
        return self.scan_recurring()

    def scan_budgets(self) -> ScanResult:
        ids = self._ids(select(Budget.id).where(Budget.is_active.is_(True)))
        return self._sweep(ScanKind.budget, ids, self._process_budget)

    def scan_goals(self) -> ScanResult:
        ids = self._ids(select(Goal.id).where(Goal.status == GoalStatus.active))
        return self._sweep(ScanKind.goal, ids, self._process_goal)

    def scan_recurring(self) -> ScanResult:
        ids = self._ids(
            select(RecurringExpense.id).where(RecurringExpense.is_active.is_(True))
        )
        return self._sweep(ScanKind.recurring, ids, self._process_recurring)

    def _ids(self, stmt) -> list[int]:
        with session_scope(self.session_factory) as session:
            return list(session.scalars(stmt).all())

    def _sweep(
        self, kind: ScanKind, ids: Iterable[int], handler: EntityHandler
    ) -> ScanResult:
        ids = list(ids)
        now = self.clock()
        result = ScanResult(kind=kind)
        logger.info(f"scan_start: kind={kind.value} entities={len(ids)}")

        def run_one(entity_id: int) -> Optional[bool]:
            return self._guarded(kind, entity_id, handler, now)

        if self.workers <= 1:
            outcomes = [run_one(entity_id) for entity_id in ids]
        else:
            with ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix=f"scan-{kind.value}"
            ) as pool:
                outcomes = list(pool.map(run_one, ids))

        for outcome in outcomes:
            if outcome is None:
                result.failed += 1
                continue
            result.evaluated += 1
            if outcome:
                result.notified += 1

        logger.info(
            f"scan_run: kind={kind.value} evaluated={result.evaluated} "
            f"notified={result.notified} failed={result.failed}"
        )
        return result

    def _guarded(
        self, kind: ScanKind, entity_id: int, handler: EntityHandler, now: datetime
    ) -> Optional[bool]:
        try:
            with session_scope(self.session_factory) as session:
                return handler(session, entity_id, now)
        except Exception:
            logger.exception(f"scan_entity_failed: kind={kind.value} id={entity_id}")
            return None

    @staticmethod
    def _owner(session: Session, user_id: int) -> User:
        user = session.get(User, user_id)
        if user is None:
            raise LookupError(f"User {user_id} not found")
        return user

    def _emit(
        self,
        session: Session,
        candidate: Optional[CandidateNotification],
        now: datetime,
    ) -> bool:
        if candidate is None:
            return False
        guard = DedupGuard(session)
        if not guard.admit(candidate.user_id, candidate.type, candidate.subject_id, now):
            logger.debug(
                f"notification_suppressed: type={candidate.type.value} "
                f"subject_id={candidate.subject_id}"
            )
            return False
        notification = create_notification(
            session,
            candidate.user_id,
            candidate.type,
            candidate.title,
            candidate.message,
            candidate.payload,
            candidate.priority,
            now=now,
        )
        return notification is not None

    def _process_budget(self, session: Session, budget_id: int, now: datetime) -> bool:
        budget = session.get(Budget, budget_id)
        if budget is None or not budget.is_active:
            return False
        user = self._owner(session, budget.user_id)
        metrics = MetricAggregator(session).for_budget(budget)
        candidate = self.evaluator.evaluate_budget(budget, user, metrics)
        return self._emit(session, candidate, now)

    def _process_goal(self, session: Session, goal_id: int, now: datetime) -> bool:
        goal = session.get(Goal, goal_id)
        if goal is None or goal.status != GoalStatus.active:
            return False
        user = self._owner(session, goal.user_id)
        metrics = MetricAggregator(session).for_goal(goal, now)
        decision = self.evaluator.evaluate_goal(goal, user, metrics)
        if decision.transition.changed:
            apply_goal_transition(goal, decision.transition)
            session.commit()
            logger.info(
                f"goal_transition: id={goal.id} {decision.transition.previous.value}"
                f"->{decision.transition.status.value}"
            )
        return self._emit(session, decision.notification, now)

    def _process_recurring(
        self, session: Session, expense_id: int, now: datetime
    ) -> bool:
        expense = session.get(RecurringExpense, expense_id)
        if expense is None or not expense.is_active:
            return False
        user = self._owner(session, expense.user_id)
        metrics = MetricAggregator(session).for_recurring(expense, now)
        candidate = self.evaluator.evaluate_recurring(expense, user, metrics)

        result = rollover(expense, now.date())
        if result.changed:
            apply_rollover(expense, result)
            session.commit()
            logger.info(
                f"recurring_rollover: id={expense.id} state={result.state.value} "
                f"next_due_date={result.next_due_date.isoformat()}"
            )
        return self._emit(session, candidate, now)
