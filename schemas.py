import datetime as dt
from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models import NotificationPriority, NotificationType, TransactionType


class BudgetAlertPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["budget_alert"] = "budget_alert"
    budget_id: int
    budget_name: str
    budget_amount_cents: int
    spent_cents: int
    utilization: float

    @property
    def subject_id(self) -> int:
        return self.budget_id


class GoalReminderPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["goal_reminder"] = "goal_reminder"
    goal_id: int
    goal_name: str
    target_amount_cents: int
    current_amount_cents: int
    progress: float
    days_until_deadline: int

    @property
    def subject_id(self) -> int:
        return self.goal_id


class RecurringExpensePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["recurring_expense"] = "recurring_expense"
    expense_id: int
    expense_name: str
    amount_cents: int
    category: str
    due_date: date
    days_until_due: int

    @property
    def subject_id(self) -> int:
        return self.expense_id


Payload = Union[BudgetAlertPayload, GoalReminderPayload, RecurringExpensePayload]

NotificationPayload = Annotated[Payload, Field(discriminator="type")]


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: NotificationType
    title: str
    message: str
    payload: Optional[NotificationPayload] = None
    priority: NotificationPriority
    read: bool
    created_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class NotificationPage(BaseModel):
    notifications: list[NotificationOut]
    pagination: Pagination
    unread_count: int


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    category: str
    amount_cents: int
    date: dt.date
    note: Optional[str] = None
    origin_expense_id: Optional[int] = None


class ProcessDueOut(BaseModel):
    message: str
    transactions: list[TransactionOut] = Field(default_factory=list)
