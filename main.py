import logging

from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.orm import Session

from database import SessionLocal
from notifications import NotificationService, get_current_user_id
from recurrence import RecurringEngine
from scheduler import SchedulerManager
from schemas import NotificationOut, NotificationPage, ProcessDueOut, TransactionOut

logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Monitor")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


@app.get("/api/notifications", response_model=NotificationPage)
def list_notifications(
    page: int = 1,
    limit: int = 20,
    unread_only: bool = False,
    db: Session = Depends(get_db),
):
    return NotificationService(db).list(page=page, limit=limit, unread_only=unread_only)


@app.post("/api/notifications/read-all")
def mark_all_notifications_read(db: Session = Depends(get_db)):
    updated = NotificationService(db).mark_all_read()
    return {"message": "All notifications marked as read", "updated": updated}


@app.post("/api/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(notification_id: int, db: Session = Depends(get_db)):
    try:
        notification = NotificationService(db).mark_read(notification_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return NotificationOut.model_validate(notification)


@app.delete("/api/notifications/{notification_id}")
def delete_notification(notification_id: int, db: Session = Depends(get_db)):
    try:
        NotificationService(db).delete(notification_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"message": "Notification deleted"}


@app.post("/api/recurring/process-due", response_model=ProcessDueOut)
def process_due_recurring(db: Session = Depends(get_db)):
    posted = RecurringEngine(db).process_due(get_current_user_id())
    return ProcessDueOut(
        message=f"Processed {len(posted)} recurring expenses",
        transactions=[TransactionOut.model_validate(t) for t in posted],
    )
