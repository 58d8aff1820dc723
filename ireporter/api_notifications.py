"""
Notification API Endpoints
==========================

- GET /notifications               - Current user's notifications, newest first
- GET /notifications/unread-count  - Unread count
- PUT /notifications/read          - Mark all as read
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .auth import AuthContext, get_auth_context
from .db.session import get_db
from .notifications import NotificationService, serialize_notification
from .schemas import success

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    notifications = NotificationService(db).list_for_user(auth.user_id)
    return success(200, [serialize_notification(n) for n in notifications])


@router.get("/unread-count")
def unread_count(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    return success(200, {"unread": NotificationService(db).unread_count(auth.user_id)})


@router.put("/read")
def mark_all_read(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    updated = NotificationService(db).mark_all_read(auth.user_id)
    return success(200, {"message": "Marked notifications as read", "updated": updated})
