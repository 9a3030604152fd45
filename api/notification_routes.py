from typing import Annotated

from fastapi import APIRouter, Depends
from sqlmodel import Session

from core.context import AppContext, get_context
from core.deps import get_current_user, require_admin_role
from db.session import get_session
from services.notification_service import NotificationPayload, NotificationService

router = APIRouter()


@router.get("")
def get_my_notifications(
    context: Annotated[AppContext, Depends(get_context)],
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    limit = context.settings.notification_query_limit
    return {"status": "success", "data": NotificationService.list_for_user(session, user["uid"], limit)}


@router.get("/sent")
def get_sent_notifications(
    context: Annotated[AppContext, Depends(get_context)],
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin_role),
):
    limit = context.settings.notification_query_limit
    return {"status": "success", "data": NotificationService.list_sent_by(session, admin["uid"], limit)}


@router.get("/unread-count")
def get_unread_count(
    context: Annotated[AppContext, Depends(get_context)],
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    limit = context.settings.notification_query_limit
    return {"status": "success", "data": NotificationService.unread_count(session, user["uid"], limit)}


@router.post("")
def send_notification(
    payload: NotificationPayload,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin_role),
):
    notification = NotificationService.send(session, admin["uid"], admin["name"], payload)
    return {"status": "success", "data": notification}


@router.post("/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    return {"status": "success", "data": NotificationService.mark_read(session, notification_id, user["uid"])}


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    NotificationService.delete(session, notification_id, user["uid"], user["is_admin"])
    return {"status": "success", "message": f"Notification {notification_id} deleted."}
