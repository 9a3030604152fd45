from typing import List

from pydantic import BaseModel
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import Session, col, or_, select

from core.errors import PermissionDenied, RecordNotFound, ValidationError
from models.notification import BROADCAST_RECIPIENT, Notification


class NotificationPayload(BaseModel):
    recipient_id: str = BROADCAST_RECIPIENT
    title: str
    message: str


class NotificationService:

    @staticmethod
    def send(session: Session, sender_id: str, sender_name: str, payload: NotificationPayload) -> Notification:
        if not payload.title.strip() or not payload.message.strip():
            raise ValidationError("A notification needs a title and a message.")

        notification = Notification(
            sender_id=sender_id,
            sender_name=sender_name,
            recipient_id=payload.recipient_id or BROADCAST_RECIPIENT,
            title=payload.title.strip(),
            message=payload.message.strip(),
            read_by=[],
        )
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification

    @staticmethod
    def list_for_user(session: Session, user_id: str, limit: int) -> List[Notification]:
        """Messages addressed to the user or broadcast to everyone, newest first."""
        return list(
            session.exec(
                select(Notification)
                .where(or_(Notification.recipient_id == user_id, Notification.recipient_id == BROADCAST_RECIPIENT))
                .order_by(col(Notification.created_at).desc())
                .limit(limit)
            ).all()
        )

    @staticmethod
    def list_sent_by(session: Session, sender_id: str, limit: int) -> List[Notification]:
        return list(
            session.exec(
                select(Notification)
                .where(Notification.sender_id == sender_id)
                .order_by(col(Notification.created_at).desc())
                .limit(limit)
            ).all()
        )

    @staticmethod
    def mark_read(session: Session, notification_id: str, user_id: str) -> Notification:
        notification = session.get(Notification, notification_id)
        if not notification:
            raise RecordNotFound(f"Notification {notification_id} not found.")
        if notification.recipient_id not in (user_id, BROADCAST_RECIPIENT):
            raise PermissionDenied("This notification was not sent to you.")

        read_by = list(notification.read_by or [])
        if user_id not in read_by:
            read_by.append(user_id)
            notification.read_by = read_by
            flag_modified(notification, "read_by")
            session.add(notification)
            session.commit()
            session.refresh(notification)
        return notification

    @staticmethod
    def unread_count(session: Session, user_id: str, limit: int) -> int:
        return sum(
            1
            for notification in NotificationService.list_for_user(session, user_id, limit)
            if user_id not in (notification.read_by or [])
        )

    @staticmethod
    def delete(session: Session, notification_id: str, user_id: str, is_admin: bool) -> None:
        notification = session.get(Notification, notification_id)
        if not notification:
            raise RecordNotFound(f"Notification {notification_id} not found.")
        if not is_admin and notification.sender_id != user_id:
            raise PermissionDenied("Only the sender or an administrator can delete a notification.")
        session.delete(notification)
        session.commit()
