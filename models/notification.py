from sqlmodel import SQLModel, Field, Index
from sqlalchemy import JSON, Column, DateTime
from datetime import datetime, timezone
from typing import List
from uuid import uuid4

BROADCAST_RECIPIENT = "all"


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    __table_args__ = (
        Index("ix_notifications_recipient_id_created_at", "recipient_id", "created_at"),
        Index("ix_notifications_sender_id_created_at", "sender_id", "created_at"),
    )

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    sender_id: str
    sender_name: str
    recipient_id: str = BROADCAST_RECIPIENT  # 'all' or a user id
    title: str
    message: str
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True)
    )
    read_by: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
