from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from typing import Optional
from enum import Enum

from sqlalchemy import DateTime


class AdminTimeChangeAction(str, Enum):
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"


# Audit trail for the administrative override path on shift records
class AdminTimeChange(SQLModel, table=True):
    __tablename__ = "admin_time_changes"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Admin who made the change
    admin_id: str = Field(index=True)

    # Worker whose record was affected
    worker_id: str = Field(index=True)

    # What action was taken
    action: AdminTimeChangeAction = Field(index=True)

    # Reason provided by admin
    reason: str

    # When the change was made
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
        index=True,
    )

    # Record touched (kept as plain text, the record itself may be deleted)
    record_id: str = Field(index=True)

    # For CREATE and EDIT actions - the new/current values
    start_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    end_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    site_label: Optional[str] = None
    accumulated_pause_ms: Optional[int] = None

    # For EDIT and DELETE actions - the values before the change
    original_start_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    original_end_time: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    original_site_label: Optional[str] = None
    original_accumulated_pause_ms: Optional[int] = None

    # Date of the shift being affected
    shift_date: Optional[str] = None  # YYYY-MM-DD format
