from sqlmodel import SQLModel, Field
from typing import Optional
from uuid import uuid4


# Recurring weekly assignment of a worker to a site
class ScheduleItem(SQLModel, table=True):
    __tablename__ = "schedules"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)

    worker_id: str = Field(index=True)  # Firebase user ID

    # Denormalised site copy, not a foreign key to offices
    site_label: str
    site_address: str = ""

    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday ... 6 = Saturday
    hours_per_day: float = Field(default=4.0, ge=0)

    notes: Optional[str] = Field(default=None)
