from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column
from pydantic import BaseModel
from typing import List
from uuid import uuid4


class OfficeScheduleConfig(BaseModel):
    day_of_week: int
    hours: float
    is_active: bool = True


# Site registry entry. Shift records copy name/address at check-in, so
# renaming or deleting an office never rewrites history.
class Office(SQLModel, table=True):
    __tablename__ = "offices"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    name: str = Field(description="Human-friendly site name")
    eircode: str = Field(default="", description="Postal code")
    address: str
    default_schedule: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
