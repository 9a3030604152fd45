from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from core.errors import RecordNotFound, ValidationError
from models.office import Office, OfficeScheduleConfig
from models.schedule_item import ScheduleItem
from utils.sanitize import sanitize_fields


class ScheduleItemPayload(BaseModel):
    worker_id: str
    site_label: str
    site_address: str = ""
    day_of_week: int
    hours_per_day: float = 4.0
    notes: Optional[str] = None


class ScheduleItemUpdate(BaseModel):
    site_label: Optional[str] = None
    site_address: Optional[str] = None
    day_of_week: Optional[int] = None
    hours_per_day: Optional[float] = None
    notes: Optional[str] = None


class OfficePayload(BaseModel):
    name: str
    eircode: str = ""
    address: str
    default_schedule: List[OfficeScheduleConfig] = []


_REQUIRED_SCHEDULE_FIELDS = ("site_label", "site_address", "day_of_week", "hours_per_day")


def _validate_schedule_fields(fields: Dict[str, Any]) -> None:
    cleared = [name for name in _REQUIRED_SCHEDULE_FIELDS if name in fields and fields[name] is None]
    if cleared:
        raise ValidationError(f"These schedule fields cannot be cleared: {', '.join(cleared)}")
    if "site_label" in fields and not (fields["site_label"] or "").strip():
        raise ValidationError("A site name is required for a schedule item.")
    if "day_of_week" in fields and not 0 <= fields["day_of_week"] <= 6:
        raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday).")
    if "hours_per_day" in fields and fields["hours_per_day"] < 0:
        raise ValidationError("hours_per_day cannot be negative.")


class RosterService:

    @staticmethod
    def list_schedules(session: Session, worker_id: str) -> List[ScheduleItem]:
        return list(
            session.exec(
                select(ScheduleItem)
                .where(ScheduleItem.worker_id == worker_id)
                .order_by(ScheduleItem.day_of_week)
            ).all()
        )

    @staticmethod
    def add_schedule(session: Session, payload: ScheduleItemPayload) -> ScheduleItem:
        if not payload.worker_id.strip():
            raise ValidationError("Select a worker for the schedule item.")
        fields = sanitize_fields(payload.model_dump())
        _validate_schedule_fields(fields)
        fields["site_label"] = fields["site_label"].strip()

        item = ScheduleItem(**fields)
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    @staticmethod
    def update_schedule(session: Session, schedule_id: str, changes: ScheduleItemUpdate) -> ScheduleItem:
        item = session.get(ScheduleItem, schedule_id)
        if not item:
            raise RecordNotFound(f"Schedule item {schedule_id} not found.")

        fields = sanitize_fields(changes.model_dump(exclude_unset=True))
        _validate_schedule_fields(fields)
        for name, value in fields.items():
            setattr(item, name, value)

        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    @staticmethod
    def delete_schedule(session: Session, schedule_id: str) -> None:
        item = session.get(ScheduleItem, schedule_id)
        if not item:
            raise RecordNotFound(f"Schedule item {schedule_id} not found.")
        session.delete(item)
        session.commit()

    @staticmethod
    def planned_weekly_hours(session: Session, worker_id: str) -> float:
        return sum(item.hours_per_day for item in RosterService.list_schedules(session, worker_id))

    @staticmethod
    def known_sites(session: Session, worker_id: str) -> List[Dict[str, str]]:
        """Distinct site label/address pairs from a worker's roster, first address wins."""
        sites: Dict[str, str] = {}
        for item in RosterService.list_schedules(session, worker_id):
            sites.setdefault(item.site_label, item.site_address)
        return [{"name": name, "address": address} for name, address in sites.items()]

    # --- Offices ---

    @staticmethod
    def list_offices(session: Session) -> List[Office]:
        return list(session.exec(select(Office).order_by(Office.name)).all())

    @staticmethod
    def add_office(session: Session, payload: OfficePayload) -> Office:
        if not payload.name.strip() or not payload.address.strip():
            raise ValidationError("Office name and address are required.")

        fields = sanitize_fields(payload.model_dump())
        fields["default_schedule"] = [sanitize_fields(day) for day in fields["default_schedule"]]
        office = Office(**fields)
        session.add(office)
        session.commit()
        session.refresh(office)
        return office

    @staticmethod
    def delete_office(session: Session, office_id: str) -> None:
        office = session.get(Office, office_id)
        if not office:
            raise RecordNotFound(f"Office {office_id} not found.")
        # Past shift records keep their own copy of the site, nothing to cascade.
        session.delete(office)
        session.commit()
