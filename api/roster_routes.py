from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from core.deps import get_current_user, require_admin_role
from db.session import get_session
from services.roster_service import (
    OfficePayload,
    RosterService,
    ScheduleItemPayload,
    ScheduleItemUpdate,
)

router = APIRouter()


def _schedule_owner(user: dict, worker_id: Optional[str]) -> str:
    # Workers only ever read their own roster
    if not user["is_admin"] or not worker_id:
        return user["uid"]
    return worker_id


# --- Schedules ---


@router.get("/schedules")
def list_schedules(
    worker_id: Optional[str] = None,
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    owner = _schedule_owner(user, worker_id)
    return {"status": "success", "data": RosterService.list_schedules(session, owner)}


@router.get("/schedules/weekly-hours")
def get_planned_weekly_hours(
    worker_id: Optional[str] = None,
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    owner = _schedule_owner(user, worker_id)
    return {
        "status": "success",
        "data": {"worker_id": owner, "hours": RosterService.planned_weekly_hours(session, owner)},
    }


@router.post("/schedules")
def add_schedule(
    payload: ScheduleItemPayload,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin_role),
):
    return {"status": "success", "data": RosterService.add_schedule(session, payload)}


@router.patch("/schedules/{schedule_id}")
def update_schedule(
    schedule_id: str,
    changes: ScheduleItemUpdate,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin_role),
):
    return {"status": "success", "data": RosterService.update_schedule(session, schedule_id, changes)}


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: str,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin_role),
):
    RosterService.delete_schedule(session, schedule_id)
    return {"status": "success", "message": f"Schedule item {schedule_id} deleted."}


# --- Offices / Sites ---


@router.get("/offices")
def list_offices(
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    return {"status": "success", "data": RosterService.list_offices(session)}


@router.post("/offices")
def add_office(
    payload: OfficePayload,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin_role),
):
    return {"status": "success", "data": RosterService.add_office(session, payload)}


@router.delete("/offices/{office_id}")
def delete_office(
    office_id: str,
    session: Session = Depends(get_session),
    admin: dict = Depends(require_admin_role),
):
    RosterService.delete_office(session, office_id)
    return {"status": "success", "message": f"Office {office_id} deleted."}
