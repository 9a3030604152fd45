import asyncio
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from core.context import AppContext, get_context
from core.deps import get_current_user
from db.session import get_session
from models.shift_record import CHECKLIST_GROUPS, LocationReport, SafetyChecklist, ShiftRecord
from services.evidence_store import EvidencePhoto
from services.roster_service import RosterService
from services.shift_session import (
    StartShiftCommand,
    elapsed_time,
    needs_checklist_confirmation,
    state_of,
)
from services.time_aggregation import check_record_access
from utils.geolocation import acquisition_options

# Defines API Endpoints for the worker's own shift lifecycle
router = APIRouter()


def shift_response(record: Optional[ShiftRecord], now: datetime) -> dict:
    if record is None:
        return {"record": None, "state": state_of(None).value, "elapsed_ms": 0, "elapsed": "00:00:00"}
    elapsed = elapsed_time(record, now)
    return {
        "record": record,
        "state": state_of(record).value,
        "elapsed_ms": elapsed.net_ms,
        "elapsed": elapsed.formatted,
    }


def location_from_form(
    latitude: Optional[float], longitude: Optional[float], error_code: Optional[int]
) -> Optional[LocationReport]:
    if latitude is None and longitude is None and error_code is None:
        return None
    return LocationReport(lat=latitude, lng=longitude, error_code=error_code)


async def read_photo(upload: Optional[UploadFile]) -> Optional[EvidencePhoto]:
    if upload is None or not upload.filename:
        return None
    return EvidencePhoto(
        data=await upload.read(),
        content_type=upload.content_type or "application/octet-stream",
        filename=upload.filename,
    )


# Location acquisition settings the device should use
@router.get("/location-config")
def get_location_config(
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
):
    return {
        "status": "success",
        "data": {**acquisition_options(), "policy": context.settings.location_policy.value},
    }


# Checklist layout for the start-of-shift form
@router.get("/checklist")
def get_checklist_template(
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
):
    return {
        "status": "success",
        "data": {
            "groups": CHECKLIST_GROUPS,
            "warning_threshold": context.settings.checklist_warning_threshold,
        },
    }


# Sites from the worker's roster, used to pre-fill the site picker
@router.get("/locations")
def get_known_locations(
    session: Session = Depends(get_session),
    user: dict = Depends(get_current_user),
):
    return {"status": "success", "data": RosterService.known_sites(session, user["uid"])}


# Current Shift (or None) With Live Elapsed Time
@router.get("/active")
def get_active_shift(
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
):
    record = context.shift_sessions().get_active(user["uid"])
    return {"status": "success", "data": shift_response(record, context.clock())}


# Start Shift Endpoint
@router.post("/start")
async def start_shift(
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
    site_label: Annotated[str, Form()],
    checklist: Annotated[str, Form(description="Safety checklist as JSON")] = "{}",
    site_address: Annotated[Optional[str], Form()] = None,
    latitude: Annotated[Optional[float], Form()] = None,
    longitude: Annotated[Optional[float], Form()] = None,
    location_error_code: Annotated[Optional[int], Form()] = None,
    acknowledge_warning: Annotated[bool, Form()] = False,
    schedule_id: Annotated[Optional[str], Form()] = None,
    free_notes: Annotated[Optional[str], Form()] = None,
    photo: Annotated[Optional[UploadFile], File(description="Start-of-shift evidence photo")] = None,
):
    try:
        safety_checklist = SafetyChecklist.model_validate_json(checklist)
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid safety checklist: {e.errors(include_url=False)}",
        )

    threshold = context.settings.checklist_warning_threshold
    if needs_checklist_confirmation(safety_checklist, threshold) and not acknowledge_warning:
        # Soft warning only: resend with acknowledge_warning=true to proceed.
        return {
            "status": "warning",
            "checklist_warning": True,
            "message": "You have very few items checked in the safety plan. Are you sure you want to proceed?",
            "checked_count": safety_checklist.checked_count(),
            "threshold": threshold,
        }

    command = StartShiftCommand(
        worker_id=user["uid"],
        site_label=site_label,
        site_address=site_address,
        checklist=safety_checklist,
        location=location_from_form(latitude, longitude, location_error_code),
        photo=await read_photo(photo),
        schedule_id=schedule_id,
        free_notes=free_notes,
    )
    record = await asyncio.to_thread(context.shift_sessions().start_shift, command)

    return {
        "status": "success",
        "checklist_warning": needs_checklist_confirmation(safety_checklist, threshold),
        "data": shift_response(record, context.clock()),
    }


# Pause / Resume Toggle
@router.post("/{record_id}/pause")
def toggle_pause(
    record_id: str,
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
):
    record = context.shift_sessions().toggle_pause(record_id, user["uid"])
    return {"status": "success", "data": shift_response(record, context.clock())}


# End Shift Endpoint (safe to retry)
@router.post("/{record_id}/end")
async def end_shift(
    record_id: str,
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
    latitude: Annotated[Optional[float], Form()] = None,
    longitude: Annotated[Optional[float], Form()] = None,
    location_error_code: Annotated[Optional[int], Form()] = None,
    photo: Annotated[Optional[UploadFile], File(description="End-of-shift evidence photo")] = None,
):
    record = await asyncio.to_thread(
        context.shift_sessions().end_shift,
        record_id,
        user["uid"],
        location_from_form(latitude, longitude, location_error_code),
        await read_photo(photo),
    )
    return {"status": "success", "data": shift_response(record, context.clock())}


# Retry only the end-of-shift photo for an already ended shift
@router.post("/{record_id}/end-photo")
async def upload_end_photo(
    record_id: str,
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
    photo: Annotated[UploadFile, File(description="End-of-shift evidence photo")],
):
    evidence = await read_photo(photo)
    if evidence is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A photo is required.")

    record = await asyncio.to_thread(
        context.shift_sessions().attach_end_evidence, record_id, user["uid"], evidence
    )
    return {"status": "success", "data": shift_response(record, context.clock())}


# Single Shift (owner or admin)
@router.get("/{record_id}")
def get_shift(
    record_id: str,
    context: Annotated[AppContext, Depends(get_context)],
    user: Annotated[dict, Depends(get_current_user)],
):
    record = context.repository.get(record_id)
    check_record_access(user["is_admin"], user["uid"], record)
    return {"status": "success", "data": shift_response(record, context.clock())}
