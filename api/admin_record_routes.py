from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query

from core.context import AppContext, get_context
from core.deps import require_admin_role
from models.admin_time_change import AdminTimeChange
from services.record_admin import ManualRecordPayload, RecordCorrectionPayload

router = APIRouter()


# Everyone Currently On Shift (dashboard polls this)
@router.get("/live")
def get_live_activity(
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
):
    names = {profile.id: profile.name for profile in context.user_store.list_all()}
    data = context.record_admin().live_activity(
        names, context.clock(), tz=context.settings.report_timezone
    )
    return {"status": "success", "data": data}


# Manual Record Creation
@router.post("")
def create_record(
    payload: ManualRecordPayload,
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
):
    record = context.record_admin().create_manual(admin["uid"], payload)
    return {"status": "success", "data": record}


# Correction of site / times / pause / notes
@router.patch("/{record_id}")
def correct_record(
    record_id: str,
    payload: RecordCorrectionPayload,
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
):
    record = context.record_admin().correct(record_id, admin["uid"], payload)
    return {"status": "success", "data": record}


# Hard Delete
@router.delete("/{record_id}")
def delete_record(
    record_id: str,
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
    reason: Annotated[str, Query(min_length=1)],
):
    context.record_admin().delete(record_id, admin["uid"], reason)
    return {"status": "success", "message": f"Record {record_id} deleted."}


@router.get("/audit", response_model=List[AdminTimeChange])
def get_audit_log(
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
    worker_id: Optional[str] = None,
    limit: int = 100,
):
    return context.record_admin().audit_log(worker_id=worker_id, limit=limit)
