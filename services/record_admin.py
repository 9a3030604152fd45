import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from core.errors import ValidationError
from models.admin_time_change import AdminTimeChange, AdminTimeChangeAction
from models.shift_record import ADMIN_EDITABLE_FIELDS, SafetyChecklist, ShiftRecord
from services.session_repository import SqlSessionRepository
from services.shift_session import elapsed_time, state_of
from utils.datetime_helpers import ensure_utc, ms_between
from utils.sanitize import sanitize_fields
from utils.timezone_helpers import day_range, local_date_of

logger = logging.getLogger(__name__)

_REQUIRED_ON_CORRECTION = {"start_timestamp", "accumulated_pause_ms"}


# --- Pydantic Models for Admin Record Actions ---


class RecordCorrectionPayload(BaseModel):
    site_label: Optional[str] = None
    site_address: Optional[str] = None
    start_timestamp: Optional[datetime] = None
    end_timestamp: Optional[datetime] = None
    accumulated_pause_ms: Optional[int] = None
    free_notes: Optional[str] = None
    reason: str


class ManualRecordPayload(BaseModel):
    worker_id: str
    site_label: str
    site_address: Optional[str] = None
    start_timestamp: datetime
    end_timestamp: Optional[datetime] = None
    accumulated_pause_ms: int = 0
    free_notes: Optional[str] = None
    checklist: SafetyChecklist = SafetyChecklist()
    reason: str


def _require_reason(reason: str) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required for administrative changes.")
    return reason


def _validate_times(start: datetime, end: Optional[datetime], pause_ms: int) -> None:
    if pause_ms is None or pause_ms < 0:
        raise ValidationError("Accumulated pause time cannot be negative.")
    if end is not None and end < start:
        raise ValidationError("The end time must not be before the start time.")


class RecordAdminService:
    """
    The administrative override path for shift records.

    Distinct from the worker lifecycle: every change is audited and the
    safety checklist is never editable here.
    """

    def __init__(self, repository: SqlSessionRepository, engine: Engine):
        self.repository = repository
        self.engine = engine

    def correct(self, record_id: str, admin_id: str, payload: RecordCorrectionPayload) -> ShiftRecord:
        reason = _require_reason(payload.reason)
        changes = sanitize_fields(payload.model_dump(exclude_unset=True, exclude={"reason"}))
        if not changes:
            raise ValidationError("Nothing to change.")
        if set(changes) - ADMIN_EDITABLE_FIELDS:
            raise ValidationError("Only site, times, pause and notes can be corrected.")
        cleared = sorted(name for name in _REQUIRED_ON_CORRECTION if name in changes and changes[name] is None)
        if cleared:
            raise ValidationError(f"These fields cannot be cleared: {', '.join(cleared)}")

        record = self.repository.get(record_id)

        if "site_label" in changes:
            changes["site_label"] = (changes["site_label"] or "").strip()
            if not changes["site_label"]:
                raise ValidationError("Site name cannot be empty.")

        start = ensure_utc(changes.get("start_timestamp", record.start_utc))
        end = ensure_utc(changes["end_timestamp"]) if "end_timestamp" in changes else record.end_utc
        pause_ms = changes.get("accumulated_pause_ms", record.accumulated_pause_ms)

        # Closing a shift that is still paused: the open pause counts up to the new end.
        if record.end_timestamp is None and end is not None and record.is_paused:
            if "accumulated_pause_ms" not in changes and record.paused_at_utc is not None:
                pause_ms += max(ms_between(record.paused_at_utc, end), 0)
            changes["is_paused"] = False
            changes["paused_at_timestamp"] = None
            changes["accumulated_pause_ms"] = pause_ms

        _validate_times(start, end, pause_ms)
        if "start_timestamp" in changes:
            changes["date"] = start.date().isoformat()

        updated = self.repository.update(record_id, changes)

        self._audit(
            AdminTimeChange(
                admin_id=admin_id,
                worker_id=record.worker_id,
                action=AdminTimeChangeAction.EDIT,
                reason=reason,
                record_id=record_id,
                start_time=updated.start_utc,
                end_time=updated.end_utc,
                site_label=updated.site_label,
                accumulated_pause_ms=updated.accumulated_pause_ms,
                original_start_time=record.start_utc,
                original_end_time=record.end_utc,
                original_site_label=record.site_label,
                original_accumulated_pause_ms=record.accumulated_pause_ms,
                shift_date=updated.date,
            )
        )
        logger.info(f"[ADMIN] {admin_id} corrected record {record_id}: {sorted(changes)}")
        return updated

    def create_manual(self, admin_id: str, payload: ManualRecordPayload) -> ShiftRecord:
        reason = _require_reason(payload.reason)
        site_label = payload.site_label.strip()
        if not payload.worker_id.strip() or not site_label:
            raise ValidationError("Worker and site are required.")

        start = ensure_utc(payload.start_timestamp)
        end = ensure_utc(payload.end_timestamp)
        _validate_times(start, end, payload.accumulated_pause_ms)

        record = ShiftRecord(
            worker_id=payload.worker_id,
            site_label=site_label,
            site_address=payload.site_address,
            start_timestamp=start,
            end_timestamp=end,
            date=start.date().isoformat(),
            checklist=sanitize_fields(payload.checklist.model_dump()),
            accumulated_pause_ms=payload.accumulated_pause_ms,
            free_notes=payload.free_notes,
        )
        if end is None:
            created = self.repository.create_active(record)
        else:
            created = self.repository.get(self.repository.create(record))

        self._audit(
            AdminTimeChange(
                admin_id=admin_id,
                worker_id=created.worker_id,
                action=AdminTimeChangeAction.CREATE,
                reason=reason,
                record_id=created.id,
                start_time=start,
                end_time=end,
                site_label=site_label,
                accumulated_pause_ms=created.accumulated_pause_ms,
                shift_date=created.date,
            )
        )
        logger.info(f"[ADMIN] {admin_id} created record {created.id} for {created.worker_id}")
        return created

    def delete(self, record_id: str, admin_id: str, reason: str) -> None:
        reason = _require_reason(reason)
        record = self.repository.get(record_id)
        self.repository.delete(record_id)
        self._audit(
            AdminTimeChange(
                admin_id=admin_id,
                worker_id=record.worker_id,
                action=AdminTimeChangeAction.DELETE,
                reason=reason,
                record_id=record_id,
                original_start_time=record.start_utc,
                original_end_time=record.end_utc,
                original_site_label=record.site_label,
                original_accumulated_pause_ms=record.accumulated_pause_ms,
                shift_date=record.date,
            )
        )
        logger.info(f"[ADMIN] {admin_id} deleted record {record_id}")

    def live_activity(self, worker_names: Dict[str, str], now: datetime, tz: str = "UTC") -> dict:
        """Everyone currently on shift, for the admin dashboard (polled by the UI)."""
        today_start, today_end = day_range(local_date_of(now, tz), tz)
        active = self.repository.list_active()
        todays_records = self.repository.list_started_between(today_start, today_end)

        return {
            "active_count": len(active),
            "today_count": len(todays_records),
            "active": [
                {
                    "record": record,
                    "worker_name": worker_names.get(record.worker_id, "Unknown"),
                    "state": state_of(record).value,
                    "elapsed": elapsed_time(record, now).formatted,
                }
                for record in active
            ],
        }

    def audit_log(self, worker_id: Optional[str] = None, limit: int = 100) -> List[AdminTimeChange]:
        with Session(self.engine) as session:
            statement = select(AdminTimeChange)
            if worker_id:
                statement = statement.where(AdminTimeChange.worker_id == worker_id)
            statement = statement.order_by(col(AdminTimeChange.created_at).desc(), col(AdminTimeChange.id).desc())
            return list(session.exec(statement.limit(limit)).all())

    def _audit(self, entry: AdminTimeChange) -> None:
        with Session(self.engine) as session:
            session.add(entry)
            session.commit()
