"""
Shift session lifecycle for a single worker.

    Idle --start--> Active --pause--> Paused --resume--> Active --end--> Ended
                                      Paused --end-----------------------^

Pause time is folded into ``accumulated_pause_ms`` exactly once, when the
pause window closes (on resume, or on end if the shift is still paused).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from core.errors import (
    ConcurrencyViolation,
    EvidenceUploadFailed,
    InvalidTransition,
    PermissionDenied,
    StorageFailure,
    TimesheetError,
    ValidationError,
)
from models.shift_record import LocationReport, SafetyChecklist, ShiftRecord
from services.evidence_store import (
    EvidencePhase,
    EvidencePhoto,
    EvidenceStore,
    build_evidence_path,
    validate_photo,
)
from services.session_repository import SessionRepository
from utils.datetime_helpers import format_clock, ms_between, utc_now
from utils.geolocation import LocationPolicy, resolve_location
from utils.sanitize import sanitize_fields

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ShiftState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


def state_of(record: Optional[ShiftRecord]) -> ShiftState:
    if record is None:
        return ShiftState.IDLE
    if record.end_timestamp is not None:
        return ShiftState.ENDED
    if record.is_paused:
        return ShiftState.PAUSED
    return ShiftState.ACTIVE


@dataclass(frozen=True)
class ElapsedTime:
    gross_ms: int
    open_pause_ms: int
    raw_net_ms: int  # may be negative under clock skew
    net_ms: int  # clamped at zero, for display

    @property
    def formatted(self) -> str:
        return format_clock(self.net_ms)


def elapsed_time(record: ShiftRecord, now: datetime) -> ElapsedTime:
    """
    Net worked time of a record as of ``now``. Pure; nothing is persisted.

    gross = (end or now) - start
    net   = gross - accumulated pauses - the pause still open (if paused)
    """
    end = record.end_utc or now
    gross_ms = ms_between(record.start_utc, end)

    open_pause_ms = 0
    if record.is_paused and record.paused_at_utc is not None:
        open_pause_ms = ms_between(record.paused_at_utc, now)

    raw_net_ms = gross_ms - (record.accumulated_pause_ms or 0) - open_pause_ms
    if raw_net_ms < 0:
        logger.warning(
            f"[SHIFT] Negative elapsed time for record {record.id}: {raw_net_ms} ms "
            f"(gross={gross_ms}, paused={record.accumulated_pause_ms}, open_pause={open_pause_ms})"
        )

    return ElapsedTime(
        gross_ms=gross_ms,
        open_pause_ms=open_pause_ms,
        raw_net_ms=raw_net_ms,
        net_ms=max(raw_net_ms, 0),
    )


def needs_checklist_confirmation(checklist: SafetyChecklist, threshold: int) -> bool:
    """Soft nudge only: the caller may acknowledge and start anyway."""
    return checklist.checked_count() < threshold


@dataclass
class StartShiftCommand:
    worker_id: str
    site_label: str
    checklist: SafetyChecklist
    site_address: Optional[str] = None
    location: Optional[LocationReport] = None
    photo: Optional[EvidencePhoto] = None
    schedule_id: Optional[str] = None
    free_notes: Optional[str] = None


class ShiftSessionService:

    def __init__(
        self,
        repository: SessionRepository,
        evidence_store: EvidenceStore,
        location_policy: LocationPolicy = LocationPolicy.REQUIRED,
        clock: Clock = utc_now,
    ):
        self.repository = repository
        self.evidence_store = evidence_store
        self.location_policy = location_policy
        self.clock = clock

    def get_active(self, worker_id: str) -> Optional[ShiftRecord]:
        return self.repository.find_active_session_for(worker_id)

    # --- Idle -> Active ---

    def start_shift(self, command: StartShiftCommand) -> ShiftRecord:
        worker_id = (command.worker_id or "").strip()
        if not worker_id:
            raise ValidationError("A worker must be selected to start a shift.")

        site_label = (command.site_label or "").strip()
        if not site_label:
            raise ValidationError("Please select or type a location.")

        if command.photo is not None:
            validate_photo(command.photo)

        location = resolve_location(command.location, self.location_policy)

        # Fail fast before uploading anything; create_active re-checks atomically.
        existing = self.repository.find_active_session_for(worker_id)
        if existing is not None:
            raise ConcurrencyViolation(
                "An active shift already exists for this worker. Resume or end it first.",
                active_record_id=existing.id,
            )

        now = self.clock()

        photo_path = None
        photo_url = None
        if command.photo is not None:
            photo_path = build_evidence_path(
                worker_id, EvidencePhase.START, now, command.photo.extension
            )
            photo_url = self.evidence_store.upload(
                command.photo.data, photo_path, command.photo.content_type
            )

        record = ShiftRecord(
            worker_id=worker_id,
            schedule_id=command.schedule_id,
            site_label=site_label,
            site_address=(command.site_address or "").strip() or None,
            start_timestamp=now,
            end_timestamp=None,
            date=now.date().isoformat(),
            checklist=sanitize_fields(command.checklist.model_dump()),
            start_evidence_photo_ref=photo_url,
            start_lat=location.lat if location else None,
            start_lng=location.lng if location else None,
            is_paused=False,
            paused_at_timestamp=None,
            accumulated_pause_ms=0,
            free_notes=command.free_notes,
        )

        try:
            created = self.repository.create_active(record)
        except TimesheetError:
            if photo_path is not None:
                self._discard_upload(photo_path)
            raise

        logger.info(
            f"[SHIFT] ▶️ Started shift {created.id} for worker {worker_id} at '{site_label}' "
            f"(location={'yes' if location else 'no'}, photo={'yes' if photo_url else 'no'})"
        )
        return created

    # --- Active <-> Paused ---

    def toggle_pause(self, record_id: str, worker_id: str) -> ShiftRecord:
        record = self._load_owned(record_id, worker_id)
        if record.end_timestamp is not None:
            raise InvalidTransition("Cannot pause or resume a shift that has already ended.")

        now = self.clock()

        if not record.is_paused:
            paused_at = max(now, record.start_utc)
            updates = {"is_paused": True, "paused_at_timestamp": paused_at}
            expected = {"end_timestamp": None, "is_paused": False}
        else:
            open_pause_ms = self._open_pause_ms(record, now)
            updates = {
                "is_paused": False,
                "paused_at_timestamp": None,
                "accumulated_pause_ms": (record.accumulated_pause_ms or 0) + open_pause_ms,
            }
            expected = {
                "end_timestamp": None,
                "is_paused": True,
                "accumulated_pause_ms": record.accumulated_pause_ms,
            }

        updated = self.repository.update(record.id, updates, expected=expected)
        if updated is None:
            raise ConcurrencyViolation(
                "This shift was changed from another device. Reload it and try again.",
                active_record_id=record.id,
            )

        logger.info(
            f"[SHIFT] {'⏸️ Paused' if updated.is_paused else '⏯️ Resumed'} shift {record.id} "
            f"(accumulated pause {updated.accumulated_pause_ms} ms)"
        )
        return updated

    # --- Active/Paused -> Ended ---

    def end_shift(
        self,
        record_id: str,
        worker_id: str,
        location: Optional[LocationReport] = None,
        photo: Optional[EvidencePhoto] = None,
    ) -> ShiftRecord:
        """
        End a shift. Ending while paused closes the open pause first.

        Ending an already-ended shift is a no-op success so retries are safe.
        The end is committed before the photo upload: if the upload fails the
        shift stays ended and EvidenceUploadFailed lets the caller retry only
        the upload.
        """
        record = self._load_owned(record_id, worker_id)

        if record.end_timestamp is not None:
            if photo is not None and not record.end_evidence_photo_ref:
                validate_photo(photo)
                return self._attach_end_photo(record, photo)
            logger.info(f"[SHIFT] Shift {record.id} already ended; nothing to do")
            return record

        if photo is not None:
            validate_photo(photo)

        end_location = resolve_location(location, self.location_policy)

        now = self.clock()
        end = max(now, record.start_utc)
        accumulated = record.accumulated_pause_ms or 0
        if record.is_paused:
            accumulated += self._open_pause_ms(record, end)

        updates = {
            "end_timestamp": end,
            "is_paused": False,
            "paused_at_timestamp": None,
            "accumulated_pause_ms": accumulated,
            "end_lat": end_location.lat if end_location else None,
            "end_lng": end_location.lng if end_location else None,
        }
        expected = {
            "end_timestamp": None,
            "is_paused": record.is_paused,
            "accumulated_pause_ms": record.accumulated_pause_ms,
        }

        ended = self.repository.update(record.id, updates, expected=expected)
        if ended is None:
            current = self.repository.get(record.id)
            if current.end_timestamp is not None:
                logger.info(f"[SHIFT] Shift {record.id} was ended concurrently; treating as done")
                ended = current
            else:
                raise ConcurrencyViolation(
                    "This shift was changed from another device. Reload it and try again.",
                    active_record_id=record.id,
                )
        else:
            logger.info(
                f"[SHIFT] ⏹️ Ended shift {record.id} for worker {record.worker_id} "
                f"(net {elapsed_time(ended, end).net_ms} ms, paused {accumulated} ms)"
            )

        if photo is not None and not ended.end_evidence_photo_ref:
            return self._attach_end_photo(ended, photo)
        return ended

    def attach_end_evidence(self, record_id: str, worker_id: str, photo: EvidencePhoto) -> ShiftRecord:
        """Retry path for an ended shift whose end-of-shift photo never made it."""
        record = self._load_owned(record_id, worker_id)
        if record.end_timestamp is None:
            raise InvalidTransition("End the shift before attaching end-of-shift evidence.")
        if record.end_evidence_photo_ref:
            return record
        validate_photo(photo)
        return self._attach_end_photo(record, photo)

    # --- Helpers ---

    def _load_owned(self, record_id: str, worker_id: str) -> ShiftRecord:
        record = self.repository.get(record_id)
        if record.worker_id != worker_id:
            raise PermissionDenied("You can only change your own shifts.")
        return record

    def _open_pause_ms(self, record: ShiftRecord, until: datetime) -> int:
        if record.paused_at_utc is None:
            logger.warning(f"[SHIFT] Record {record.id} is paused without a pause start; counting 0 ms")
            return 0
        open_pause_ms = ms_between(record.paused_at_utc, until)
        if open_pause_ms < 0:
            logger.warning(f"[SHIFT] Pause window on {record.id} is negative ({open_pause_ms} ms); counting 0 ms")
            return 0
        return open_pause_ms

    def _attach_end_photo(self, record: ShiftRecord, photo: EvidencePhoto) -> ShiftRecord:
        path = build_evidence_path(
            record.worker_id, EvidencePhase.END, self.clock(), photo.extension, record_key=record.id
        )
        try:
            url = self.evidence_store.upload(photo.data, path, photo.content_type)
            updated = self.repository.update(record.id, {"end_evidence_photo_ref": url})
        except StorageFailure as e:
            logger.warning(f"[SHIFT] Shift {record.id} ended without end photo: {e.detail}")
            raise EvidenceUploadFailed(
                f"Shift ended, but the end-of-shift photo could not be saved: {e.detail}",
                record_id=record.id,
            ) from e
        return updated

    def _discard_upload(self, path: str) -> None:
        try:
            self.evidence_store.delete(path)
        except StorageFailure as e:
            logger.error(f"[EVIDENCE] Orphaned start photo left at {path}: {e.detail}")
