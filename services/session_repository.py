import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from core.errors import ConcurrencyViolation, RecordNotFound, StorageFailure, ValidationError
from models.shift_record import ACTIVE_SHIFT_INDEX, ShiftRecord
from utils.datetime_helpers import ensure_utc
from utils.sanitize import sanitize_fields

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS = {"start_timestamp", "end_timestamp", "paused_at_timestamp"}


class SessionRepository(Protocol):
    """Persistence contract the shift services depend on."""

    def find_active_session_for(self, worker_id: str) -> Optional[ShiftRecord]: ...

    def get(self, record_id: str) -> ShiftRecord: ...

    def create(self, record: ShiftRecord) -> str: ...

    def create_active(self, record: ShiftRecord) -> ShiftRecord: ...

    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[ShiftRecord]: ...

    def delete(self, record_id: str) -> None: ...

    def list_by_worker(self, worker_id: str) -> List[ShiftRecord]: ...

    def list_all(self) -> List[ShiftRecord]: ...

    def list_active(self) -> List[ShiftRecord]: ...


def _prepare_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    clean = sanitize_fields(fields)
    unknown = set(clean) - set(ShiftRecord.model_fields)
    if unknown:
        raise ValidationError(f"Unknown shift record fields: {', '.join(sorted(unknown))}")
    if "id" in clean:
        raise ValidationError("Record id cannot be changed.")
    for name in _TIMESTAMP_FIELDS & set(clean):
        clean[name] = ensure_utc(clean[name])
    return clean


def _violates_active_index(error: IntegrityError) -> bool:
    # PostgreSQL reports the index name, SQLite only the indexed column
    message = str(error.orig)
    return ACTIVE_SHIFT_INDEX in message or "records.worker_id" in message


def _constraint_error(error: IntegrityError) -> ValidationError:
    return ValidationError(f"Shift record rejected by the database: {error.orig}")


class SqlSessionRepository:
    """
    Shift records in the SQL store.

    Every call runs in its own short session; the "one open shift per worker"
    rule is backed by the partial unique index on ``records``.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    # --- Queries ---

    def find_active_session_for(self, worker_id: str) -> Optional[ShiftRecord]:
        try:
            with Session(self.engine) as session:
                return session.exec(
                    select(ShiftRecord)
                    .where(ShiftRecord.worker_id == worker_id)
                    .where(col(ShiftRecord.end_timestamp).is_(None))
                    .limit(1)
                ).first()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not look up active shift: {e}") from e

    def get(self, record_id: str) -> ShiftRecord:
        try:
            with Session(self.engine) as session:
                record = session.get(ShiftRecord, record_id)
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not load shift {record_id}: {e}") from e
        if record is None:
            raise RecordNotFound(f"Shift record {record_id} not found.")
        return record

    def list_by_worker(self, worker_id: str) -> List[ShiftRecord]:
        return self._list(
            select(ShiftRecord)
            .where(ShiftRecord.worker_id == worker_id)
            .order_by(col(ShiftRecord.start_timestamp).desc())
        )

    def list_all(self) -> List[ShiftRecord]:
        return self._list(select(ShiftRecord).order_by(col(ShiftRecord.start_timestamp).desc()))

    def list_active(self) -> List[ShiftRecord]:
        return self._list(
            select(ShiftRecord)
            .where(col(ShiftRecord.end_timestamp).is_(None))
            .order_by(col(ShiftRecord.start_timestamp))
        )

    def list_started_between(
        self, start: datetime, end: datetime, worker_id: Optional[str] = None
    ) -> List[ShiftRecord]:
        statement = (
            select(ShiftRecord)
            .where(ShiftRecord.start_timestamp >= ensure_utc(start))
            .where(ShiftRecord.start_timestamp < ensure_utc(end))
        )
        if worker_id is not None:
            statement = statement.where(ShiftRecord.worker_id == worker_id)
        return self._list(statement.order_by(col(ShiftRecord.start_timestamp)))

    def _list(self, statement) -> List[ShiftRecord]:
        try:
            with Session(self.engine) as session:
                return list(session.exec(statement).all())
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not list shift records: {e}") from e

    # --- Writes ---

    def create(self, record: ShiftRecord) -> str:
        """Insert a record as given (used for ended records created by admins)."""
        record = self._normalised(record)
        try:
            with Session(self.engine) as session:
                session.add(record)
                session.commit()
                return record.id
        except IntegrityError as e:
            if not _violates_active_index(e):
                raise _constraint_error(e) from e
            raise self._active_conflict(record.worker_id) from e
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not create shift record: {e}") from e

    def create_active(self, record: ShiftRecord) -> ShiftRecord:
        """
        Insert an open shift if, and only if, the worker has none.

        The check and the insert share one transaction; a concurrent insert
        that slips past the check is rejected by the unique index.
        """
        if record.end_timestamp is not None:
            raise ValidationError("create_active expects an open shift record.")

        record = self._normalised(record)
        try:
            with Session(self.engine) as session:
                existing = session.exec(
                    select(ShiftRecord)
                    .where(ShiftRecord.worker_id == record.worker_id)
                    .where(col(ShiftRecord.end_timestamp).is_(None))
                    .limit(1)
                ).first()
                if existing is not None:
                    raise ConcurrencyViolation(
                        "An active shift already exists for this worker. Resume or end it first.",
                        active_record_id=existing.id,
                    )
                session.add(record)
                session.commit()
                session.refresh(record)
                return record
        except IntegrityError as e:
            if not _violates_active_index(e):
                raise _constraint_error(e) from e
            logger.warning(f"[SHIFT] Active-shift index rejected insert for worker {record.worker_id}")
            raise self._active_conflict(record.worker_id) from e
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not create shift record: {e}") from e

    def update(
        self,
        record_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[ShiftRecord]:
        """
        Partial update by id.

        With ``expected`` the write only happens when every listed column
        still holds the given value (None means IS NULL); ``None`` is returned
        when that condition no longer holds.
        """
        clean = _prepare_fields(fields)
        statement = update(ShiftRecord).where(col(ShiftRecord.id) == record_id)
        for name, value in (expected or {}).items():
            column = getattr(ShiftRecord, name)
            statement = statement.where(column.is_(None) if value is None else column == value)
        statement = statement.values(**clean)

        try:
            with Session(self.engine) as session:
                result = session.execute(statement)
                session.commit()
                if result.rowcount == 0:
                    if session.get(ShiftRecord, record_id) is None:
                        raise RecordNotFound(f"Shift record {record_id} not found.")
                    return None
                return session.get(ShiftRecord, record_id, populate_existing=True)
        except IntegrityError as e:
            if not _violates_active_index(e):
                raise _constraint_error(e) from e
            raise ConcurrencyViolation(f"Update would break the one-active-shift rule: {e.orig}") from e
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not update shift record {record_id}: {e}") from e

    def delete(self, record_id: str) -> None:
        try:
            with Session(self.engine) as session:
                record = session.get(ShiftRecord, record_id)
                if record is None:
                    raise RecordNotFound(f"Shift record {record_id} not found.")
                session.delete(record)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not delete shift record {record_id}: {e}") from e

    # --- Helpers ---

    @staticmethod
    def _normalised(record: ShiftRecord) -> ShiftRecord:
        if not record.id:
            record.id = uuid4().hex
        for name in _TIMESTAMP_FIELDS:
            setattr(record, name, ensure_utc(getattr(record, name)))
        return record

    def _active_conflict(self, worker_id: str) -> ConcurrencyViolation:
        active = self.find_active_session_for(worker_id)
        return ConcurrencyViolation(
            "An active shift already exists for this worker. Resume or end it first.",
            active_record_id=active.id if active else None,
        )
