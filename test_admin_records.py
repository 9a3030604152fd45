from datetime import datetime, timezone

import pytest

from conftest import auth
from core.errors import ConcurrencyViolation, ValidationError
from models.shift_record import SafetyChecklist
from services.record_admin import ManualRecordPayload, RecordAdminService, RecordCorrectionPayload
from services.shift_session import StartShiftCommand, elapsed_time


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def admin_service(repository, engine):
    return RecordAdminService(repository, engine)


def start(service, worker_id="worker-1"):
    return service.start_shift(
        StartShiftCommand(worker_id=worker_id, site_label="Tech Hub", checklist=SafetyChecklist(helmet=True))
    )


def test_correction_is_audited(service, admin_service, clock):
    record = start(service)
    clock.advance(hours=4)
    service.end_shift(record.id, "worker-1")

    corrected = admin_service.correct(
        record.id,
        "admin-1",
        RecordCorrectionPayload(site_label="Head Office", accumulated_pause_ms=1_800_000, reason="Forgot to pause"),
    )

    assert corrected.site_label == "Head Office"
    assert elapsed_time(corrected, clock()).net_ms == 4 * 3_600_000 - 1_800_000
    # Checklist untouched
    assert corrected.checklist == record.checklist

    [entry] = admin_service.audit_log()
    assert entry.action == "EDIT"
    assert entry.original_site_label == "Tech Hub"
    assert entry.site_label == "Head Office"
    assert entry.reason == "Forgot to pause"


def test_correction_needs_reason_and_valid_times(service, admin_service):
    record = start(service)
    with pytest.raises(ValidationError):
        admin_service.correct(record.id, "admin-1", RecordCorrectionPayload(site_label="X", reason="  "))
    with pytest.raises(ValidationError):
        admin_service.correct(
            record.id,
            "admin-1",
            RecordCorrectionPayload(end_timestamp=utc(2024, 1, 8, 8), reason="typo"),
        )
    with pytest.raises(ValidationError):
        admin_service.correct(record.id, "admin-1", RecordCorrectionPayload(accumulated_pause_ms=-1, reason="typo"))


def test_admin_ending_paused_shift_folds_pause(service, admin_service, clock):
    record = start(service)
    clock.advance(hours=1)
    service.toggle_pause(record.id, "worker-1")

    ended = admin_service.correct(
        record.id, "admin-1", RecordCorrectionPayload(end_timestamp=utc(2024, 1, 8, 12), reason="Left site")
    )

    assert ended.is_paused is False
    assert ended.accumulated_pause_ms == 2 * 3_600_000
    assert elapsed_time(ended, clock()).net_ms == 3_600_000


def test_manual_record_respects_one_active_rule(service, admin_service):
    start(service)

    with pytest.raises(ConcurrencyViolation):
        admin_service.create_manual(
            "admin-1",
            ManualRecordPayload(
                worker_id="worker-1", site_label="Tech Hub", start_timestamp=utc(2024, 1, 8, 7), reason="Missed"
            ),
        )

    ended = admin_service.create_manual(
        "admin-1",
        ManualRecordPayload(
            worker_id="worker-1",
            site_label="Tech Hub",
            start_timestamp=utc(2024, 1, 7, 9),
            end_timestamp=utc(2024, 1, 7, 12),
            reason="Missed clock-in",
        ),
    )
    assert ended.date == "2024-01-07"
    assert [entry.action for entry in admin_service.audit_log()] == ["CREATE"]


def test_delete_is_audited(service, admin_service, repository):
    record = start(service)
    admin_service.delete(record.id, "admin-1", "Duplicate")

    assert repository.find_active_session_for("worker-1") is None
    [entry] = admin_service.audit_log(worker_id="worker-1")
    assert entry.action == "DELETE"
    assert entry.original_site_label == "Tech Hub"


def test_live_activity(service, admin_service, clock):
    start(service, "worker-1")
    paused = start(service, "worker-2")
    clock.advance(minutes=30)
    service.toggle_pause(paused.id, "worker-2")

    live = admin_service.live_activity({"worker-1": "Ann Worker"}, clock())

    assert live["active_count"] == 2
    assert live["today_count"] == 2
    by_worker = {entry["record"].worker_id: entry for entry in live["active"]}
    assert by_worker["worker-1"]["worker_name"] == "Ann Worker"
    assert by_worker["worker-2"]["worker_name"] == "Unknown"
    assert by_worker["worker-2"]["state"] == "paused"
    assert by_worker["worker-1"]["elapsed"] == "00:30:00"


# --- Routes ---


def test_admin_routes_require_admin(client):
    assert client.get("/admin/records/live", headers=auth("worker-1")).status_code == 403


def test_admin_record_routes(client, service):
    record = start(service)

    live = client.get("/admin/records/live", headers=auth("admin-1")).json()["data"]
    assert live["active"][0]["worker_name"] == "Ann Worker"

    patched = client.patch(
        f"/admin/records/{record.id}",
        json={"site_label": "Head Office", "reason": "Wrong site"},
        headers=auth("admin-1"),
    )
    assert patched.status_code == 200
    assert patched.json()["data"]["site_label"] == "Head Office"

    no_reason = client.delete(f"/admin/records/{record.id}", headers=auth("admin-1"))
    assert no_reason.status_code == 422

    deleted = client.delete(f"/admin/records/{record.id}", params={"reason": "Test entry"}, headers=auth("admin-1"))
    assert deleted.status_code == 200

    audit = client.get("/admin/records/audit", headers=auth("admin-1")).json()
    assert [entry["action"] for entry in audit] == ["DELETE", "EDIT"]


def test_correction_cannot_clear_start_or_pause(client, service):
    record = start(service)

    for name in ("start_timestamp", "accumulated_pause_ms"):
        response = client.patch(
            f"/admin/records/{record.id}", json={name: None, "reason": "fix"}, headers=auth("admin-1")
        )
        assert response.status_code == 400, name
        assert response.json()["code"] == "validation_error"

    assert client.get(f"/shifts/{record.id}", headers=auth("admin-1")).json()["data"]["record"]["start_timestamp"] == (
        "2024-01-08T09:00:00Z"
    )
