from datetime import datetime, timezone

import pytest

from conftest import auth
from models.shift_record import ShiftRecord


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def history(repository):
    def add(worker_id, start, end, pause_ms=0, **extra):
        return repository.create(
            ShiftRecord(
                worker_id=worker_id,
                site_label=extra.pop("site_label", "Tech Hub"),
                start_timestamp=start,
                end_timestamp=end,
                date=start.date().isoformat(),
                accumulated_pause_ms=pause_ms,
                **extra,
            )
        )

    add("worker-1", utc(2024, 1, 8, 9), utc(2024, 1, 8, 13), pause_ms=900_000, checklist={"helmet": True})
    add("worker-1", utc(2024, 1, 9, 22), utc(2024, 1, 10, 6))
    add("worker-2", utc(2024, 1, 8, 8), utc(2024, 1, 8, 10), start_lat=53.3498, start_lng=-6.2603)
    # Last week, outside the default period
    add("worker-1", utc(2024, 1, 5, 9), utc(2024, 1, 5, 17))


def test_worker_summary_is_pinned_to_self(client, clock, history):
    clock.set(utc(2024, 1, 10, 12))
    response = client.get("/reports/summary", params={"worker": "worker-2"}, headers=auth("worker-1"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["worker"] == "worker-1"
    assert data["total_ms"] == 13_500_000 + 8 * 3_600_000
    assert data["total"] == "11h 45min"
    assert [bucket["date"] for bucket in data["buckets"]] == ["2024-01-08", "2024-01-09"]
    assert all(r["worker_id"] == "worker-1" for r in data["records"])


def test_admin_summary_for_everyone(client, clock, history):
    clock.set(utc(2024, 1, 10, 12))
    data = client.get("/reports/summary", params={"worker": "all"}, headers=auth("admin-1")).json()["data"]

    assert data["worker"] == "all"
    assert data["total_ms"] == 13_500_000 + 8 * 3_600_000 + 2 * 3_600_000
    monday = data["buckets"][0]
    assert monday == {
        "date": "2024-01-08",
        "total_ms": 13_500_000 + 2 * 3_600_000,
        "total": "5h 45min",
        "hours": 5.75,
        "record_count": 2,
    }


def test_admin_summary_for_one_worker(client, clock, history):
    clock.set(utc(2024, 1, 10, 12))
    data = client.get("/reports/summary", params={"worker": "worker-2"}, headers=auth("admin-1")).json()["data"]
    assert data["worker"] == "worker-2"
    assert data["total"] == "2h 0min"


def test_custom_period(client, clock, history):
    clock.set(utc(2024, 1, 10, 12))
    response = client.get(
        "/reports/summary",
        params={"period": "custom", "start": "2024-01-05", "end": "2024-01-05"},
        headers=auth("worker-1"),
    )
    assert response.json()["data"]["total"] == "8h 0min"

    bad = client.get("/reports/summary", params={"period": "custom"}, headers=auth("worker-1"))
    assert bad.status_code == 400


def test_active_shift_listed_but_not_totalled(client, clock, history, repository):
    repository.create(
        ShiftRecord(worker_id="worker-2", site_label="Head Office", start_timestamp=utc(2024, 1, 10, 10), date="2024-01-10")
    )
    clock.set(utc(2024, 1, 10, 12))
    data = client.get("/reports/summary", params={"worker": "worker-2"}, headers=auth("admin-1")).json()["data"]

    assert data["total_ms"] == 2 * 3_600_000
    assert len(data["active"]) == 1
    assert data["active"][0]["elapsed"] == "02:00:00"


def test_weekly_chart(client, clock, history):
    clock.set(utc(2024, 1, 10, 12))
    chart = client.get("/reports/weekly-chart", headers=auth("worker-1")).json()["data"]
    assert chart == [
        {"name": "Monday", "date": "2024-01-08", "hours": 3.75},
        {"name": "Tuesday", "date": "2024-01-09", "hours": 8.0},
    ]


def test_export_rows(client, clock, history):
    clock.set(utc(2024, 1, 20, 12))
    data = client.get("/reports/export", params={"worker": "all"}, headers=auth("admin-1")).json()["data"]

    assert data["columns"][0] == "Date"
    assert len(data["rows"]) == 4
    newest = data["rows"][0]
    assert newest[:3] == ["09/01/2024", "Tech Hub", "22:00 - 06:00"]
    assert newest[3] == "No data"
    assert newest[6:] == ["Done", "8h 0min"]

    worker_2 = next(row for row in data["rows"] if row[2] == "08:00 - 10:00")
    assert worker_2[4] == "53.3498, -6.2603"
    assert worker_2[5] == "Not recorded"
