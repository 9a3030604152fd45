from conftest import auth


def add_schedule(client, **overrides):
    payload = {
        "worker_id": "worker-1",
        "site_label": "Tech Hub",
        "site_address": "1 Grand Canal Quay, Dublin 2",
        "day_of_week": 1,
        "hours_per_day": 4.0,
        **overrides,
    }
    return client.post("/roster/schedules", json=payload, headers=auth("admin-1"))


def test_schedule_crud_and_weekly_hours(client):
    first = add_schedule(client).json()["data"]
    add_schedule(client, day_of_week=3, hours_per_day=6.5)
    add_schedule(client, worker_id="worker-2", day_of_week=0)

    mine = client.get("/roster/schedules", headers=auth("worker-1")).json()["data"]
    assert [item["day_of_week"] for item in mine] == [1, 3]

    hours = client.get("/roster/schedules/weekly-hours", headers=auth("worker-1")).json()["data"]
    assert hours == {"worker_id": "worker-1", "hours": 10.5}

    updated = client.patch(
        f"/roster/schedules/{first['id']}", json={"hours_per_day": 2.0}, headers=auth("admin-1")
    ).json()["data"]
    assert updated["hours_per_day"] == 2.0

    assert client.delete(f"/roster/schedules/{first['id']}", headers=auth("admin-1")).status_code == 200
    assert client.delete(f"/roster/schedules/{first['id']}", headers=auth("admin-1")).status_code == 404


def test_schedule_validation(client):
    assert add_schedule(client, day_of_week=7).status_code == 400
    assert add_schedule(client, site_label="  ").status_code == 400


def test_schedule_update_rejects_cleared_fields(client):
    item = add_schedule(client).json()["data"]

    for name in ("site_label", "site_address", "day_of_week", "hours_per_day"):
        response = client.patch(f"/roster/schedules/{item['id']}", json={name: None}, headers=auth("admin-1"))
        assert response.status_code == 400, name
        assert response.json()["code"] == "validation_error"

    # Notes are optional and may be cleared
    cleared = client.patch(f"/roster/schedules/{item['id']}", json={"notes": None}, headers=auth("admin-1"))
    assert cleared.status_code == 200
    assert cleared.json()["data"]["hours_per_day"] == 4.0


def test_workers_cannot_edit_or_peek_at_rosters(client):
    add_schedule(client, worker_id="worker-2")

    payload = {"worker_id": "worker-1", "site_label": "Tech Hub", "day_of_week": 2}
    assert client.post("/roster/schedules", json=payload, headers=auth("worker-1")).status_code == 403
    # Asking for someone else's roster falls back to your own
    theirs = client.get("/roster/schedules", params={"worker_id": "worker-2"}, headers=auth("worker-1"))
    assert theirs.json()["data"] == []

    admin_view = client.get("/roster/schedules", params={"worker_id": "worker-2"}, headers=auth("admin-1"))
    assert len(admin_view.json()["data"]) == 1


def test_known_sites_for_start_form(client):
    add_schedule(client, day_of_week=1)
    add_schedule(client, day_of_week=2)
    add_schedule(client, day_of_week=4, site_label="Head Office", site_address="12 Baggot Street Upper")

    sites = client.get("/shifts/locations", headers=auth("worker-1")).json()["data"]
    assert sites == [
        {"name": "Tech Hub", "address": "1 Grand Canal Quay, Dublin 2"},
        {"name": "Head Office", "address": "12 Baggot Street Upper"},
    ]


def test_offices(client):
    created = client.post(
        "/roster/offices",
        json={
            "name": "Tech Hub",
            "eircode": "D02 X285",
            "address": "1 Grand Canal Quay",
            "default_schedule": [{"day_of_week": 1, "hours": 4}],
        },
        headers=auth("admin-1"),
    ).json()["data"]
    assert created["default_schedule"] == [{"day_of_week": 1, "hours": 4.0, "is_active": True}]

    offices = client.get("/roster/offices", headers=auth("worker-1")).json()["data"]
    assert [office["name"] for office in offices] == ["Tech Hub"]

    assert client.delete(f"/roster/offices/{created['id']}", headers=auth("worker-1")).status_code == 403
    assert client.delete(f"/roster/offices/{created['id']}", headers=auth("admin-1")).status_code == 200


# --- Notifications ---


def send(client, **payload):
    return client.post("/notifications", json={"title": "Rota", "message": "New rota is out", **payload}, headers=auth("admin-1"))


def test_broadcast_and_direct_notifications(client):
    send(client)
    send(client, recipient_id="worker-2", title="Keys", message="Collect the keys")

    worker_1 = client.get("/notifications", headers=auth("worker-1")).json()["data"]
    worker_2 = client.get("/notifications", headers=auth("worker-2")).json()["data"]

    assert [n["title"] for n in worker_1] == ["Rota"]
    assert {n["title"] for n in worker_2} == {"Rota", "Keys"}
    assert worker_1[0]["sender_name"] == "Cara Admin"

    sent = client.get("/notifications/sent", headers=auth("admin-1")).json()["data"]
    assert len(sent) == 2


def test_mark_read_is_idempotent(client):
    notification = send(client).json()["data"]

    assert client.get("/notifications/unread-count", headers=auth("worker-1")).json()["data"] == 1
    client.post(f"/notifications/{notification['id']}/read", headers=auth("worker-1"))
    second = client.post(f"/notifications/{notification['id']}/read", headers=auth("worker-1")).json()["data"]

    assert second["read_by"] == ["worker-1"]
    assert client.get("/notifications/unread-count", headers=auth("worker-1")).json()["data"] == 0
    assert client.get("/notifications/unread-count", headers=auth("worker-2")).json()["data"] == 1


def test_notification_permissions(client):
    direct = send(client, recipient_id="worker-2").json()["data"]

    assert client.post("/notifications", json={"title": "x", "message": "y"}, headers=auth("worker-1")).status_code == 403
    assert client.post(f"/notifications/{direct['id']}/read", headers=auth("worker-1")).status_code == 403
    assert client.delete(f"/notifications/{direct['id']}", headers=auth("worker-2")).status_code == 403
    assert client.delete(f"/notifications/{direct['id']}", headers=auth("admin-1")).status_code == 200


def test_notification_list_is_capped(client, context):
    context.settings.notification_query_limit = 3
    for i in range(5):
        send(client, title=f"Message {i}")

    assert len(client.get("/notifications", headers=auth("worker-1")).json()["data"]) == 3
