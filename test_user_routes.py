import pytest

from conftest import ADMIN_EMAIL, FakeUserStore, auth
from models.user import UserProfile, UserProfileUpdate, UserRole
from services.user_sync import sync_user


@pytest.fixture
def store():
    return FakeUserStore()


def test_first_sync_creates_employee(store):
    profile = sync_user(store, "u1", "someone@example.com", ADMIN_EMAIL, display_name="Some One")
    assert profile.role == UserRole.EMPLOYEE
    assert profile.name == "Some One"
    assert store.get("u1") == profile


def test_admin_email_gets_admin_role(store):
    profile = sync_user(store, "boss", ADMIN_EMAIL.upper(), ADMIN_EMAIL)
    assert profile.role == UserRole.ADMIN
    assert profile.name == "System Admin"


def test_self_sync_cannot_claim_admin(store):
    extra = UserProfileUpdate(name="Sneaky", role=UserRole.ADMIN)
    profile = sync_user(store, "u2", "sneaky@example.com", ADMIN_EMAIL, extra=extra)
    assert profile.role == UserRole.EMPLOYEE
    assert profile.name == "Sneaky"


def test_existing_admin_email_profile_is_promoted(store):
    store.create(UserProfile(id="boss", name="Boss", email=ADMIN_EMAIL))
    profile = sync_user(store, "boss", ADMIN_EMAIL, ADMIN_EMAIL)
    assert profile.role == UserRole.ADMIN
    assert store.get("boss").role == UserRole.ADMIN


def test_resync_keeps_existing_profile(store):
    store.create(UserProfile(id="u3", name="Kept", email="u3@example.com", phone="0871234567"))
    profile = sync_user(store, "u3", "u3@example.com", ADMIN_EMAIL, display_name="Other")
    assert profile.name == "Kept"
    assert profile.phone == "0871234567"


# --- Routes ---


def test_sync_then_me(client):
    assert client.get("/users/me", headers=auth("newbie")).status_code == 404

    synced = client.post("/users/sync", json={"name": "New Bie", "phone": "0870000000"}, headers=auth("newbie"))
    assert synced.status_code == 200
    assert synced.json()["data"]["role"] == "EMPLOYEE"

    me = client.get("/users/me", headers=auth("newbie")).json()["data"]
    assert me == {
        "uid": "newbie",
        "name": "New Bie",
        "email": "newbie@example.com",
        "role": "EMPLOYEE",
        "is_admin": False,
    }


def test_sync_with_admin_email(client):
    synced = client.post("/users/sync", headers=auth(f"owner|{ADMIN_EMAIL}")).json()["data"]
    assert synced["role"] == "ADMIN"


def test_sign_out_revokes_tokens(client, revoked):
    assert client.post("/users/sign-out", headers=auth("worker-1")).status_code == 200
    assert revoked == ["worker-1"]


def test_admin_user_management(client, user_store):
    assert client.get("/users", headers=auth("worker-1")).status_code == 403
    assert len(client.get("/users", headers=auth("admin-1")).json()["data"]) == 3

    promoted = client.patch("/users/worker-2", json={"role": "ADMIN"}, headers=auth("admin-1"))
    assert promoted.json()["data"]["role"] == "ADMIN"

    assert client.patch("/users/ghost", json={"name": "x"}, headers=auth("admin-1")).status_code == 404
    assert client.delete("/users/admin-1", headers=auth("admin-1")).status_code == 400
    assert client.delete("/users/worker-1", headers=auth("admin-1")).status_code == 200
    assert user_store.get("worker-1") is None
