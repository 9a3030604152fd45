import logging
from typing import Any, Dict, List, Optional, Protocol

from google.api_core import exceptions as google_exceptions

from core.errors import RecordNotFound, StorageFailure
from models.user import UserProfile, UserProfileUpdate, UserRole
from utils.sanitize import sanitize_fields

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class UserStore(Protocol):
    def get(self, uid: str) -> Optional[UserProfile]: ...

    def create(self, profile: UserProfile) -> None: ...

    def update(self, uid: str, fields: Dict[str, Any]) -> None: ...

    def delete(self, uid: str) -> None: ...

    def list_all(self) -> List[UserProfile]: ...


class FirestoreUserStore:
    """User profiles in the Firestore ``users`` collection, one document per uid."""

    def __init__(self, client):
        self.client = client

    def _doc(self, uid: str):
        return self.client.collection(USERS_COLLECTION).document(uid)

    def get(self, uid: str) -> Optional[UserProfile]:
        try:
            snapshot = self._doc(uid).get()
        except google_exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Could not fetch user profile {uid}: {e}") from e
        if not snapshot.exists:
            return None
        return UserProfile(**{**snapshot.to_dict(), "id": uid})

    def create(self, profile: UserProfile) -> None:
        try:
            self._doc(profile.id).set(sanitize_fields(profile.model_dump()))
        except google_exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Could not create user profile {profile.id}: {e}") from e

    def update(self, uid: str, fields: Dict[str, Any]) -> None:
        try:
            self._doc(uid).update(sanitize_fields(fields))
        except google_exceptions.NotFound as e:
            raise RecordNotFound(f"User {uid} not found.") from e
        except google_exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Could not update user profile {uid}: {e}") from e

    def delete(self, uid: str) -> None:
        try:
            self._doc(uid).delete()
        except google_exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Could not delete user profile {uid}: {e}") from e

    def list_all(self) -> List[UserProfile]:
        try:
            return [
                UserProfile(**{**doc.to_dict(), "id": doc.id})
                for doc in self.client.collection(USERS_COLLECTION).stream()
            ]
        except google_exceptions.GoogleAPIError as e:
            raise StorageFailure(f"Could not list user profiles: {e}") from e


def sync_user(
    store: UserStore,
    uid: str,
    email: str,
    admin_email: str,
    display_name: Optional[str] = None,
    extra: Optional[UserProfileUpdate] = None,
) -> UserProfile:
    """
    Make sure a profile exists for a freshly authenticated account.

    The role is decided here, once: the configured admin email gets ADMIN
    (an existing profile is promoted if needed), everyone else keeps the role
    stored on their profile.
    """
    is_system_admin = bool(email) and email.lower() == admin_email.lower()
    existing = store.get(uid)

    if existing is not None:
        if is_system_admin and existing.role != UserRole.ADMIN:
            store.update(uid, {"role": UserRole.ADMIN})
            logger.info(f"Promoted {uid} to ADMIN (system admin email)")
            return existing.model_copy(update={"role": UserRole.ADMIN})
        return existing

    extra = extra or UserProfileUpdate()
    # Self-registration never grants ADMIN; admins promote through the user routes.
    role = UserRole.ADMIN if is_system_admin else UserRole.EMPLOYEE

    profile = UserProfile(
        id=uid,
        name=extra.name or display_name or ("System Admin" if is_system_admin else "New User"),
        email=email or "",
        role=role,
        pps=extra.pps or "",
        phone=extra.phone or "",
    )
    store.create(profile)
    logger.info(f"Created profile for {uid} with role {profile.role.value}")
    return profile
