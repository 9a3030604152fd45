import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy.engine import Engine

from core.config import Settings
from db.session import create_db_engine, create_tables
from services.evidence_store import EvidenceStore, FirebaseEvidenceStore
from services.record_admin import RecordAdminService
from services.session_repository import SqlSessionRepository
from services.shift_session import ShiftSessionService
from services.user_sync import FirestoreUserStore, UserStore
from utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """
    Everything a request needs, built once at startup and torn down at shutdown.

    Routers reach it through ``get_context``; nothing here is a module global.
    """

    settings: Settings
    engine: Engine
    user_store: UserStore
    evidence_store: EvidenceStore
    verify_id_token: Callable[[str], dict]
    revoke_refresh_tokens: Callable[[str], None]
    clock: Callable[[], datetime] = utc_now
    on_close: Optional[Callable[[], None]] = None
    repository: SqlSessionRepository = field(init=False)

    def __post_init__(self):
        self.repository = SqlSessionRepository(self.engine)

    def shift_sessions(self) -> ShiftSessionService:
        return ShiftSessionService(
            repository=self.repository,
            evidence_store=self.evidence_store,
            location_policy=self.settings.location_policy,
            clock=self.clock,
        )

    def record_admin(self) -> RecordAdminService:
        return RecordAdminService(repository=self.repository, engine=self.engine)

    def close(self) -> None:
        if self.on_close is not None:
            self.on_close()
        self.engine.dispose()


def build_context(settings: Settings) -> AppContext:
    # Imported here so the Firebase SDK is only touched when the real app starts
    from core.firebase import initialize_firebase, shutdown_firebase

    firebase = initialize_firebase(settings)
    engine = create_db_engine(settings.database_url)
    create_tables(engine)

    logger.info(f"Record store ready ({engine.url.get_backend_name()}); location policy {settings.location_policy.value}")

    return AppContext(
        settings=settings,
        engine=engine,
        user_store=FirestoreUserStore(firebase.firestore_client),
        evidence_store=FirebaseEvidenceStore(firebase.bucket),
        verify_id_token=firebase.verify_id_token,
        revoke_refresh_tokens=firebase.revoke_refresh_tokens,
        on_close=lambda: shutdown_firebase(firebase),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context
