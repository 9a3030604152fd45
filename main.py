import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.admin_record_routes import router as admin_record_router
from api.notification_routes import router as notification_router
from api.report_routes import router as report_router
from api.roster_routes import router as roster_router
from api.shift_routes import router as shift_router
from api.user_routes import router as user_router
from core.config import Settings
from core.context import AppContext, build_context
from core.errors import TimesheetError, timesheet_error_handler

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# This file is the control center of the whole application


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the FastAPI app.

    With no context the lifespan builds the real one (Firebase, database) at
    startup; tests pass a prepared context instead.
    """
    settings = context.settings if context is not None else Settings.from_env()

    # When We Start, build the shared context; tear it down on shutdown
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = context is None
        app.state.context = build_context(settings) if owned else context
        logger.info("🚀 Timesheet API started")
        yield
        if owned:
            app.state.context.close()
        logger.info("Timesheet API stopped")

    # Starts Fast API Up; Init
    app = FastAPI(title="Field Timesheet API", lifespan=lifespan)

    logger.info(f"🌐 CORS: Allowing origins: {settings.allowed_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TimesheetError, timesheet_error_handler)

    app.include_router(shift_router, prefix="/shifts", tags=["Shifts"])
    app.include_router(report_router, prefix="/reports", tags=["Reports"])
    app.include_router(admin_record_router, prefix="/admin/records", tags=["Admin", "Record Management"])
    app.include_router(roster_router, prefix="/roster", tags=["Roster", "Offices"])
    app.include_router(notification_router, prefix="/notifications", tags=["Notifications"])
    app.include_router(user_router, prefix="/users", tags=["Users"])

    return app


app = create_app()
