import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from utils.geolocation import LocationPolicy
from utils.timezone_helpers import validate_timezone

DEFAULT_ADMIN_EMAIL = "adminreports@downeycleaning.ie"


def build_database_url() -> str:
    """
    Work out the SQLAlchemy URL for the record store.

    DATABASE_URL wins; otherwise the Cloud SQL socket or TCP variables are
    used; with nothing configured a local SQLite file is used.
    """
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    db_host = os.getenv("DB_HOST")
    db_port = os.getenv("DB_PORT", "5432")  # Default PostgreSQL port
    db_name = os.getenv("DB_NAME")
    db_user = os.getenv("DB_USER")
    db_password = os.getenv("DB_PASSWORD")
    instance_connection_name = os.getenv("INSTANCE_CONNECTION_NAME")  # For Cloud SQL Proxy

    if instance_connection_name:
        required_vars = ["DB_NAME", "DB_USER", "DB_PASSWORD"]
        missing_vars = [var for var in required_vars if not os.getenv(var)]
        if missing_vars:
            raise ValueError(
                f"Missing required environment variables for Cloud SQL (socket): {', '.join(missing_vars)}"
            )
        return f"postgresql+psycopg2://{db_user}:{db_password}@/{db_name}?host=/cloudsql/{instance_connection_name}"

    if db_host:
        required_vars = ["DB_NAME", "DB_USER", "DB_PASSWORD"]
        missing_vars = [var for var in required_vars if not os.getenv(var)]
        if missing_vars:
            raise ValueError(f"Missing required environment variables for TCP: {', '.join(missing_vars)}")
        return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

    return "sqlite:///./timesheet.db"


@dataclass
class Settings:
    database_url: str = "sqlite:///./timesheet.db"
    location_policy: LocationPolicy = LocationPolicy.REQUIRED
    admin_email: str = DEFAULT_ADMIN_EMAIL
    storage_bucket: Optional[str] = None
    report_timezone: str = "UTC"
    checklist_warning_threshold: int = 5
    notification_query_limit: int = 50
    allowed_origins: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Settings":
        # Load environment variables from .env file, if it exists
        load_dotenv()

        report_timezone = os.getenv("REPORT_TIMEZONE", "UTC")
        if not validate_timezone(report_timezone):
            raise ValueError(f"REPORT_TIMEZONE is not a valid IANA timezone: {report_timezone}")

        # Construct the list of allowed origins, always including both dev and production
        origins = [
            os.getenv("DEV_DOMAIN", "http://localhost:5173"),
            os.getenv("PRODUCTION_DOMAIN"),
            "http://localhost:3000",
            "http://127.0.0.1:5173",
        ]

        return cls(
            database_url=build_database_url(),
            location_policy=LocationPolicy(os.getenv("LOCATION_POLICY", LocationPolicy.REQUIRED.value)),
            admin_email=os.getenv("ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL),
            storage_bucket=os.getenv("FIREBASE_STORAGE_BUCKET"),
            report_timezone=report_timezone,
            checklist_warning_threshold=int(os.getenv("CHECKLIST_WARNING_THRESHOLD", "5")),
            notification_query_limit=int(os.getenv("NOTIFICATION_QUERY_LIMIT", "50")),
            # Remove any None values and duplicates
            allowed_origins=sorted({origin for origin in origins if origin}),
        )
