from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from sqlalchemy import JSON, Column, DateTime, text
from sqlmodel import Field, Index, SQLModel

from utils.datetime_helpers import ensure_utc, format_utc_datetime


class GeoPoint(BaseModel):
    lat: float
    lng: float


# What the device sent back for a location request: coordinates, or a
# GeolocationPositionError code (1 denied, 2 unavailable, 3 timeout).
class LocationReport(BaseModel):
    lat: float | None = None
    lng: float | None = None
    error_code: int | None = None
    error_message: str | None = None


# Safety plan of action filled in before a shift starts.
class SafetyChecklist(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Plan of Action
    know_job_safety: bool = False
    weather_check: bool = False
    safe_pass_in_date: bool = False
    hazard_awareness: bool = False
    floor_conditions: bool = False
    # Lifting
    manual_handling_cert: bool = False
    lifting_help: bool = False
    # Heights
    anchor_points: bool = False
    ladder_footing: bool = False
    safety_cones: bool = False
    communication: bool = False
    # Equipment
    ladders_check: bool = False
    sharp_edges: bool = False
    scraper_covers: bool = False
    hot_surfaces: bool = False
    chemical_course: bool = False
    chemical_awareness: bool = False
    tidy_equipment: bool = False
    ladders_stored: bool = False
    # PPE
    high_vis: bool = False
    helmet: bool = False
    goggles: bool = False
    gloves: bool = False
    mask: bool = False
    ear_muffs: bool = False
    face_guard: bool = False
    harness: bool = False
    boots: bool = False

    def checked_items(self) -> List[str]:
        return [name for name, value in self.model_dump().items() if value is True]

    def checked_count(self) -> int:
        return len(self.checked_items())

    def checked_labels(self) -> List[str]:
        return [CHECKLIST_LABELS[name] for name in self.checked_items()]


# Presentation grouping only, nothing is enforced per group.
CHECKLIST_GROUPS: Dict[str, List[str]] = {
    "plan_of_action": [
        "know_job_safety",
        "weather_check",
        "safe_pass_in_date",
        "hazard_awareness",
        "floor_conditions",
    ],
    "lifting": ["manual_handling_cert", "lifting_help"],
    "heights": ["anchor_points", "ladder_footing", "safety_cones", "communication"],
    "equipment": [
        "ladders_check",
        "sharp_edges",
        "scraper_covers",
        "hot_surfaces",
        "chemical_course",
        "chemical_awareness",
        "tidy_equipment",
        "ladders_stored",
    ],
    "ppe": [
        "high_vis",
        "helmet",
        "goggles",
        "gloves",
        "mask",
        "ear_muffs",
        "face_guard",
        "harness",
        "boots",
    ],
}

# Short labels used in exported reports
CHECKLIST_LABELS: Dict[str, str] = {
    "know_job_safety": "Job Safety",
    "weather_check": "Weather",
    "safe_pass_in_date": "Safe Pass",
    "hazard_awareness": "Hazards Aware",
    "floor_conditions": "Floor Checked",
    "manual_handling_cert": "Manual Handling",
    "lifting_help": "Lifting Plan",
    "anchor_points": "Anchor Points",
    "ladder_footing": "Ladder Footing",
    "safety_cones": "Cones/Signs",
    "communication": "Comm. Done",
    "ladders_check": "Ladders Checked",
    "sharp_edges": "No Sharp Edges",
    "scraper_covers": "Scraper Covers",
    "hot_surfaces": "No Hot Surfaces",
    "chemical_course": "Chem Course",
    "chemical_awareness": "Chem Safety",
    "tidy_equipment": "Tidy Equip.",
    "ladders_stored": "Ladders Stored",
    "high_vis": "High Vis",
    "helmet": "Helmet",
    "goggles": "Goggles",
    "gloves": "Gloves",
    "mask": "Mask",
    "ear_muffs": "Ear Muffs",
    "face_guard": "Face Guard",
    "harness": "Harness",
    "boots": "Boots",
}


ACTIVE_SHIFT_INDEX = "uq_records_active_worker"


# Defines a Table "records" w/ one row per shift (start, end, pause accounting)
class ShiftRecord(SQLModel, table=True):
    __tablename__ = "records"

    __table_args__ = (
        Index("ix_records_worker_id", "worker_id"),
        Index("ix_records_start_timestamp", "start_timestamp"),
        Index("ix_records_worker_id_start_timestamp", "worker_id", "start_timestamp"),
        # At most one open shift per worker. Enforced by the database, so two
        # devices racing a check-in cannot both win.
        Index(
            ACTIVE_SHIFT_INDEX,
            "worker_id",
            unique=True,
            sqlite_where=text("end_timestamp IS NULL"),
            postgresql_where=text("end_timestamp IS NULL"),
        ),
    )

    id: Optional[str] = Field(default=None, primary_key=True)
    worker_id: str
    schedule_id: Optional[str] = None

    # Denormalised copy of the site at check-in time
    site_label: str
    site_address: Optional[str] = None

    start_timestamp: datetime = Field(sa_type=DateTime(timezone=True))
    end_timestamp: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    date: str  # YYYY-MM-DD of start_timestamp

    checklist: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))

    start_evidence_photo_ref: Optional[str] = None
    end_evidence_photo_ref: Optional[str] = None

    start_lat: Optional[float] = None
    start_lng: Optional[float] = None
    end_lat: Optional[float] = None
    end_lng: Optional[float] = None

    is_paused: bool = False
    paused_at_timestamp: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    accumulated_pause_ms: int = 0

    free_notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.end_timestamp is None

    @property
    def safety_checklist(self) -> SafetyChecklist:
        return SafetyChecklist(**(self.checklist or {}))

    @property
    def start_location(self) -> Optional[GeoPoint]:
        if self.start_lat is None or self.start_lng is None:
            return None
        return GeoPoint(lat=self.start_lat, lng=self.start_lng)

    @property
    def end_location(self) -> Optional[GeoPoint]:
        if self.end_lat is None or self.end_lng is None:
            return None
        return GeoPoint(lat=self.end_lat, lng=self.end_lng)

    @property
    def start_utc(self) -> datetime:
        return ensure_utc(self.start_timestamp)

    @property
    def end_utc(self) -> Optional[datetime]:
        return ensure_utc(self.end_timestamp)

    @property
    def paused_at_utc(self) -> Optional[datetime]:
        return ensure_utc(self.paused_at_timestamp)

    @field_serializer("start_timestamp", "end_timestamp", "paused_at_timestamp")
    def serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        """Ensure timestamps are formatted as UTC with Z suffix"""
        return format_utc_datetime(dt)


# Fields an administrator may correct through the override path
ADMIN_EDITABLE_FIELDS = {
    "site_label",
    "site_address",
    "start_timestamp",
    "end_timestamp",
    "accumulated_pause_ms",
    "free_notes",
}
