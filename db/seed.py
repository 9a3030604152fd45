# Insert the default sites into the office registry
from sqlmodel import Session, select

from core.config import Settings
from db.session import create_db_engine, create_tables
from models.office import Office

DEFAULT_OFFICES = [
    {
        "name": "Tech Hub",
        "eircode": "D02 X285",
        "address": "1 Grand Canal Quay, Dublin 2",
        "default_schedule": [
            {"day_of_week": day, "hours": 4.0, "is_active": True} for day in range(1, 6)
        ],
    },
    {
        "name": "Head Office",
        "eircode": "D04 F6X2",
        "address": "12 Baggot Street Upper, Dublin 4",
        "default_schedule": [],
    },
]


def seed_offices(session: Session) -> int:
    added = 0
    for office_data in DEFAULT_OFFICES:
        existing = session.exec(select(Office).where(Office.name == office_data["name"])).first()
        if existing:
            print(f"{office_data['name']} already exists")
            continue
        session.add(Office(**office_data))
        print(f"Added {office_data['name']}")
        added += 1
    session.commit()
    return added


if __name__ == "__main__":
    engine = create_db_engine(Settings.from_env().database_url)
    create_tables(engine)
    with Session(engine) as session:
        seed_offices(session)
