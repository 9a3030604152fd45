"""
Make sure the record store has every table and index the API relies on.

Safe to run repeatedly: existing indexes are left alone. The partial unique
index ``uq_records_active_worker`` is what stops a worker from holding two
open shifts, so older databases created before it existed must run this.
"""

import logging

from sqlalchemy import inspect

from core.config import Settings
from db.session import create_db_engine, create_tables
from models.shift_record import ShiftRecord

logger = logging.getLogger(__name__)


def ensure_indexes(engine) -> list:
    create_tables(engine)

    existing = {index["name"] for index in inspect(engine).get_indexes(ShiftRecord.__tablename__)}
    created = []
    for index in ShiftRecord.__table__.indexes:
        if index.name in existing:
            logger.info(f"Index {index.name} already present")
            continue
        logger.info(f"Creating index {index.name}")
        index.create(bind=engine)
        created.append(index.name)
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    engine = create_db_engine(Settings.from_env().database_url)
    created = ensure_indexes(engine)
    logger.info(f"Indexes created: {created or 'none'}")
