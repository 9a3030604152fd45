from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Connects app to the record store (PostgreSQL in production, SQLite locally)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    The Wire / Link That Lets Us Pass Data from App -> db.

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def create_tables(engine: Engine) -> None:
    # Register every table with SQLModel metadata before creating
    import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Getter for this Wire, modified for FastAPI dependency injection
def get_session(request: Request):
    with Session(request.app.state.context.engine) as session:
        yield session
