"""SQLite engine and request-scoped sessions.

Every claim, RSVP and dish link is a single short write transaction, so
concurrent guests queue on SQLite's write lock instead of failing; the
busy timeout below bounds that wait.
"""

from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine

from potluck.core.config import settings

# Sessions may move between FastAPI worker threads
connect_args = {"check_same_thread": False, "timeout": settings.db_busy_timeout}

engine = create_engine(settings.database_url, connect_args=connect_args, echo=settings.debug)


@sa_event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Pragmas are per connection, so every pooled connection gets them."""
    cursor = dbapi_connection.cursor()
    # Meal pages stay readable while a claim or RSVP is being written
    cursor.execute("PRAGMA journal_mode=WAL")
    # Plan items, participants and dish courses must point at a live meal
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_and_tables():
    import potluck.models  # noqa: F401  registers the table classes

    SQLModel.metadata.create_all(engine)


def get_session():
    """Yield one session per request."""
    with Session(engine) as session:
        yield session
