"""Database configuration and session management.

This module configures the database engine used by the check-in jobs and
the HTTP routes. The default deployment is SQLite; any SQLAlchemy URL with
``UPDATE ... RETURNING`` support works.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while writing.
      The scheduler jobs write while the verify-status endpoint reads tokens,
      so readers must not be blocked by the sweeper's batch claim.

    - **Foreign Keys**: Disabled by default in SQLite. We enable it so a
      Checkin or VerificationToken can never point at a missing profile.

    - **check_same_thread=False**: Required for FastAPI. Sessions created in
      the dependency may be used from a worker thread.

Conditional writes (token claims, message status flips, check-in advances)
rely on the affected-row count of a single ``UPDATE``, which SQLite reports
reliably under the serialized write lock.
"""

from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings

is_sqlite = settings.database_url.startswith("sqlite")
connect_args = {"check_same_thread": False} if is_sqlite else {}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


if is_sqlite:

    @sa_event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Configure SQLite pragmas on each new connection.

        These settings are connection-level, not database-level, so they must
        be set each time a new connection is established from the pool.
        """
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_and_tables():
    """Create all database tables."""
    # Register every table on the metadata before creating
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
