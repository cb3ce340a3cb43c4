"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for job storage. The job parameters are kept
as a JSON document in a single column.
"""

from pathlib import Path
from sqlalchemy import create_engine, Column, String, DateTime, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class JobRow(Base):
    """Scrape job table."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)  # pending, working, ok, failed
    date = Column(DateTime, nullable=False, index=True)
    data = Column(Text, nullable=False)  # JSON encoded JobData


def get_engine(db_path: Path, lock_timeout: float = 5.0) -> Engine:
    """
    Create an engine for the SQLite file at ``db_path``.

    Args:
        db_path: Path to SQLite database file
        lock_timeout: Seconds sqlite3 itself waits on a lock before
            reporting "database is locked"
    """
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"timeout": lock_timeout, "check_same_thread": False},
    )


def init_database(db_path: Path, lock_timeout: float = 5.0) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        The engine bound to the database
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path, lock_timeout)
    Base.metadata.create_all(engine)
    return engine

