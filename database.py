from fastapi import Request
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session
from typing import Generator, List
import logging

import models  # noqa: F401  registers the tables on SQLModel.metadata
from errors import StorageError

# Columns added after the first deployment; existing rows get NULL.
OPTIONAL_SUBMISSION_COLUMNS = [
    ("indexNumber", "TEXT"),
    ("kcseYear", "INTEGER"),
    ("birthCertNumber", "TEXT"),
    ("primaryIndexNumber", "TEXT"),
]


def make_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=False, connect_args=connect_args)


def create_db_and_tables(engine):
    try:
        SQLModel.metadata.create_all(engine)
    except SQLAlchemyError as e:
        logging.error(f"DB creation failed: {e}")
        raise StorageError("Database initialisation failed") from e
    logging.info(f"Connected to database {engine.url}")


def migrate_submission_columns(engine) -> List[str]:
    """Add any missing optional column to ``submissions``.

    Safe to run on every startup: columns already present are left alone and
    existing rows are never rewritten.
    """
    added = []
    try:
        existing = {column["name"] for column in inspect(engine).get_columns("submissions")}
        with engine.begin() as conn:
            for name, column_type in OPTIONAL_SUBMISSION_COLUMNS:
                if name in existing:
                    continue
                conn.execute(text(f'ALTER TABLE submissions ADD COLUMN "{name}" {column_type}'))
                added.append(name)
                logging.info(f'Column "{name}" added to submissions')
    except SQLAlchemyError as e:
        logging.error(f"Error migrating submissions schema: {e}")
        raise StorageError("Schema migration failed") from e
    return added


def get_session(request: Request) -> Generator[Session, None, None]:
    with Session(request.app.state.engine) as session:
        yield session
