"""Persistence layer: database setup, ORM schema and repositories."""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import AlertRepository, JobRepository, UserRepository

__all__ = [
    "init_database",
    "get_session",
    "get_engine",
    "close_database",
    "AlertRepository",
    "JobRepository",
    "UserRepository",
    "PersistenceError",
    "DatabaseConnectionError",
    "DataIntegrityError",
    "RecordNotFoundError",
]
