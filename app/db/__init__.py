"""Database module for the asset tag engine."""

from app.db.base import Base
from app.db.session import get_db, engine, AsyncSessionLocal

__all__ = ["Base", "get_db", "engine", "AsyncSessionLocal"]
