"""Persistence layer (SQLAlchemy)."""

from infrastructure.persistence.database import Base, Database

__all__ = ["Base", "Database"]
