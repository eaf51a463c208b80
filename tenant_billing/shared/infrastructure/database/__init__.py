"""
Async SQLAlchemy engine, declarative Base and session management.
"""

from .connection import Base, DatabaseConnectionManager
from .session import DatabaseSessionManager

__all__ = ["Base", "DatabaseConnectionManager", "DatabaseSessionManager"]
