from cowork_booking.db.base import Base, TimestampMixin
from cowork_booking.db.session import get_db, get_sessionmaker, dispose_engine

__all__ = ["Base", "TimestampMixin", "get_db", "get_sessionmaker", "dispose_engine"]
