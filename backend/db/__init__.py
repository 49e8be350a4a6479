from .session import get_db, engine, SessionLocal, Base
from . import models  # noqa: F401

__all__ = ["get_db", "engine", "SessionLocal", "Base", "models"]
