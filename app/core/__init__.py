from .config import settings
from .database import ExpectedReturn, db_request, get_engine, dispose_engine

__all__ = ["settings", "ExpectedReturn", "db_request", "get_engine", "dispose_engine"]
