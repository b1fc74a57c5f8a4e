from page_analyzer.db.base import Base
from page_analyzer.db.config import DBSettings, get_db_settings
from page_analyzer.db.engine import make_engine

__all__ = [
    "Base",
    "DBSettings",
    "get_db_settings",
    "make_engine",
]
