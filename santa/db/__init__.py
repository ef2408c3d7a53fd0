from santa.db.models import AppStateRecord, AssignmentHistory, Base
from santa.db.session import SessionLocal, get_session, init_engine

__all__ = [
    "AppStateRecord",
    "AssignmentHistory",
    "Base",
    "SessionLocal",
    "get_session",
    "init_engine",
]
