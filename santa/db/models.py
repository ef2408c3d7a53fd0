from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class AppStateRecord(Base):
    __tablename__ = "app_states"

    id = Column(String, primary_key=True)
    family_members = Column(JSON, nullable=False)
    available_receivers = Column(JSON, nullable=False)
    assignments = Column(JSON, nullable=False, default=dict)
    completed_assignments = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def to_payload(self) -> dict:
        return {
            "family_members": list(self.family_members or []),
            "available_receivers": list(self.available_receivers or []),
            "assignments": dict(self.assignments or {}),
            "completed_assignments": list(self.completed_assignments or []),
        }

    def __repr__(self) -> str:
        return (
            "<AppStateRecord(id={0}, version={1}, assigned={2})>"
        ).format(self.id, self.version, len(self.assignments or {}))


class AssignmentHistory(Base):
    __tablename__ = "assignment_history"

    id = Column(Integer, primary_key=True)
    cycle_id = Column(String, nullable=False, index=True)
    batch = Column(Integer, nullable=False)
    giver = Column(String, nullable=False)
    receiver = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
