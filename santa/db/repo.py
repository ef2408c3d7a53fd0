from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from santa.db.models import AppStateRecord, AssignmentHistory


def get_app_state(session, cycle_id: str) -> Optional[AppStateRecord]:
    return session.scalar(
        select(AppStateRecord)
        .where(AppStateRecord.id == cycle_id)
        .execution_options(populate_existing=True)
    )


def create_app_state(session, cycle_id: str, payload: Dict) -> bool:
    """Insert the first record of a cycle; False if another writer got there first.

    A conflicting insert rolls back the session's current transaction.
    """
    session.add(AppStateRecord(id=cycle_id, version=1, **payload))
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        return False
    return True


def compare_and_set_app_state(session, cycle_id: str, payload: Dict, expected_version: int) -> bool:
    result = session.execute(
        update(AppStateRecord)
        .where(AppStateRecord.id == cycle_id, AppStateRecord.version == expected_version)
        .values(version=expected_version + 1, **payload)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


def delete_app_state(session, cycle_id: str) -> int:
    result = session.execute(delete(AppStateRecord).where(AppStateRecord.id == cycle_id))
    return result.rowcount or 0


def archive_assignments(session, cycle_id: str, assignments: Dict[str, str]) -> int:
    if not assignments:
        return 0
    last_batch = session.scalar(
        select(func.max(AssignmentHistory.batch)).where(AssignmentHistory.cycle_id == cycle_id)
    )
    batch = (last_batch or 0) + 1
    session.add_all(
        [
            AssignmentHistory(cycle_id=cycle_id, batch=batch, giver=giver, receiver=receiver)
            for giver, receiver in assignments.items()
        ]
    )
    session.flush()
    return len(assignments)


def get_latest_assignment_history(session, cycle_id: str) -> List[AssignmentHistory]:
    last_batch = session.scalar(
        select(func.max(AssignmentHistory.batch)).where(AssignmentHistory.cycle_id == cycle_id)
    )
    if last_batch is None:
        return []
    return list(
        session.scalars(
            select(AssignmentHistory)
            .where(AssignmentHistory.cycle_id == cycle_id, AssignmentHistory.batch == last_batch)
            .order_by(AssignmentHistory.id)
        ).all()
    )
