from __future__ import annotations

from typing import Collection, Iterable, List

from santa.services.exclusion import ExclusionRule
from santa.services.state import AssignmentState


def _stranded(
    members: Iterable[str],
    assigned: Collection[str],
    remaining: Collection[str],
    rule: ExclusionRule,
) -> List[str]:
    stranded = []
    for member in members:
        if member in assigned:
            continue
        if not any(not rule.is_invalid(member, receiver) for receiver in remaining):
            stranded.append(member)
    return stranded


def stranded_members(state: AssignmentState, rule: ExclusionRule) -> List[str]:
    """Unassigned members with no legal receiver in the remaining pool."""
    return _stranded(state.members, state.assignments, state.remaining_receivers, rule)


def stays_feasible(
    state: AssignmentState,
    rule: ExclusionRule,
    giver: str,
    candidate: str,
) -> bool:
    """One-step lookahead: would ``giver -> candidate`` leave anyone without options?

    Each member forbids at most one receiver besides themselves, so counting
    options per member is enough to spot a stranded member. It does not prove
    the rest of the draw can be completed.
    """
    remaining = [receiver for receiver in state.remaining_receivers if receiver != candidate]
    assigned = set(state.assignments) | {giver}
    return not _stranded(state.members, assigned, remaining, rule)
