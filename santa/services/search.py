from __future__ import annotations

from typing import Dict, List, Optional, Set

from santa.services.exclusion import ExclusionRule
from santa.services.state import AssignmentError, AssignmentState


class SearchBudgetExceeded(AssignmentError):
    pass


def find_completion(
    state: AssignmentState,
    rule: ExclusionRule,
    max_nodes: int = 2000,
) -> Optional[Dict[str, str]]:
    """Find receivers for every unassigned member, or ``None`` if impossible.

    Backtracks over the most constrained giver first and gives up with
    ``SearchBudgetExceeded`` after ``max_nodes`` tentative assignments.
    """
    givers = state.unassigned()
    allowed = {giver: set(rule.allowed(giver, state.remaining_receivers)) for giver in givers}
    if any(not receivers for receivers in allowed.values()):
        return None

    nodes = 0

    def backtrack(assignments: Dict[str, str], remaining: Set[str]) -> bool:
        nonlocal nodes
        if len(assignments) == len(givers):
            return True

        unassigned = [giver for giver in givers if giver not in assignments]
        giver = min(unassigned, key=lambda g: len(allowed[g] & remaining))
        choices: List[str] = sorted(allowed[giver] & remaining)
        for receiver in choices:
            nodes += 1
            if nodes > max_nodes:
                raise SearchBudgetExceeded(f"Completion search exceeded {max_nodes} nodes.")
            assignments[giver] = receiver
            remaining.remove(receiver)
            if backtrack(assignments, remaining):
                return True
            remaining.add(receiver)
            assignments.pop(giver, None)
        return False

    completion: Dict[str, str] = {}
    if backtrack(completion, set(state.remaining_receivers)):
        return completion
    return None
