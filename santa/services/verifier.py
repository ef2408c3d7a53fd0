from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from santa.services.exclusion import ExclusionRule
from santa.services.state import AssignmentState


@dataclass(frozen=True)
class VerificationReport:
    valid: bool
    issues: List[str] = field(default_factory=list)


def verify(state: AssignmentState, rule: ExclusionRule) -> VerificationReport:
    """Audit the raw giver -> receiver map, however it was produced.

    Works on partial, hand-written or corrupted state; nothing here relies on
    the remaining pool or on the engine having been used.
    """
    issues: List[str] = []
    members = list(state.members)
    member_set = set(members)
    assignments = state.assignments

    missing = [member for member in members if member not in assignments]
    if missing:
        issues.append("Missing assignments: " + ", ".join(missing))

    ordered_givers = [m for m in members if m in assignments] + sorted(
        giver for giver in assignments if giver not in member_set
    )

    for giver in ordered_givers:
        receiver = assignments[giver]
        if giver not in member_set:
            issues.append(f"Foreign giver: {giver} -> {receiver}")
        if receiver == giver:
            issues.append(f"Self-assignment: {giver} -> {receiver}")
        elif receiver == rule.prior_receiver(giver):
            issues.append(f"Prior-cycle repeat: {giver} -> {receiver}")
        if receiver not in member_set:
            issues.append(f"Foreign receiver: {giver} -> {receiver}")

    givers_by_receiver: Dict[str, List[str]] = {}
    for giver in ordered_givers:
        givers_by_receiver.setdefault(assignments[giver], []).append(giver)
    for receiver, givers in givers_by_receiver.items():
        if len(givers) > 1:
            issues.append(f"Duplicate receiver: {receiver} <- " + ", ".join(givers))

    return VerificationReport(valid=not issues, issues=issues)
