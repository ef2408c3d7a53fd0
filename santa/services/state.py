from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from santa.services.exclusion import ExclusionRule


class AssignmentError(RuntimeError):
    pass


@dataclass(frozen=True)
class AssignmentState:
    """Partial draw for one exchange cycle.

    Instances are never mutated; ``with_assignment`` returns the next state.
    ``history`` is the commit log and is only used for audit and replay.
    ``assignments`` is a read-only mapping and is left out of the hash,
    which ``history`` already covers.
    """

    members: Tuple[str, ...]
    remaining_receivers: Tuple[str, ...]
    assignments: Mapping[str, str] = field(default_factory=dict, hash=False)
    history: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "assignments", MappingProxyType(dict(self.assignments)))

    @classmethod
    def initialize(cls, participants: Iterable[str]) -> "AssignmentState":
        members = tuple(participants)
        if len(set(members)) != len(members):
            duplicates = sorted(name for name, count in Counter(members).items() if count > 1)
            raise AssignmentError("Duplicate participants: " + ", ".join(duplicates))
        return cls(members=members, remaining_receivers=members)

    @property
    def is_complete(self) -> bool:
        return all(member in self.assignments for member in self.members)

    def receiver_for(self, giver: str) -> Optional[str]:
        return self.assignments.get(giver)

    def unassigned(self) -> List[str]:
        return [member for member in self.members if member not in self.assignments]

    def with_assignment(self, giver: str, receiver: str) -> "AssignmentState":
        if giver in self.assignments:
            raise AssignmentError(f"{giver} already has a receiver.")
        if receiver not in self.remaining_receivers:
            raise AssignmentError(f"{receiver} is not in the remaining pool.")
        assignments = dict(self.assignments)
        assignments[giver] = receiver
        return AssignmentState(
            members=self.members,
            remaining_receivers=tuple(r for r in self.remaining_receivers if r != receiver),
            assignments=assignments,
            history=self.history + ((giver, receiver),),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "family_members": list(self.members),
            "available_receivers": list(self.remaining_receivers),
            "assignments": dict(self.assignments),
            "completed_assignments": [
                {"giver": giver, "receiver": receiver} for giver, receiver in self.history
            ],
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "AssignmentState":
        try:
            members = tuple(record["family_members"])
            remaining = tuple(record["available_receivers"])
            assignments = dict(record.get("assignments") or {})
            history = tuple(
                (entry["giver"], entry["receiver"])
                for entry in record.get("completed_assignments") or []
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise AssignmentError(f"Malformed assignment record: {exc!r}") from exc
        return cls(
            members=members,
            remaining_receivers=remaining,
            assignments=assignments,
            history=history,
        )


def lookup(state: AssignmentState, person: str) -> Optional[str]:
    return state.assignments.get(person)


def check_invariants(
    state: AssignmentState,
    rule: ExclusionRule,
    include_feasibility: bool = True,
) -> List[str]:
    """Return one message per broken state invariant; empty when consistent.

    Declared pairings may leave someone without options, so callers auditing
    declared state can skip the feasibility check.
    """
    problems: List[str] = []
    member_set = set(state.members)
    used = list(state.assignments.values())
    used_set = set(used)

    expected_remaining = [m for m in state.members if m not in used_set]
    if sorted(state.remaining_receivers) != sorted(expected_remaining):
        problems.append(
            "Remaining pool out of sync: expected "
            + ", ".join(expected_remaining)
            + "; found "
            + ", ".join(state.remaining_receivers)
        )

    for giver, receiver in state.assignments.items():
        if giver not in member_set:
            problems.append(f"Unknown giver {giver}")
        if receiver not in member_set:
            problems.append(f"Unknown receiver {receiver} for {giver}")
        if rule.is_invalid(giver, receiver):
            problems.append(f"Forbidden pair {giver} -> {receiver}")

    for receiver, count in Counter(used).items():
        if count > 1:
            problems.append(f"Receiver {receiver} assigned {count} times")

    if not include_feasibility:
        return problems
    for member in state.unassigned():
        if not rule.allowed(member, state.remaining_receivers):
            problems.append(f"{member} has no legal receiver left")

    return problems
