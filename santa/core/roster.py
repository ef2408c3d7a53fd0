from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple

DEFAULT_PARTICIPANTS: Tuple[str, ...] = (
    "Rosa",
    "Alan",
    "Nhic",
    "Camila",
    "Chris",
    "Carrie",
    "Ethan",
)

DEFAULT_PRIOR_CYCLE: Dict[str, str] = {
    "Alan": "Carrie",
    "Carrie": "Chris",
    "Chris": "Alan",
    "Nhic": "Ethan",
    "Rosa": "Camila",
    "Camila": "Nhic",
    "Ethan": "Rosa",
}


@dataclass(frozen=True)
class Roster:
    participants: Tuple[str, ...]
    prior_cycle: Dict[str, str] = field(default_factory=dict)


def build_roster(
    participants: Sequence[str],
    prior_cycle: Optional[Mapping[str, str]] = None,
) -> Roster:
    names = tuple(str(name).strip() for name in participants)
    if not names:
        raise ValueError("The roster needs at least one participant.")
    if any(not name for name in names):
        raise ValueError("Participant names cannot be empty.")
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError("Duplicate participants in roster: " + ", ".join(duplicates))

    prior = {str(giver): str(receiver) for giver, receiver in (prior_cycle or {}).items()}
    unknown = sorted(giver for giver in prior if giver not in names)
    if unknown:
        raise ValueError("Prior-cycle entries for unknown participants: " + ", ".join(unknown))

    return Roster(participants=names, prior_cycle=prior)


def load_roster(path: Optional[str] = None) -> Roster:
    """Load the participant list and last cycle's map.

    Without a path the built-in family roster is used. The file format is
    ``{"participants": [...], "prior_cycle": {"giver": "receiver"}}``.
    """
    if not path:
        return build_roster(DEFAULT_PARTICIPANTS, DEFAULT_PRIOR_CYCLE)

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or not isinstance(raw.get("participants"), list):
        raise ValueError(f"Roster file {path} must contain a 'participants' list.")
    prior = raw.get("prior_cycle") or {}
    if not isinstance(prior, dict):
        raise ValueError(f"Roster file {path}: 'prior_cycle' must be an object.")
    return build_roster(raw["participants"], prior)
