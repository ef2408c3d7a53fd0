from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

REASON_SELF = "self"
REASON_PRIOR_CYCLE = "prior_cycle"


class ExclusionRule:
    """Forbidden (giver, receiver) pairs: yourself and last cycle's receiver."""

    def __init__(self, prior_cycle: Optional[Mapping[str, str]] = None) -> None:
        self.prior_cycle: Dict[str, str] = dict(prior_cycle or {})

    def replace_prior_cycle(self, prior_cycle: Mapping[str, str]) -> None:
        self.prior_cycle = dict(prior_cycle)

    def prior_receiver(self, giver: str) -> Optional[str]:
        return self.prior_cycle.get(giver)

    def describe(self, giver: str, receiver: str) -> Optional[str]:
        if receiver == giver:
            return REASON_SELF
        if receiver == self.prior_cycle.get(giver):
            return REASON_PRIOR_CYCLE
        return None

    def is_invalid(self, giver: str, receiver: str) -> bool:
        return self.describe(giver, receiver) is not None

    def allowed(self, giver: str, pool: Iterable[str]) -> List[str]:
        return [receiver for receiver in pool if not self.is_invalid(giver, receiver)]

    def __repr__(self) -> str:
        return f"<ExclusionRule(prior_cycle={len(self.prior_cycle)} pairs)>"
