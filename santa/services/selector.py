from __future__ import annotations

import random
from typing import List, Optional

from loguru import logger

from santa.services.exclusion import ExclusionRule
from santa.services.feasibility import stays_feasible
from santa.services.search import SearchBudgetExceeded, find_completion
from santa.services.state import AssignmentState


class CandidateSelector:
    """Random receiver choice restricted to picks that keep the draw completable.

    ``completion_budget`` bounds the backtracking used to rank lookahead-safe
    candidates; ``0`` keeps the plain one-step lookahead.
    """

    def __init__(
        self,
        rule: ExclusionRule,
        rng: Optional[random.Random] = None,
        completion_budget: int = 2000,
    ) -> None:
        self.rule = rule
        self.rng = rng or random.Random()
        self.completion_budget = completion_budget

    def basic_candidates(self, state: AssignmentState, giver: str) -> List[str]:
        return self.rule.allowed(giver, state.remaining_receivers)

    def safe_candidates(self, state: AssignmentState, giver: str) -> List[str]:
        return [
            receiver
            for receiver in self.basic_candidates(state, giver)
            if stays_feasible(state, self.rule, giver, receiver)
        ]

    def _completable(self, state: AssignmentState, giver: str, safe: List[str]) -> List[str]:
        if self.completion_budget <= 0:
            return safe
        completable = []
        for receiver in safe:
            try:
                completion = find_completion(
                    state.with_assignment(giver, receiver),
                    self.rule,
                    max_nodes=self.completion_budget,
                )
            except SearchBudgetExceeded:
                completable.append(receiver)
                continue
            if completion is not None:
                completable.append(receiver)
        if not completable:
            logger.bind(giver=giver, safe=safe).debug(
                "No safe receiver completes the draw; using one-step lookahead only"
            )
            return safe
        return completable

    def select_receiver(self, state: AssignmentState, giver: str) -> Optional[str]:
        basic = self.basic_candidates(state, giver)
        if not basic:
            return None
        safe = [receiver for receiver in basic if stays_feasible(state, self.rule, giver, receiver)]
        if not safe:
            return None
        return self.rng.choice(self._completable(state, giver, safe))
