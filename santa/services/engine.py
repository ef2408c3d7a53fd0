from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from santa.services.exclusion import ExclusionRule
from santa.services.selector import CandidateSelector
from santa.services.state import AssignmentState, check_invariants

DEFAULT_MAX_ATTEMPTS = 50


class AssignmentFailure(str, enum.Enum):
    ALREADY_ASSIGNED = "already_assigned"
    UNKNOWN_PARTICIPANT = "unknown_participant"
    INVALID_PAIR = "invalid_pair"
    RECEIVER_TAKEN = "receiver_taken"
    NO_FEASIBLE_OPTION = "no_feasible_option"
    LOOKAHEAD_BLOCKED = "lookahead_blocked"
    RETRIES_EXHAUSTED = "retries_exhausted"


@dataclass(frozen=True)
class AssignmentOutcome:
    state: AssignmentState
    receiver: Optional[str] = None
    error: Optional[AssignmentFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AssignmentEngine:
    def __init__(
        self,
        rule: ExclusionRule,
        rng: Optional[random.Random] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        completion_budget: int = 2000,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.rule = rule
        self.max_attempts = max_attempts
        self.selector = CandidateSelector(rule, rng=rng, completion_budget=completion_budget)

    def _fail(self, state: AssignmentState, error: AssignmentFailure, giver: str) -> AssignmentOutcome:
        logger.bind(giver=giver, error=error.value).info("Assignment refused")
        return AssignmentOutcome(state=state, error=error)

    def _precheck(self, state: AssignmentState, giver: str) -> Optional[AssignmentFailure]:
        if giver in state.assignments:
            return AssignmentFailure.ALREADY_ASSIGNED
        if giver not in state.members:
            return AssignmentFailure.UNKNOWN_PARTICIPANT
        return None

    def _commit(self, state: AssignmentState, giver: str, receiver: str) -> Optional[AssignmentState]:
        if self.rule.is_invalid(giver, receiver) or receiver not in state.remaining_receivers:
            logger.bind(giver=giver, receiver=receiver).error(
                "Selector produced an illegal receiver; discarding draw"
            )
            return None
        new_state = state.with_assignment(giver, receiver)
        problems = check_invariants(new_state, self.rule)
        if problems:
            logger.bind(giver=giver, receiver=receiver, problems=problems).error(
                "Draw would break state invariants; discarding"
            )
            return None
        return new_state

    def request_assignment(self, state: AssignmentState, giver: str) -> AssignmentOutcome:
        """Draw a receiver for ``giver``; the input state is never modified."""
        failure = self._precheck(state, giver)
        if failure:
            return self._fail(state, failure, giver)

        for attempt in range(1, self.max_attempts + 1):
            receiver = self.selector.select_receiver(state, giver)
            if receiver is None:
                if self.selector.basic_candidates(state, giver):
                    return self._fail(state, AssignmentFailure.LOOKAHEAD_BLOCKED, giver)
                return self._fail(state, AssignmentFailure.NO_FEASIBLE_OPTION, giver)

            new_state = self._commit(state, giver, receiver)
            if new_state is None:
                continue

            logger.bind(giver=giver, attempt=attempt, remaining=len(new_state.remaining_receivers)).info(
                "Receiver drawn"
            )
            return AssignmentOutcome(state=new_state, receiver=receiver)

        logger.bind(giver=giver, attempts=self.max_attempts).error("Retry bound exhausted")
        return AssignmentOutcome(state=state, error=AssignmentFailure.RETRIES_EXHAUSTED)

    def declare_assignment(self, state: AssignmentState, giver: str, receiver: str) -> AssignmentOutcome:
        """Record a receiver the giver already knows.

        The lookahead is deliberately skipped: the pairing already exists
        outside the system, so any lost options surface on later requests.
        """
        failure = self._precheck(state, giver)
        if failure:
            return self._fail(state, failure, giver)
        if self.rule.is_invalid(giver, receiver):
            return self._fail(state, AssignmentFailure.INVALID_PAIR, giver)
        if receiver not in state.remaining_receivers:
            return self._fail(state, AssignmentFailure.RECEIVER_TAKEN, giver)

        new_state = state.with_assignment(giver, receiver)
        logger.bind(giver=giver, remaining=len(new_state.remaining_receivers)).info(
            "Receiver declared"
        )
        return AssignmentOutcome(state=new_state, receiver=receiver)
