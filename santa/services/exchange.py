from __future__ import annotations

import html
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from santa.core.config import Settings
from santa.core.roster import Roster
from santa.db import repo
from santa.services.cache import LocalStateCache
from santa.services.engine import AssignmentEngine, AssignmentFailure, AssignmentOutcome
from santa.services.exclusion import REASON_SELF, ExclusionRule
from santa.services.state import AssignmentError, AssignmentState
from santa.services.verifier import VerificationReport
from santa.services.verifier import verify as verify_state


class StaleStateError(AssignmentError):
    pass


@dataclass(frozen=True)
class Exchange:
    cycle_id: str
    participants: Tuple[str, ...]
    engine: AssignmentEngine
    cache: Optional[LocalStateCache] = None
    max_write_attempts: int = 3

    @property
    def rule(self) -> ExclusionRule:
        return self.engine.rule


@dataclass(frozen=True)
class StoredState:
    state: AssignmentState
    # 0 means the cycle has no stored record yet.
    version: int
    from_cache: bool = False


@dataclass(frozen=True)
class Progress:
    total: int
    assigned: List[str] = field(default_factory=list)
    unassigned: List[str] = field(default_factory=list)


def build_prior_cycle_map(session, cycle_id: str) -> Dict[str, str]:
    history = repo.get_latest_assignment_history(session, cycle_id)
    return {item.giver: item.receiver for item in history}


def build_exchange(
    session,
    settings: Settings,
    roster: Roster,
    rng: Optional[random.Random] = None,
) -> Exchange:
    prior_cycle = build_prior_cycle_map(session, settings.cycle_id)
    source = "history"
    if not prior_cycle:
        prior_cycle = dict(roster.prior_cycle)
        source = "roster"
    logger.bind(cycle_id=settings.cycle_id, source=source, pairs=len(prior_cycle)).info(
        "Prior-cycle map loaded"
    )

    if rng is None:
        rng = random.Random(settings.draw_seed)
    engine = AssignmentEngine(
        ExclusionRule(prior_cycle),
        rng=rng,
        max_attempts=settings.max_attempts,
    )
    cache = LocalStateCache(settings.cache_path) if settings.cache_path else None
    return Exchange(
        cycle_id=settings.cycle_id,
        participants=roster.participants,
        engine=engine,
        cache=cache,
    )


def _check_drift(exchange: Exchange, state: AssignmentState) -> None:
    if tuple(state.members) != tuple(exchange.participants):
        logger.bind(cycle_id=exchange.cycle_id, stored=list(state.members)).warning(
            "Stored members differ from the roster; keeping the stored members"
        )


def load_state(session, exchange: Exchange) -> StoredState:
    try:
        record = repo.get_app_state(session, exchange.cycle_id)
    except SQLAlchemyError as exc:
        if exchange.cache is None:
            raise
        session.rollback()
        logger.bind(cycle_id=exchange.cycle_id).warning(
            "Database unavailable, reading local cache: {error}", error=str(exc)
        )
        cached = exchange.cache.load()
        if cached is None:
            return StoredState(AssignmentState.initialize(exchange.participants), 0, from_cache=True)
        state = AssignmentState.from_record(cached)
        _check_drift(exchange, state)
        return StoredState(state, 0, from_cache=True)

    if record is None:
        return StoredState(AssignmentState.initialize(exchange.participants), 0)

    state = AssignmentState.from_record(record.to_payload())
    _check_drift(exchange, state)
    return StoredState(state, record.version)


def _store(session, exchange: Exchange, stored: StoredState, state: AssignmentState) -> bool:
    payload = state.to_record()
    if stored.version == 0:
        return repo.create_app_state(session, exchange.cycle_id, payload)
    return repo.compare_and_set_app_state(session, exchange.cycle_id, payload, stored.version)


def _apply(
    session,
    exchange: Exchange,
    step: Callable[[AssignmentState], AssignmentOutcome],
) -> AssignmentOutcome:
    """Load, compute and write back with a version check, retrying stale writes."""
    for attempt in range(1, exchange.max_write_attempts + 1):
        stored = load_state(session, exchange)
        outcome = step(stored.state)
        if not outcome.ok:
            return outcome

        if stored.from_cache:
            exchange.cache.save(outcome.state.to_record())
            logger.bind(cycle_id=exchange.cycle_id).warning(
                "Draw saved to the local cache only"
            )
            return outcome

        try:
            saved = _store(session, exchange, stored, outcome.state)
        except SQLAlchemyError as exc:
            if exchange.cache is None:
                raise
            session.rollback()
            exchange.cache.save(outcome.state.to_record())
            logger.bind(cycle_id=exchange.cycle_id).warning(
                "Database write failed, draw kept in local cache: {error}", error=str(exc)
            )
            return outcome

        if saved:
            if exchange.cache is not None:
                exchange.cache.save(outcome.state.to_record())
            return outcome

        logger.bind(cycle_id=exchange.cycle_id, attempt=attempt, version=stored.version).warning(
            "Draw record changed underneath us; retrying"
        )

    raise StaleStateError(
        f"Could not save the draw for {exchange.cycle_id} after "
        f"{exchange.max_write_attempts} attempts."
    )


def request_assignment(session, exchange: Exchange, giver: str) -> AssignmentOutcome:
    return _apply(session, exchange, lambda state: exchange.engine.request_assignment(state, giver))


def declare_assignment(session, exchange: Exchange, giver: str, receiver: str) -> AssignmentOutcome:
    return _apply(
        session,
        exchange,
        lambda state: exchange.engine.declare_assignment(state, giver, receiver),
    )


def lookup(session, exchange: Exchange, person: str) -> Optional[str]:
    return load_state(session, exchange).state.receiver_for(person)


def verify(session, exchange: Exchange) -> VerificationReport:
    state = load_state(session, exchange).state
    report = verify_state(state, exchange.rule)
    logger.bind(cycle_id=exchange.cycle_id, valid=report.valid, issues=len(report.issues)).info(
        "Draw verified"
    )
    return report


def progress(session, exchange: Exchange) -> Progress:
    state = load_state(session, exchange).state
    assigned = [member for member in state.members if member in state.assignments]
    return Progress(total=len(state.members), assigned=assigned, unassigned=state.unassigned())


def reset_cycle(session, exchange: Exchange) -> int:
    """Start the cycle over.

    Only a complete draw is archived and becomes the next cycle's exclusions.
    A partial or blocked draw is discarded and the current exclusions stay.
    """
    record = repo.get_app_state(session, exchange.cycle_id)
    archived = 0
    if record is not None:
        state = AssignmentState.from_record(record.to_payload())
        if state.is_complete:
            assignments = dict(state.assignments)
            archived = repo.archive_assignments(session, exchange.cycle_id, assignments)
            exchange.rule.replace_prior_cycle(assignments)
        else:
            logger.bind(cycle_id=exchange.cycle_id, assigned=len(state.assignments)).info(
                "Discarding an unfinished draw"
            )
        repo.delete_app_state(session, exchange.cycle_id)
    if exchange.cache is not None:
        exchange.cache.clear()
    logger.bind(cycle_id=exchange.cycle_id, archived=archived).info("Draw reset")
    return archived


def format_failure(
    outcome: AssignmentOutcome,
    giver: str,
    receiver: Optional[str] = None,
    rule: Optional[ExclusionRule] = None,
) -> str:
    giver_label = html.escape(giver)
    receiver_label = html.escape(receiver or "")
    error = outcome.error
    if error == AssignmentFailure.ALREADY_ASSIGNED:
        return f"{giver_label} already has a secret santa assignment!"
    if error == AssignmentFailure.UNKNOWN_PARTICIPANT:
        return f'"{giver_label}" is not in the family list.'
    if error == AssignmentFailure.INVALID_PAIR:
        if receiver is None or rule is None or rule.describe(giver, receiver) == REASON_SELF:
            return "You cannot be your own secret santa!"
        return f"You cannot have {receiver_label} again - you had them last year!"
    if error == AssignmentFailure.RECEIVER_TAKEN:
        return f"{receiver_label} is already assigned to someone else. Please choose someone else."
    if error == AssignmentFailure.NO_FEASIBLE_OPTION:
        return (
            f"Nobody left in the pool can be drawn for {giver_label}: "
            "the only people remaining are yourself or last year's recipient."
        )
    if error == AssignmentFailure.LOOKAHEAD_BLOCKED:
        return (
            f"Every remaining match for {giver_label} would leave someone else "
            "without a valid recipient. Ask the organiser to reset the draw."
        )
    if error == AssignmentFailure.RETRIES_EXHAUSTED:
        return "The draw could not settle on a valid recipient. Please try again."
    return "Something went wrong. Please try again later."
