import random

import pytest

from santa.services.engine import AssignmentEngine, AssignmentFailure
from santa.services.exclusion import ExclusionRule
from santa.services.selector import CandidateSelector
from santa.services.state import AssignmentState, check_invariants
from santa.services.verifier import verify

FAMILY = ["Rosa", "Alan", "Nhic", "Camila", "Chris", "Carrie", "Ethan"]
LAST_YEAR = {
    "Alan": "Carrie",
    "Carrie": "Chris",
    "Chris": "Alan",
    "Nhic": "Ethan",
    "Rosa": "Camila",
    "Camila": "Nhic",
    "Ethan": "Rosa",
}


def make_engine(prior=None, seed=0, **kwargs):
    return AssignmentEngine(ExclusionRule(prior or {}), rng=random.Random(seed), **kwargs)


def test_exclusion_rule_detects_self_and_prior_cycle():
    rule = ExclusionRule(LAST_YEAR)
    assert rule.is_invalid("Carrie", "Carrie")
    assert rule.is_invalid("Alan", "Carrie")
    assert rule.is_invalid("Chris", "Alan")
    assert not rule.is_invalid("Carrie", "Alan")
    assert not rule.is_invalid("Alan", "Rosa")


def test_exclusion_rule_handles_people_without_history():
    rule = ExclusionRule(LAST_YEAR)
    assert not rule.is_invalid("NewPerson", "Carrie")
    assert rule.is_invalid("NewPerson", "NewPerson")


@pytest.mark.parametrize("seed", range(10))
def test_three_people_without_history_form_a_single_cycle(seed):
    members = ["A", "B", "C"]
    order = members[:]
    random.Random(seed).shuffle(order)
    engine = make_engine(seed=seed)
    state = AssignmentState.initialize(members)

    for giver in order:
        outcome = engine.request_assignment(state, giver)
        assert outcome.ok, outcome.error
        state = outcome.state

    assignments = state.assignments
    assert all(giver != receiver for giver, receiver in assignments.items())
    assert assignments[assignments[assignments["A"]]] == "A"
    assert len({assignments["A"], assignments[assignments["A"]]}) == 2


def test_two_people_with_prior_pair_has_no_feasible_option():
    engine = make_engine(prior={"X": "Y"})
    state = AssignmentState.initialize(["X", "Y"])

    outcome = engine.request_assignment(state, "X")

    assert outcome.error == AssignmentFailure.NO_FEASIBLE_OPTION
    assert outcome.receiver is None
    assert outcome.state is state


@pytest.mark.parametrize("seed", range(50))
def test_seven_cycle_history_always_completes(seed):
    members = [f"P{i}" for i in range(7)]
    prior = {members[i]: members[(i + 1) % 7] for i in range(7)}
    engine = make_engine(prior=prior, seed=seed)
    rule = engine.rule
    order = members[:]
    random.Random(1000 + seed).shuffle(order)
    state = AssignmentState.initialize(members)

    for giver in order:
        outcome = engine.request_assignment(state, giver)
        assert outcome.error is None, (giver, outcome.error, state.assignments)
        state = outcome.state
        assert check_invariants(state, rule) == []

    report = verify(state, rule)
    assert report.valid
    assert report.issues == []


@pytest.mark.parametrize("seed", range(30))
def test_family_draw_never_strands_anyone(seed):
    engine = make_engine(prior=LAST_YEAR, seed=seed)
    order = FAMILY[:]
    random.Random(seed).shuffle(order)
    state = AssignmentState.initialize(FAMILY)

    for giver in order:
        outcome = engine.request_assignment(state, giver)
        assert outcome.ok
        state = outcome.state
        assert check_invariants(state, engine.rule) == []

    assert state.is_complete
    assert state.remaining_receivers == ()
    assert verify(state, engine.rule).valid


def test_declaration_that_strands_someone_surfaces_later():
    engine = make_engine(prior={"C": "A"})
    state = AssignmentState.initialize(["A", "B", "C"])

    declared = engine.declare_assignment(state, "A", "B")
    assert declared.ok
    state = declared.state

    stranded = engine.request_assignment(state, "C")
    assert stranded.error == AssignmentFailure.NO_FEASIBLE_OPTION

    blocked = engine.request_assignment(state, "B")
    assert blocked.error == AssignmentFailure.LOOKAHEAD_BLOCKED
    assert blocked.state is state

    report = verify(state, engine.rule)
    assert not report.valid
    assert report.issues == ["Missing assignments: B, C"]


def test_second_declaration_of_same_receiver_is_rejected():
    engine = make_engine()
    state = AssignmentState.initialize(["A", "B", "C"])

    first = engine.declare_assignment(state, "A", "C")
    assert first.ok

    second = engine.declare_assignment(first.state, "B", "C")
    assert second.error == AssignmentFailure.RECEIVER_TAKEN
    assert second.state is first.state
    assert first.state.assignments == {"A": "C"}


def test_declaration_rejects_forbidden_pairs():
    engine = make_engine(prior=LAST_YEAR)
    state = AssignmentState.initialize(FAMILY)

    assert engine.declare_assignment(state, "Alan", "Alan").error == AssignmentFailure.INVALID_PAIR
    assert engine.declare_assignment(state, "Alan", "Carrie").error == AssignmentFailure.INVALID_PAIR


def test_already_assigned_giver_is_rejected_on_both_paths():
    engine = make_engine()
    state = engine.declare_assignment(AssignmentState.initialize(["A", "B", "C"]), "A", "B").state

    assert engine.request_assignment(state, "A").error == AssignmentFailure.ALREADY_ASSIGNED
    assert engine.declare_assignment(state, "A", "C").error == AssignmentFailure.ALREADY_ASSIGNED


def test_unknown_giver_is_rejected():
    engine = make_engine()
    state = AssignmentState.initialize(["A", "B"])
    assert engine.request_assignment(state, "Zed").error == AssignmentFailure.UNKNOWN_PARTICIPANT
    assert engine.request_assignment(AssignmentState.initialize([]), "Zed").error == (
        AssignmentFailure.UNKNOWN_PARTICIPANT
    )


def test_single_participant_cannot_be_drawn():
    engine = make_engine()
    outcome = engine.request_assignment(AssignmentState.initialize(["Solo"]), "Solo")
    assert outcome.error == AssignmentFailure.NO_FEASIBLE_OPTION


def test_only_remaining_legal_receiver_is_drawn():
    engine = make_engine()
    state = engine.declare_assignment(AssignmentState.initialize(["P1", "P2", "P3"]), "P2", "P3").state

    outcome = engine.request_assignment(state, "P1")

    assert outcome.receiver == "P2"


def test_last_receiver_being_prior_cycle_is_reported():
    engine = make_engine(prior=LAST_YEAR)
    state = AssignmentState(
        members=tuple(FAMILY),
        remaining_receivers=("Alan",),
        assignments={
            "Alan": "Nhic",
            "Nhic": "Rosa",
            "Rosa": "Ethan",
            "Ethan": "Chris",
            "Camila": "Carrie",
            "Carrie": "Camila",
        },
    )

    outcome = engine.request_assignment(state, "Chris")

    assert outcome.receiver is None
    assert outcome.error == AssignmentFailure.NO_FEASIBLE_OPTION


def test_lookahead_refuses_pick_that_strands_someone():
    engine = make_engine(prior=LAST_YEAR)
    state = AssignmentState.initialize(FAMILY)
    for giver, receiver in [
        ("Nhic", "Rosa"),
        ("Rosa", "Ethan"),
        ("Ethan", "Chris"),
        ("Camila", "Carrie"),
        ("Carrie", "Camila"),
    ]:
        state = engine.declare_assignment(state, giver, receiver).state

    outcome = engine.request_assignment(state, "Alan")

    assert outcome.error == AssignmentFailure.LOOKAHEAD_BLOCKED


def test_request_does_not_mutate_input_state():
    engine = make_engine(seed=3)
    state = AssignmentState.initialize(["A", "B", "C", "D"])

    outcome = engine.request_assignment(state, "A")

    assert outcome.ok
    assert state.assignments == {}
    assert state.remaining_receivers == ("A", "B", "C", "D")
    assert state.history == ()
    assert outcome.state.history == (("A", outcome.receiver),)


class _IllegalSelector(CandidateSelector):
    def select_receiver(self, state, giver):
        return giver


def test_illegal_selection_is_retried_until_bound():
    engine = make_engine(max_attempts=4)
    engine.selector = _IllegalSelector(engine.rule)
    state = AssignmentState.initialize(["A", "B", "C"])

    outcome = engine.request_assignment(state, "A")

    assert outcome.error == AssignmentFailure.RETRIES_EXHAUSTED
    assert outcome.state is state


def test_declarations_keep_structural_invariants():
    rng = random.Random(11)
    for round_number in range(20):
        engine = make_engine(prior=LAST_YEAR, seed=round_number)
        state = AssignmentState.initialize(FAMILY)
        for giver in rng.sample(FAMILY, len(FAMILY)):
            if rng.random() < 0.5 and state.remaining_receivers:
                outcome = engine.declare_assignment(state, giver, rng.choice(state.remaining_receivers))
                if outcome.ok:
                    state = outcome.state
                    assert check_invariants(state, engine.rule, include_feasibility=False) == []
                continue
            outcome = engine.request_assignment(state, giver)
            if outcome.ok:
                state = outcome.state
                assert check_invariants(state, engine.rule) == []
