from santa.services.engine import AssignmentEngine, AssignmentFailure, AssignmentOutcome
from santa.services.exclusion import ExclusionRule
from santa.services.state import AssignmentError, AssignmentState, lookup
from santa.services.verifier import VerificationReport, verify

__all__ = [
    "AssignmentEngine",
    "AssignmentError",
    "AssignmentFailure",
    "AssignmentOutcome",
    "AssignmentState",
    "ExclusionRule",
    "VerificationReport",
    "lookup",
    "verify",
]
