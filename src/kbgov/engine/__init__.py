"""Policy Rule Engine and the shared state it commits to."""

from kbgov.engine.engine import PolicyRuleEngine, ProposedChange, RouteRegistration, Verdict
from kbgov.engine.state import GovernanceState

__all__ = [
    "GovernanceState",
    "PolicyRuleEngine",
    "ProposedChange",
    "RouteRegistration",
    "Verdict",
]
