"""Planning and recommendation engine boundaries."""

from .history import InMemoryPlanHistory, PlanHistoryStore
from .location import LocationSearch
from .needs import development_stage, evaluate_needs
from .planner import AutoPlanner
from .scorer import PriorityScorer, local_suggestions, merge_advisory_suggestions
from .strategy import STRATEGY_TABLE, Strategy

__all__ = [
    "AutoPlanner",
    "InMemoryPlanHistory",
    "LocationSearch",
    "PlanHistoryStore",
    "PriorityScorer",
    "STRATEGY_TABLE",
    "Strategy",
    "development_stage",
    "evaluate_needs",
    "local_suggestions",
    "merge_advisory_suggestions",
]
