"""Services package - business logic layer."""
from .decision import DecisionService
from .evaluators import FilterEvaluator, default_evaluators
from .filter_engine import FilterEngine
from .notifications import LoggingNotificationHook
from .parameters import ParameterSuggester
from .results import RandomSelector, build_decision_result
from .status import build_status
from .turns import TurnCoordinator

__all__ = [
    "DecisionService",
    "FilterEngine",
    "FilterEvaluator",
    "LoggingNotificationHook",
    "ParameterSuggester",
    "RandomSelector",
    "TurnCoordinator",
    "build_decision_result",
    "build_status",
    "default_evaluators",
]
