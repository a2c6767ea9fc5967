"""Event Contract — canonical data structures shared by all modules."""

from src.contracts.detection import (
    DetectionContext,
    DetectionResult,
    HeuristicScore,
    MaintenanceWindow,
)
from src.contracts.enums import (
    GROUPABLE_TYPES,
    EventType,
    GroupingType,
    RecommendedAction,
    Severity,
    SystemStatus,
)
from src.contracts.event import PQEvent
from src.contracts.grouping import (
    GroupingCandidate,
    GroupingCheck,
    GroupingResult,
    GroupingStatistics,
)
from src.contracts.rule import (
    AnnotatedEvent,
    FalseEventRule,
    RuleActions,
    RuleConditions,
    RuleStat,
)

__all__ = [
    "GROUPABLE_TYPES",
    "AnnotatedEvent",
    "DetectionContext",
    "DetectionResult",
    "EventType",
    "FalseEventRule",
    "GroupingCandidate",
    "GroupingCheck",
    "GroupingResult",
    "GroupingStatistics",
    "GroupingType",
    "HeuristicScore",
    "MaintenanceWindow",
    "PQEvent",
    "RecommendedAction",
    "RuleActions",
    "RuleConditions",
    "RuleStat",
    "Severity",
    "SystemStatus",
]
