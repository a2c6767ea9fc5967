"""Detection data-classes — context in, explainable verdict out."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.contracts.event import PQEvent

DETECTION_CSV_COLUMNS = [
    "event_id",
    "event_type",
    "confidence",
    "is_false_positive",
    "recommended_action",
    "triggered_rules",
    "reasons",
]


@dataclass(slots=True)
class MaintenanceWindow:
    """Scheduled maintenance interval; bounds are inclusive."""

    start: str  # ISO-8601
    end: str  # ISO-8601
    substation: str | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MaintenanceWindow:
        return cls(start=str(d["start"]), end=str(d["end"]), substation=d.get("substation"))


@dataclass(slots=True)
class DetectionContext:
    """Everything a heuristic may look at besides the event itself."""

    recent_events: list[PQEvent] = field(default_factory=list)
    historical_data: list[PQEvent] = field(default_factory=list)
    maintenance_windows: list[MaintenanceWindow] = field(default_factory=list)
    weather_data: list[dict[str, str]] | None = None
    system_status: str = "normal"  # normal | maintenance | emergency


@dataclass(slots=True)
class HeuristicScore:
    """Score of a single heuristic: 0.0 (genuine) .. 1.0 (certainly false)."""

    score: float = 0.0
    reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DetectionResult:
    is_false_positive: bool
    confidence: float  # 0..100
    reasons: list[str]
    triggered_rules: list[str]
    recommended_action: str  # ignore | review | flag | auto-remove
    scores: dict[str, float] = field(default_factory=dict)

    def to_row(self, event: PQEvent) -> dict[str, Any]:
        """Flat row for tabular reports."""
        return {
            "event_id": event.id,
            "event_type": event.event_type,
            "confidence": round(self.confidence, 2),
            "is_false_positive": self.is_false_positive,
            "recommended_action": self.recommended_action,
            "triggered_rules": ";".join(self.triggered_rules),
            "reasons": " | ".join(self.reasons),
        }
