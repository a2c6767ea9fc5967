"""Grouping data-classes — results and summaries of mother/child grouping."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field

from src.contracts.event import PQEvent

GROUP_CSV_COLUMNS = [
    "mother_event_id",
    "child_event_ids",
    "child_count",
    "grouping_type",
    "timestamp",
]


@dataclass(slots=True)
class GroupingResult:
    """One committed mother/child group."""

    mother_event_id: str
    child_event_ids: list[str]
    grouping_type: str  # automatic | manual
    timestamp: str  # ISO-8601, when the group was committed

    @property
    def event_count(self) -> int:
        return len(self.child_event_ids) + 1

    def to_csv_row(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(
            [
                self.mother_event_id,
                ";".join(self.child_event_ids),
                len(self.child_event_ids),
                self.grouping_type,
                self.timestamp,
            ]
        )
        return buf.getvalue().rstrip("\r\n")

    @staticmethod
    def csv_header() -> str:
        return ",".join(GROUP_CSV_COLUMNS)


@dataclass(slots=True)
class GroupingCheck:
    """Outcome of a grouping pre-check; ``reason`` is set only on failure."""

    can_group: bool
    reason: str | None = None


@dataclass(slots=True)
class GroupingCandidate:
    """Ungrouped events at one substation that could be grouped manually."""

    substation_id: str
    events: list[PQEvent] = field(default_factory=list)
    start_ts: str = ""
    end_ts: str = ""


@dataclass(slots=True)
class GroupingStatistics:
    total_groups: int = 0
    automatic_groups: int = 0
    manual_groups: int = 0
    total_grouped_events: int = 0
