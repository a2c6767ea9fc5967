"""Shared fixtures for the PQ event correlation and false-event tests."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest

from src.contracts.detection import DetectionContext
from src.contracts.event import PQEvent
from src.contracts.rule import FalseEventRule, RuleActions, RuleConditions
from src.store.memory import InMemoryEventStore

BASE_TS = "2026-02-26T10:00:00Z"  # Thursday

# ── Helper: create PQEvent with sensible defaults ───────────────────────
# The defaults describe an unremarkable voltage dip: every heuristic
# scores it 0 on a weekday with an empty context.


def make_event(
    *,
    id: str = "EV-001",
    event_type: str = "voltage_dip",
    timestamp: str = BASE_TS,
    substation_id: str | None = "SUB-01",
    duration_ms: float | None = 1000.0,
    magnitude: float | None = 30.0,
    remaining_voltage: float | None = 70.0,
    waveform_data: dict[str, Any] | None = None,
    validated_by_adms: bool = False,
    is_mother_event: bool = False,
    is_child_event: bool = False,
    parent_event_id: str | None = None,
    grouping_type: str | None = None,
    grouped_at: str | None = None,
    is_false_positive: bool = False,
    remarks: str = "",
) -> PQEvent:
    return PQEvent(
        id=id,
        event_type=event_type,
        timestamp=timestamp,
        substation_id=substation_id,
        duration_ms=duration_ms,
        magnitude=magnitude,
        remaining_voltage=remaining_voltage,
        affected_phases=["A"],
        waveform_data=waveform_data,
        validated_by_adms=validated_by_adms,
        is_mother_event=is_mother_event,
        is_child_event=is_child_event,
        parent_event_id=parent_event_id,
        grouping_type=grouping_type,
        grouped_at=grouped_at,
        is_false_positive=is_false_positive,
        remarks=remarks,
    )


def make_rule(
    *,
    id: str = "RULE-001",
    name: str = "Test rule",
    is_active: bool = True,
    priority: int = 0,
    auto_mark: bool = False,
    auto_hide: bool = False,
    require_review: bool = False,
    **conditions: Any,
) -> FalseEventRule:
    return FalseEventRule(
        id=id,
        name=name,
        is_active=is_active,
        priority=priority,
        conditions=RuleConditions(**conditions),
        actions=RuleActions(
            auto_mark=auto_mark, auto_hide=auto_hide, require_review=require_review
        ),
    )


def waveform(values: list[float]) -> dict[str, Any]:
    return {
        "voltage": [{"timestamp": str(i), "value": v} for i, v in enumerate(values)],
        "current": [],
    }


# ── Timestamp helpers ────────────────────────────────────────────────────


def ts_offset(base: str = BASE_TS, seconds: int = 0) -> str:
    """Return an ISO-8601 timestamp offset from *base* by *seconds*."""
    dt = datetime.fromisoformat(base.replace("Z", "+00:00"))
    dt += timedelta(seconds=seconds)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


# ── Fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def empty_context() -> DetectionContext:
    return DetectionContext()


@pytest.fixture
def scenario_events() -> list[PQEvent]:
    """A/B/C at SUB-01 (10:00, 10:02, 10:15) and D at SUB-02 (10:01)."""
    return [
        make_event(id="A", timestamp=ts_offset(seconds=0), substation_id="SUB-01"),
        make_event(id="B", timestamp=ts_offset(seconds=120), substation_id="SUB-01"),
        make_event(id="C", timestamp=ts_offset(seconds=900), substation_id="SUB-01"),
        make_event(id="D", timestamp=ts_offset(seconds=60), substation_id="SUB-02"),
    ]


@pytest.fixture
def store(scenario_events) -> InMemoryEventStore:
    return InMemoryEventStore(scenario_events)


@pytest.fixture
def grouped_store() -> InMemoryEventStore:
    """M is a manual mother with two dip children C1, C2."""
    return InMemoryEventStore(
        [
            make_event(
                id="M",
                timestamp=ts_offset(seconds=0),
                is_mother_event=True,
                grouping_type="manual",
                grouped_at=BASE_TS,
            ),
            make_event(
                id="C1",
                timestamp=ts_offset(seconds=60),
                is_child_event=True,
                parent_event_id="M",
            ),
            make_event(
                id="C2",
                event_type="voltage_swell",
                timestamp=ts_offset(seconds=120),
                is_child_event=True,
                parent_event_id="M",
            ),
            make_event(id="FREE", timestamp=ts_offset(seconds=180)),
        ]
    )
