"""Canonical enumerations for PQ events, grouping and detection."""

from __future__ import annotations

from enum import Enum


class EventType(str, Enum):
    VOLTAGE_DIP = "voltage_dip"
    VOLTAGE_SWELL = "voltage_swell"
    INTERRUPTION = "interruption"
    HARMONIC = "harmonic"
    TRANSIENT = "transient"
    FLICKER = "flicker"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class GroupingType(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class RecommendedAction(str, Enum):
    IGNORE = "ignore"
    REVIEW = "review"
    FLAG = "flag"
    AUTO_REMOVE = "auto-remove"


class SystemStatus(str, Enum):
    NORMAL = "normal"
    MAINTENANCE = "maintenance"
    EMERGENCY = "emergency"


# Only these event types may take part in a mother/child group.
GROUPABLE_TYPES: frozenset[str] = frozenset(
    {EventType.VOLTAGE_DIP.value, EventType.VOLTAGE_SWELL.value}
)


def is_groupable(event_type: str) -> bool:
    return event_type in GROUPABLE_TYPES
