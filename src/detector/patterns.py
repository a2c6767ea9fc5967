"""Knowledge base — expected physical envelope of each PQ event type.

Durations are in milliseconds, magnitudes in percent.  ``common_causes``
and ``false_positive_indicators`` are for operators only; no heuristic
evaluates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Range:
    min: float
    max: float


@dataclass(frozen=True, slots=True)
class EventPattern:
    event_type: str
    typical_duration: Range
    typical_magnitude: Range
    common_causes: tuple[str, ...] = field(default_factory=tuple)
    false_positive_indicators: tuple[str, ...] = field(default_factory=tuple)


EVENT_PATTERNS: dict[str, EventPattern] = {
    "voltage_dip": EventPattern(
        event_type="voltage_dip",
        typical_duration=Range(100, 5000),
        typical_magnitude=Range(10, 50),
        common_causes=("Motor starting", "Transformer switching", "Fault clearing"),
        false_positive_indicators=(
            "Duration < 50ms",
            "Magnitude < 5%",
            "No concurrent events",
            "During maintenance window",
        ),
    ),
    "voltage_swell": EventPattern(
        event_type="voltage_swell",
        typical_duration=Range(100, 3000),
        typical_magnitude=Range(5, 30),
        common_causes=("Load rejection", "Capacitor switching", "Ferroresonance"),
        false_positive_indicators=(
            "Duration < 100ms",
            "Magnitude < 3%",
            "No load change pattern",
            "Isolated event",
        ),
    ),
    "interruption": EventPattern(
        event_type="interruption",
        typical_duration=Range(1000, 300000),
        typical_magnitude=Range(80, 100),
        common_causes=("Protective relay operation", "Equipment failure", "Planned outage"),
        false_positive_indicators=(
            "Duration < 500ms",
            "Partial voltage present",
            "No protection operation",
            "Scheduled maintenance",
        ),
    ),
    "harmonic": EventPattern(
        event_type="harmonic",
        typical_duration=Range(5000, 3600000),
        typical_magnitude=Range(3, 20),
        common_causes=("Non-linear loads", "Power electronic devices", "Arc furnaces"),
        false_positive_indicators=(
            "THD < 2%",
            "No non-linear load pattern",
            "Measurement error indicators",
            "Temporary distortion",
        ),
    ),
    "transient": EventPattern(
        event_type="transient",
        typical_duration=Range(1, 100),
        typical_magnitude=Range(100, 2000),
        common_causes=("Lightning", "Switching operations", "Capacitor energizing"),
        false_positive_indicators=(
            "No weather correlation",
            "No switching operations",
            "Measurement noise pattern",
            "Multiple similar events in short time",
        ),
    ),
    "flicker": EventPattern(
        event_type="flicker",
        typical_duration=Range(10000, 600000),
        typical_magnitude=Range(0.5, 10),
        common_causes=("Arc furnaces", "Welding equipment", "Motor starting"),
        false_positive_indicators=(
            "No cyclic pattern",
            "Pst < 0.5",
            "No industrial load correlation",
            "Random voltage variations",
        ),
    ),
}


def get_pattern(event_type: str) -> EventPattern | None:
    return EVENT_PATTERNS.get(event_type)
