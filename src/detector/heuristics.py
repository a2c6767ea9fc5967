"""Heuristics — independent false-event scores for a single PQ event.

Each heuristic is a pure function ``(event, context) -> HeuristicScore``
with a score in [0, 1].  Within a heuristic, separate findings combine by
running maximum, never by sum.  The type-specific magnitude overrides and
the isolated-interruption finding replace the score instead.

  duration     — duration against the type's typical range
  magnitude    — magnitude against the type's typical range
  frequency    — event rate and near-identical repeats within ±1 h
  waveform     — implausible, noisy or frozen voltage samples
  temporal     — maintenance windows, isolated interruptions
  system_state — system maintenance, weekend occurrence
  physics      — physically impossible or inconsistent readings
"""

from __future__ import annotations

import logging
from datetime import datetime

from src.contracts.detection import DetectionContext, HeuristicScore
from src.contracts.event import PQEvent
from src.detector.patterns import get_pattern

log = logging.getLogger(__name__)

FREQUENCY_WINDOW_SEC = 3600
RELATED_WINDOW_SEC = 300

# frequency thresholds (events per ±1 h)
EXCESSIVE_EVENT_COUNT = 50
HIGH_EVENT_COUNT = 20
IDENTICAL_EVENT_COUNT = 5
IDENTICAL_MAGNITUDE_TOL = 0.1
IDENTICAL_DURATION_TOL_MS = 50

# waveform thresholds
VOLTAGE_MAX = 400.0
VOLTAGE_MIN = 0.0
NOISE_DEVIATION = 50.0
FREEZE_DISTINCT_VALUES = 5
FREEZE_MIN_SAMPLES = 50


def _ts(iso: str) -> datetime:
    return datetime.fromisoformat(iso.replace("Z", "+00:00"))


def _abs_diff_sec(a: str, b: str) -> float:
    return abs((_ts(a) - _ts(b)).total_seconds())


# ═══════════════════════════════════════════════════════════════════════════
#  1. Duration
# ═══════════════════════════════════════════════════════════════════════════


def evaluate_duration(event: PQEvent, context: DetectionContext) -> HeuristicScore:
    pattern = get_pattern(event.event_type)
    if pattern is None or not event.duration_ms:
        return HeuristicScore()

    result = HeuristicScore()
    duration = event.duration_ms
    typical = pattern.typical_duration

    if duration < typical.min:
        shortness = typical.min / duration
        if shortness > 10:
            result.score = 0.9
            result.reasons.append(
                f"Duration extremely short ({duration:g}ms vs typical {typical.min:g}ms+)"
            )
        elif shortness > 2:
            result.score = 0.6
            result.reasons.append(f"Duration unusually short for {event.event_type}")

    if duration > typical.max * 10:
        result.score = max(result.score, 0.7)
        result.reasons.append(
            f"Duration unrealistically long ({duration:g}ms vs typical max {typical.max:g}ms)"
        )

    return result


# ═══════════════════════════════════════════════════════════════════════════
#  2. Magnitude
# ═══════════════════════════════════════════════════════════════════════════


def evaluate_magnitude(event: PQEvent, context: DetectionContext) -> HeuristicScore:
    pattern = get_pattern(event.event_type)
    if pattern is None or event.magnitude is None:
        return HeuristicScore()

    result = HeuristicScore()
    magnitude = event.magnitude
    typical = pattern.typical_magnitude

    if magnitude < typical.min:
        insignificance = typical.min / magnitude if magnitude != 0 else float("inf")
        if insignificance > 5:
            result.score = 0.8
            result.reasons.append(
                f"Magnitude too small to be significant "
                f"({magnitude:g}% vs typical {typical.min:g}%+)"
            )
        elif insignificance > 2:
            result.score = 0.5
            result.reasons.append(f"Magnitude below typical range for {event.event_type}")

    # Type-specific overrides replace the generic score.
    if event.event_type == "voltage_dip" and magnitude < 5:
        result.score = 0.9
        result.reasons.append("Voltage dip magnitude too small to affect equipment")

    if event.event_type == "harmonic" and magnitude < 2:
        result.score = 0.7
        result.reasons.append("Harmonic distortion below IEEE 519 concern levels")

    return result


# ═══════════════════════════════════════════════════════════════════════════
#  3. Frequency pattern
# ═══════════════════════════════════════════════════════════════════════════


def _is_identical(a: PQEvent, b: PQEvent) -> bool:
    if a.event_type != b.event_type:
        return False
    if a.magnitude is None or b.magnitude is None:
        return False
    if a.duration_ms is None or b.duration_ms is None:
        return False
    return (
        abs(a.magnitude - b.magnitude) < IDENTICAL_MAGNITUDE_TOL
        and abs(a.duration_ms - b.duration_ms) < IDENTICAL_DURATION_TOL_MS
    )


def evaluate_frequency_pattern(event: PQEvent, context: DetectionContext) -> HeuristicScore:
    result = HeuristicScore()
    window_events = [
        e
        for e in context.recent_events
        if e.id != event.id and _abs_diff_sec(e.timestamp, event.timestamp) <= FREQUENCY_WINDOW_SEC
    ]

    if len(window_events) > EXCESSIVE_EVENT_COUNT:
        result.score = 0.9
        result.reasons.append(f"Excessive event frequency: {len(window_events)} events in 1 hour")
    elif len(window_events) > HIGH_EVENT_COUNT:
        result.score = 0.6
        result.reasons.append("High event frequency may indicate measurement noise")

    identical = [e for e in window_events if _is_identical(e, event)]
    if len(identical) > IDENTICAL_EVENT_COUNT:
        result.score = max(result.score, 0.8)
        result.reasons.append("Multiple identical events suggest meter malfunction")

    return result


# ═══════════════════════════════════════════════════════════════════════════
#  4. Waveform quality
# ═══════════════════════════════════════════════════════════════════════════


def evaluate_waveform_quality(event: PQEvent, context: DetectionContext) -> HeuristicScore:
    values = event.voltage_values()
    if not values:
        return HeuristicScore()

    result = HeuristicScore()

    if max(values) > VOLTAGE_MAX or min(values) < VOLTAGE_MIN:
        result.score = 0.8
        result.reasons.append("Waveform contains unrealistic voltage values")

    mean = sum(values) / len(values)
    deviation = sum(abs(v - mean) for v in values) / len(values)
    if deviation > NOISE_DEVIATION:
        result.score = max(result.score, 0.6)
        result.reasons.append("High waveform noise levels detected")

    distinct = {round(v, 1) for v in values}
    if len(distinct) < FREEZE_DISTINCT_VALUES and len(values) > FREEZE_MIN_SAMPLES:
        result.score = max(result.score, 0.7)
        result.reasons.append("Waveform shows minimal variation (potential meter freeze)")

    return result


# ═══════════════════════════════════════════════════════════════════════════
#  5. Temporal correlation
# ═══════════════════════════════════════════════════════════════════════════


def evaluate_temporal_correlation(event: PQEvent, context: DetectionContext) -> HeuristicScore:
    result = HeuristicScore()
    t = _ts(event.timestamp)

    for window in context.maintenance_windows:
        if _ts(window.start) <= t <= _ts(window.end):
            result.score = 0.6
            result.reasons.append("Event occurred during scheduled maintenance window")
            break

    if event.event_type == "interruption":
        related = [
            e
            for e in context.recent_events
            if e.id != event.id
            and e.substation_id == event.substation_id
            and _abs_diff_sec(e.timestamp, event.timestamp) <= RELATED_WINDOW_SEC
        ]
        if not related:
            # overrides a maintenance-window score
            result.score = 0.5
            result.reasons.append("Interruption event lacks expected related events")

    return result


# ═══════════════════════════════════════════════════════════════════════════
#  6. System state
# ═══════════════════════════════════════════════════════════════════════════


def evaluate_system_state(event: PQEvent, context: DetectionContext) -> HeuristicScore:
    result = HeuristicScore()

    if context.system_status == "maintenance":
        result.score = 0.4
        result.reasons.append("Event occurred during system maintenance")

    # weekday() in the timestamp's own offset: 5 = Saturday, 6 = Sunday
    weekend = _ts(event.timestamp).weekday() >= 5
    if weekend and event.event_type in ("harmonic", "voltage_dip"):
        result.score = max(result.score, 0.3)
        result.reasons.append("Event type uncommon during weekends (reduced industrial load)")

    return result


# ═══════════════════════════════════════════════════════════════════════════
#  7. Physics consistency
# ═══════════════════════════════════════════════════════════════════════════


def evaluate_physics_consistency(event: PQEvent, context: DetectionContext) -> HeuristicScore:
    result = HeuristicScore()
    magnitude = event.magnitude

    if magnitude is None:
        return result

    if event.event_type == "voltage_dip" and magnitude > 100:
        result.score = 0.9
        result.reasons.append("Voltage dip magnitude cannot exceed 100%")

    if event.event_type == "interruption" and magnitude < 50:
        result.score = 0.7
        result.reasons.append("Interruption should have magnitude near 100%")

    if event.event_type == "voltage_dip" and event.remaining_voltage is not None:
        expected_remaining = 100 - magnitude
        if abs(event.remaining_voltage - expected_remaining) > 10:
            result.score = max(result.score, 0.5)
            result.reasons.append("Remaining voltage inconsistent with dip magnitude")

    return result
