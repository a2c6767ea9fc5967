"""False-Event Detector — weighted combination of the heuristics.

Confidence model
────────────────
  confidence = 100 × Σ(score_i × weight_i) / Σ(weight_i)

  weights: duration 0.20, magnitude 0.15, frequency 0.20, waveform 0.15,
           temporal 0.10, system state 0.10, physics 0.10

  A heuristic *triggers* when its own score > 0.5; only triggered
  heuristics contribute reasons and names to the result.

Decision (strict comparisons, evaluated high to low)
────────────────────────────────────────────────────
  confidence > 90 → auto-remove
  confidence > 70 → flag        (is_false_positive = True from here up)
  confidence > 50 → review
  otherwise       → ignore
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from src.contracts.detection import DetectionContext, DetectionResult, HeuristicScore
from src.contracts.enums import RecommendedAction
from src.contracts.event import PQEvent
from src.detector import heuristics

log = logging.getLogger(__name__)

TRIGGER_SCORE = 0.5
FALSE_POSITIVE_CONFIDENCE = 70.0
AUTO_REMOVE_CONFIDENCE = 90.0
REVIEW_CONFIDENCE = 50.0

# similarity bounds for historical prediction
SIMILAR_DURATION_MS = 1000
SIMILAR_MAGNITUDE = 10


@dataclass(frozen=True, slots=True)
class DetectionAlgorithm:
    name: str
    description: str
    weight: float
    evaluate: Callable[[PQEvent, DetectionContext], HeuristicScore]


DEFAULT_ALGORITHMS: tuple[DetectionAlgorithm, ...] = (
    DetectionAlgorithm(
        "Duration-Based Detection",
        "Detects events with unrealistic durations",
        0.20,
        heuristics.evaluate_duration,
    ),
    DetectionAlgorithm(
        "Magnitude Analysis",
        "Identifies events with insignificant magnitudes",
        0.15,
        heuristics.evaluate_magnitude,
    ),
    DetectionAlgorithm(
        "Frequency Pattern Analysis",
        "Detects suspicious event frequency patterns",
        0.20,
        heuristics.evaluate_frequency_pattern,
    ),
    DetectionAlgorithm(
        "Waveform Quality Assessment",
        "Analyzes waveform data for measurement noise",
        0.15,
        heuristics.evaluate_waveform_quality,
    ),
    DetectionAlgorithm(
        "Temporal Correlation Analysis",
        "Checks for logical temporal relationships",
        0.10,
        heuristics.evaluate_temporal_correlation,
    ),
    DetectionAlgorithm(
        "System State Analysis",
        "Considers maintenance windows and system status",
        0.10,
        heuristics.evaluate_system_state,
    ),
    DetectionAlgorithm(
        "Physics-Based Validation",
        "Validates events against power system physics",
        0.10,
        heuristics.evaluate_physics_consistency,
    ),
)


def recommend_action(confidence: float) -> RecommendedAction:
    if confidence > AUTO_REMOVE_CONFIDENCE:
        return RecommendedAction.AUTO_REMOVE
    if confidence > FALSE_POSITIVE_CONFIDENCE:
        return RecommendedAction.FLAG
    if confidence > REVIEW_CONFIDENCE:
        return RecommendedAction.REVIEW
    return RecommendedAction.IGNORE


def combine(
    scored: list[tuple[DetectionAlgorithm, HeuristicScore]],
) -> DetectionResult:
    """Fold per-algorithm scores into one DetectionResult."""
    total_score = 0.0
    total_weight = 0.0
    reasons: list[str] = []
    triggered: list[str] = []
    scores: dict[str, float] = {}

    for algorithm, result in scored:
        total_score += result.score * algorithm.weight
        total_weight += algorithm.weight
        scores[algorithm.name] = result.score
        if result.score > TRIGGER_SCORE:
            triggered.append(algorithm.name)
            reasons.extend(result.reasons)

    confidence = (total_score / total_weight) * 100 if total_weight > 0 else 0.0
    return DetectionResult(
        is_false_positive=confidence > FALSE_POSITIVE_CONFIDENCE,
        confidence=confidence,
        reasons=reasons,
        triggered_rules=triggered,
        recommended_action=recommend_action(confidence).value,
        scores=scores,
    )


class FalseEventDetector:
    """Stateless scorer; construct one per use or inject it.

    ``algorithms`` defaults to the seven built-in heuristics.
    """

    def __init__(self, algorithms: tuple[DetectionAlgorithm, ...] = DEFAULT_ALGORITHMS) -> None:
        self.algorithms = algorithms

    def detect_false_events(self, event: PQEvent, context: DetectionContext) -> DetectionResult:
        scored = [(a, a.evaluate(event, context)) for a in self.algorithms]
        result = combine(scored)
        log.debug(
            "Event %s: confidence=%.1f action=%s triggered=%s",
            event.id, result.confidence, result.recommended_action,
            ",".join(result.triggered_rules) or "-",
        )
        return result

    def detect_many(
        self,
        events: list[PQEvent],
        context: DetectionContext,
    ) -> list[tuple[PQEvent, DetectionResult]]:
        """Score every event against the same context."""
        results = [(e, self.detect_false_events(e, context)) for e in events]
        flagged = sum(1 for _, r in results if r.is_false_positive)
        log.info("Detector scored %d events, %d likely false", len(results), flagged)
        return results

    # ── historical similarity ─────────────────────────────────────────────

    @staticmethod
    def find_similar_events(event: PQEvent, historical: list[PQEvent]) -> list[PQEvent]:
        """Same type with duration within 1 s and magnitude within 10 %."""
        similar: list[PQEvent] = []
        for h in historical:
            if h.event_type != event.event_type:
                continue
            if abs((h.duration_ms or 0) - (event.duration_ms or 0)) >= SIMILAR_DURATION_MS:
                continue
            if abs((h.magnitude or 0) - (event.magnitude or 0)) >= SIMILAR_MAGNITUDE:
                continue
            similar.append(h)
        return similar

    def predict_false_positive(self, event: PQEvent, historical: list[PQEvent]) -> float:
        """Share of similar historical events labelled false positive.

        Returns 0.5 when nothing similar is on record.
        """
        similar = self.find_similar_events(event, historical)
        if not similar:
            return 0.5
        return sum(1 for h in similar if h.is_false_positive) / len(similar)
