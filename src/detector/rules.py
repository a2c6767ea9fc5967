"""Rule Engine — user-authored false-event rules.

Independent of the weighted detector: a rule matches an event when the
rule is active and every configured condition holds.  Matching never
changes stored events; ``apply_configured_rules`` returns annotated copies.

Rules are loaded from ``config/rules.yaml``::

    rules:
      - id: RULE-SHORT-001
        name: Ultra-Short Duration Filter
        is_active: true
        conditions: {max_duration: 50}
        actions: {auto_mark: true, require_review: true}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from src.contracts.event import PQEvent
from src.contracts.rule import AnnotatedEvent, FalseEventRule, RuleStat
from src.shared.config_loader import load_yaml

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Loading
# ═══════════════════════════════════════════════════════════════════════════


def rules_from_config(cfg: dict[str, Any]) -> list[FalseEventRule]:
    """Build rules from a parsed ``rules.yaml``, sorted by priority."""
    rules = [FalseEventRule.from_dict(r) for r in cfg.get("rules", [])]
    ids = [r.id for r in rules]
    if len(ids) != len(set(ids)):
        raise ValueError("Duplicate rule ids in rules config")
    rules.sort(key=lambda r: r.priority)
    return rules


def load_rules(path: str | Path) -> list[FalseEventRule]:
    rules = rules_from_config(load_yaml(path))
    active = sum(1 for r in rules if r.is_active)
    log.info("Loaded %d false-event rules (%d active) from %s", len(rules), active, path)
    return rules


# ═══════════════════════════════════════════════════════════════════════════
#  Matching
# ═══════════════════════════════════════════════════════════════════════════


def _below(value: float | None, bound: float | None) -> bool:
    """True when a configured lower bound is violated.

    Zero or unset bounds are treated as not configured.  A missing event
    value counts as 0, so it fails a lower bound and passes an upper one.
    """
    if not bound:
        return False
    return (value or 0) < bound


def _above(value: float | None, bound: float | None) -> bool:
    if not bound:
        return False
    return (value or 0) > bound


def event_matches_rule(event: PQEvent, rule: FalseEventRule) -> bool:
    """Check the rule's conditions against *event*; ``is_active`` is ignored."""
    c = rule.conditions

    if _below(event.duration_ms, c.min_duration):
        return False
    if _above(event.duration_ms, c.max_duration):
        return False

    if _below(event.magnitude, c.min_magnitude):
        return False
    if _above(event.magnitude, c.max_magnitude):
        return False

    if c.requires_adms_validation and not event.validated_by_adms:
        return False

    if c.allowed_event_types is not None and event.event_type not in c.allowed_event_types:
        return False
    if c.excluded_event_types is not None and event.event_type in c.excluded_event_types:
        return False

    return True


def apply_configured_rules(
    events: list[PQEvent],
    rules: list[FalseEventRule],
) -> list[AnnotatedEvent]:
    """Annotate every event with the active rules it matches."""
    active = [r for r in rules if r.is_active]
    annotated = [
        AnnotatedEvent.of(e, [r for r in active if event_matches_rule(e, r)]) for e in events
    ]
    log.info(
        "Rules applied: %d events, %d flagged, %d hidden, %d for review",
        len(annotated),
        sum(1 for a in annotated if a.is_flagged_as_false),
        sum(1 for a in annotated if a.should_be_hidden),
        sum(1 for a in annotated if a.requires_review),
    )
    return annotated


# ═══════════════════════════════════════════════════════════════════════════
#  Analytics
# ═══════════════════════════════════════════════════════════════════════════


def analyze_rule_performance(
    events: list[PQEvent],
    rules: list[FalseEventRule],
) -> list[RuleStat]:
    """Score each rule against the ``is_false_positive`` labels in *events*.

    accuracy   = true positives / matched × 100       (0 when nothing matched)
    efficiency = true positives / all labelled × 100  (denominator ≥ 1)
    """
    labelled_total = max(sum(1 for e in events if e.is_false_positive), 1)
    stats: list[RuleStat] = []

    for rule in rules:
        matched = [e for e in events if event_matches_rule(e, rule)]
        true_pos = sum(1 for e in matched if e.is_false_positive)
        stats.append(
            RuleStat(
                rule_id=rule.id,
                rule_name=rule.name,
                total_matched=len(matched),
                true_positives=true_pos,
                false_positives=len(matched) - true_pos,
                accuracy=true_pos / len(matched) * 100 if matched else 0.0,
                efficiency=true_pos / labelled_total * 100,
            )
        )

    return stats
