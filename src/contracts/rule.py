"""User-authored false-event rules and their annotations."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from src.contracts.event import PQEvent


@dataclass(slots=True)
class RuleConditions:
    """Thresholds an event must satisfy; ``None`` means not configured."""

    min_duration: float | None = None
    max_duration: float | None = None
    min_magnitude: float | None = None
    max_magnitude: float | None = None
    requires_adms_validation: bool = False
    allowed_event_types: list[str] | None = None
    excluded_event_types: list[str] | None = None


@dataclass(slots=True)
class RuleActions:
    auto_mark: bool = False
    auto_hide: bool = False
    require_review: bool = False
    notify_operator: bool = False


@dataclass(slots=True)
class FalseEventRule:
    id: str
    name: str
    description: str = ""
    is_active: bool = True
    priority: int = 0
    conditions: RuleConditions = field(default_factory=RuleConditions)
    actions: RuleActions = field(default_factory=RuleActions)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FalseEventRule:
        """Build a rule from one entry of ``rules.yaml``.

        Raises:
            ValueError: If ``id`` or ``name`` is missing, or a condition /
                action key is unknown.
        """
        if not d.get("id") or not d.get("name"):
            raise ValueError(f"Rule requires 'id' and 'name': {d!r}")
        try:
            conditions = RuleConditions(**(d.get("conditions") or {}))
            actions = RuleActions(**(d.get("actions") or {}))
        except TypeError as exc:
            raise ValueError(f"Rule {d['id']}: {exc}") from exc
        return cls(
            id=str(d["id"]),
            name=str(d["name"]),
            description=str(d.get("description", "")),
            is_active=bool(d.get("is_active", True)),
            priority=int(d.get("priority", 0)),
            conditions=conditions,
            actions=actions,
        )


@dataclass(slots=True)
class AnnotatedEvent:
    """Display-only copy of an event with the rule verdicts attached."""

    event: PQEvent
    false_event_rules: list[FalseEventRule] = field(default_factory=list)
    is_flagged_as_false: bool = False
    should_be_hidden: bool = False
    requires_review: bool = False

    @classmethod
    def of(cls, event: PQEvent, matching: list[FalseEventRule]) -> AnnotatedEvent:
        return cls(
            event=copy.deepcopy(event),
            false_event_rules=list(matching),
            is_flagged_as_false=any(r.actions.auto_mark for r in matching),
            should_be_hidden=any(r.actions.auto_hide for r in matching),
            requires_review=any(r.actions.require_review for r in matching),
        )


@dataclass(slots=True)
class RuleStat:
    """Accuracy figures for one rule against historical labels."""

    rule_id: str
    rule_name: str
    total_matched: int = 0
    true_positives: int = 0
    false_positives: int = 0
    accuracy: float = 0.0  # %
    efficiency: float = 0.0  # %
