"""Grouping Engine — cluster related PQ events into mother/child groups.

Automatic strategy
──────────────────
  1. Keep only voltage_dip / voltage_swell events that are not grouped yet.
  2. Sort by timestamp and partition by ``substation_id``.
  3. Walk each partition with a cursor: the event at the cursor is the
     candidate mother; every following event whose timestamp is at most
     ``window_sec`` after the *mother's* timestamp becomes a child.  The
     partition is time-sorted, so the first event outside the window ends
     the scan.
  4. A mother with at least one child is committed and the cursor jumps
     past the whole group; otherwise the event stays standalone.

Manual operations (group, add children, ungroup, partial ungroup) keep the
two-level tree consistent: a mother left without children is demoted.

Every store-touching operation issues its writes inside one
``store.transaction()``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import UTC, datetime

from src.contracts.enums import GroupingType, is_groupable
from src.contracts.event import PQEvent, append_remark
from src.contracts.grouping import (
    GroupingCandidate,
    GroupingCheck,
    GroupingResult,
    GroupingStatistics,
)
from src.store.gateway import EventStoreGateway, StoreError

log = logging.getLogger(__name__)

DEFAULT_WINDOW_SEC = 10 * 60

_MOTHER_CLEARED = {"is_mother_event": False, "grouping_type": None, "grouped_at": None}
_CHILD_CLEARED = {"parent_event_id": None, "is_child_event": False}


class GroupingError(Exception):
    """Raised when a grouping request is invalid or cannot be committed."""


def _ts(iso: str) -> datetime:
    return datetime.fromisoformat(iso.replace("Z", "+00:00"))


def _now_iso() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _log_operation(operation: str, mother_id: str, child_ids: list[str]) -> None:
    log.info(
        "Grouping operation=%s mother=%s children=%s events=%d",
        operation, mother_id, ",".join(child_ids), len(child_ids) + 1,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Validation
# ═══════════════════════════════════════════════════════════════════════════


def can_group_events(events: list[PQEvent]) -> GroupingCheck:
    """Check whether *events* may form one new group.

    Checks run in a fixed order and the first failure is reported.
    """
    if len(events) < 2:
        return GroupingCheck(False, "At least 2 events required for grouping")

    if not all(is_groupable(e.event_type) for e in events):
        return GroupingCheck(
            False, "Only voltage_dip and voltage_swell events can be grouped together"
        )

    if any(e.is_grouped for e in events):
        return GroupingCheck(False, "Some events are already grouped")

    if len({e.substation_id for e in events}) > 1:
        return GroupingCheck(False, "Events must be from the same substation for grouping")

    return GroupingCheck(True)


# ═══════════════════════════════════════════════════════════════════════════
#  Automatic grouping
# ═══════════════════════════════════════════════════════════════════════════


def group_by_substation(events: list[PQEvent]) -> dict[str, list[PQEvent]]:
    """Partition events by substation, preserving input order.

    Events without a substation cannot be grouped and are left out.
    """
    grouped: dict[str, list[PQEvent]] = defaultdict(list)
    for e in events:
        if not e.substation_id:
            continue
        grouped[e.substation_id].append(e)
    return dict(grouped)


def find_temporal_groups(
    events: list[PQEvent],
    window_sec: float = DEFAULT_WINDOW_SEC,
) -> list[tuple[PQEvent, list[PQEvent]]]:
    """Greedy windowed clustering of one time-sorted substation partition.

    Returns ``(mother, children)`` pairs; nothing is written.
    """
    ungrouped = [e for e in events if not e.is_grouped]
    groups: list[tuple[PQEvent, list[PQEvent]]] = []
    if len(ungrouped) < 2:
        return groups

    i = 0
    while i < len(ungrouped):
        mother = ungrouped[i]
        mother_t = _ts(mother.timestamp)
        children: list[PQEvent] = []

        for candidate in ungrouped[i + 1:]:
            if (_ts(candidate.timestamp) - mother_t).total_seconds() <= window_sec:
                children.append(candidate)
            else:
                break  # sorted, nothing later can fall inside the window

        if children:
            groups.append((mother, children))
            i += len(children) + 1
        else:
            i += 1

    return groups


def _commit_group(
    store: EventStoreGateway,
    mother_id: str,
    child_ids: list[str],
    grouping_type: GroupingType,
) -> GroupingResult:
    now = _now_iso()
    try:
        with store.transaction():
            store.update_event(
                mother_id,
                {
                    "is_mother_event": True,
                    "is_child_event": False,
                    "parent_event_id": None,
                    "grouping_type": grouping_type.value,
                    "grouped_at": now,
                },
            )
            store.update_events(
                child_ids,
                {"parent_event_id": mother_id, "is_child_event": True, "is_mother_event": False},
            )
    except StoreError as exc:
        log.error("Failed to commit group with mother %s: %s", mother_id, exc)
        raise GroupingError(f"Failed to update event grouping: {exc}") from exc

    _log_operation(grouping_type.value, mother_id, child_ids)
    return GroupingResult(
        mother_event_id=mother_id,
        child_event_ids=list(child_ids),
        grouping_type=grouping_type.value,
        timestamp=now,
    )


def perform_automatic_grouping(
    store: EventStoreGateway,
    events: list[PQEvent],
    window_sec: float = DEFAULT_WINDOW_SEC,
) -> list[GroupingResult]:
    """Find and commit every automatic group among *events*.

    Raises:
        GroupingError: If the store rejects a commit. Groups committed
            before the failure stay committed.
    """
    groupable = [e for e in events if is_groupable(e.event_type)]
    ordered = sorted(groupable, key=lambda e: _ts(e.timestamp))

    results: list[GroupingResult] = []
    for substation_id, sub_events in group_by_substation(ordered).items():
        for mother, children in find_temporal_groups(sub_events, window_sec):
            results.append(
                _commit_group(
                    store, mother.id, [c.id for c in children], GroupingType.AUTOMATIC
                )
            )
        log.debug("Substation %s: %d events scanned", substation_id, len(sub_events))

    log.info(
        "Automatic grouping produced %d groups from %d events (%d groupable)",
        len(results), len(events), len(groupable),
    )
    return results


# ═══════════════════════════════════════════════════════════════════════════
#  Manual operations
# ═══════════════════════════════════════════════════════════════════════════


def perform_manual_grouping(store: EventStoreGateway, event_ids: list[str]) -> GroupingResult:
    """Group the selected events; the earliest one becomes the mother.

    Substation and type constraints are not re-checked here, callers run
    ``can_group_events`` first.

    Raises:
        GroupingError: Fewer than 2 ids, unknown ids, or a failed write.
    """
    if len(event_ids) < 2:
        raise GroupingError("At least 2 events are required for grouping")

    try:
        events = store.fetch_events_by_id(event_ids)
    except StoreError as exc:
        log.error("Failed to fetch events for manual grouping: %s", exc)
        raise GroupingError("Failed to fetch events for grouping") from exc

    if len(events) != len(event_ids):
        raise GroupingError(
            f"Failed to fetch events for grouping: expected {len(event_ids)}, got {len(events)}"
        )

    mother = events[0]
    return _commit_group(store, mother.id, [e.id for e in events[1:]], GroupingType.MANUAL)


def add_children_to_mother_event(
    store: EventStoreGateway,
    mother_id: str,
    child_ids: list[str],
) -> bool:
    """Attach ungrouped events to an existing mother.

    Any validation failure aborts before the first write and returns False.
    The mother's ``grouping_type`` / ``grouped_at`` are left untouched.
    """
    try:
        if not child_ids:
            raise GroupingError("No child events provided")

        found = store.fetch_events_by_id([mother_id])
        if not found:
            raise GroupingError(f"Mother event not found: {mother_id}")
        mother = found[0]
        if not mother.is_mother_event:
            raise GroupingError(f"Event {mother_id} is not a mother event")

        children = store.fetch_events_by_id(child_ids)
        if len(children) != len(set(child_ids)):
            raise GroupingError("Failed to fetch child events")

        if any(not is_groupable(c.event_type) for c in children):
            raise GroupingError(
                "Only voltage_dip and voltage_swell events can be added to groups"
            )
        if any(c.is_grouped for c in children):
            raise GroupingError("Some events are already in a group")
        if any(c.substation_id != mother.substation_id for c in children):
            raise GroupingError("All events must be from the same substation")

        with store.transaction():
            store.update_events(
                [c.id for c in children],
                {"parent_event_id": mother_id, "is_child_event": True, "is_mother_event": False},
            )
    except (GroupingError, StoreError) as exc:
        log.error("Error adding children to mother event %s: %s", mother_id, exc)
        return False

    _log_operation("add_children", mother_id, [c.id for c in children])
    return True


def _integrity_note(event: PQEvent) -> str:
    return f"[{_now_iso()}] grouping cleared: {event.event_type} events cannot be grouped"


def _correct_drift(store: EventStoreGateway, events: list[PQEvent]) -> None:
    """Append a remark to non-groupable events found in a group."""
    for e in events:
        if not is_groupable(e.event_type):
            log.warning("Integrity: %s event %s was grouped, demoting", e.event_type, e.id)
            store.update_event(
                e.id,
                {"is_mother_event": False, "remarks": append_remark(e.remarks, _integrity_note(e))},
            )


def ungroup_events(store: EventStoreGateway, mother_id: str) -> bool:
    """Dissolve a whole group. Returns False if any read or write fails."""
    try:
        with store.transaction():
            children = store.fetch_events_by_parent(mother_id)
            mother = store.fetch_events_by_id([mother_id])

            store.update_event(mother_id, dict(_MOTHER_CLEARED))
            if children:
                store.update_events([c.id for c in children], dict(_CHILD_CLEARED))
            _correct_drift(store, mother + children)
    except StoreError as exc:
        log.error("Error ungrouping events of mother %s: %s", mother_id, exc)
        return False

    _log_operation("ungroup", mother_id, [c.id for c in children])
    return True


def ungroup_specific_events(store: EventStoreGateway, child_ids: list[str]) -> bool:
    """Remove only the named children from their group.

    A released voltage_dip / voltage_swell is marked ``is_mother_event``
    (eligible to head a new group); other types become plain standalone
    events. The mother is demoted once its last child is gone.
    """
    try:
        if not child_ids:
            raise GroupingError("No child events specified for ungrouping")

        first = store.fetch_events_by_id([child_ids[0]])
        if not first or not first[0].parent_event_id:
            raise GroupingError("Failed to find parent event for child events")
        mother_id = first[0].parent_event_id

        with store.transaction():
            for child in store.fetch_events_by_id(child_ids):
                store.update_event(
                    child.id,
                    {**_CHILD_CLEARED, "is_mother_event": is_groupable(child.event_type)},
                )
                if not is_groupable(child.event_type):
                    _correct_drift(store, [child])

            remaining = store.fetch_events_by_parent(mother_id)
            if not remaining:
                store.update_event(mother_id, dict(_MOTHER_CLEARED))
                log.info("Mother %s has no children left, demoted", mother_id)
    except (GroupingError, StoreError) as exc:
        log.error("Error ungrouping specific events %s: %s", ",".join(child_ids), exc)
        return False

    _log_operation("ungroup_specific", mother_id, list(child_ids))
    return True


# ═══════════════════════════════════════════════════════════════════════════
#  Queries
# ═══════════════════════════════════════════════════════════════════════════


def get_grouping_candidates(
    store: EventStoreGateway,
    since: str,
    until: str | None = None,
) -> list[GroupingCandidate]:
    """Ungrouped events per substation that could be grouped by hand."""
    try:
        events = store.fetch_events(since=since, until=until, ungrouped_only=True)
    except StoreError as exc:
        log.error("Failed to fetch grouping candidates: %s", exc)
        return []

    candidates: list[GroupingCandidate] = []
    for substation_id, sub_events in group_by_substation(events).items():
        if len(sub_events) < 2:
            continue
        times = sorted(sub_events, key=lambda e: _ts(e.timestamp))
        candidates.append(
            GroupingCandidate(
                substation_id=substation_id,
                events=sub_events,
                start_ts=times[0].timestamp,
                end_ts=times[-1].timestamp,
            )
        )
    return candidates


def get_grouping_statistics(store: EventStoreGateway) -> GroupingStatistics:
    """Count groups by type and grouped events. Zeros if the store fails."""
    try:
        mothers = store.fetch_all_mother_events()
        children = [c for m in mothers for c in store.fetch_events_by_parent(m.id)]
    except StoreError as exc:
        log.error("Error getting grouping statistics: %s", exc)
        return GroupingStatistics()

    return GroupingStatistics(
        total_groups=len(mothers),
        automatic_groups=sum(1 for m in mothers if m.grouping_type == GroupingType.AUTOMATIC),
        manual_groups=sum(1 for m in mothers if m.grouping_type == GroupingType.MANUAL),
        total_grouped_events=len(mothers) + len(children),
    )
