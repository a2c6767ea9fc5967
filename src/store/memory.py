"""In-memory Event Store with snapshot/rollback transactions."""

from __future__ import annotations

import contextlib
import copy
import logging
import threading
from collections.abc import Iterable, Iterator
from dataclasses import replace
from datetime import datetime
from typing import Any

from src.contracts.event import PQEvent
from src.store.gateway import EventNotFoundError, EventStoreGateway, StoreError

log = logging.getLogger(__name__)


def _ts(iso: str) -> datetime:
    return datetime.fromisoformat(iso.replace("Z", "+00:00"))


class InMemoryEventStore(EventStoreGateway):
    """Dict-backed store used by the batch analyzer and the tests.

    Writes inside ``transaction()`` are applied immediately but the state
    captured on entry is restored if the block raises.
    """

    def __init__(self, events: Iterable[PQEvent] = ()) -> None:
        self._events: dict[str, PQEvent] = {}
        self._lock = threading.RLock()
        self._tx_depth = 0
        for ev in events:
            self.add(ev)

    # ── loading ───────────────────────────────────────────────────────────

    def add(self, event: PQEvent) -> None:
        with self._lock:
            if event.id in self._events:
                raise StoreError(f"Duplicate event id: {event.id}")
            self._events[event.id] = copy.deepcopy(event)

    def all_events(self) -> list[PQEvent]:
        with self._lock:
            return self._sorted(self._events.values())

    def get(self, event_id: str) -> PQEvent | None:
        with self._lock:
            ev = self._events.get(event_id)
            return copy.deepcopy(ev) if ev else None

    def __len__(self) -> int:
        return len(self._events)

    # ── reads ─────────────────────────────────────────────────────────────

    @staticmethod
    def _sorted(events: Iterable[PQEvent]) -> list[PQEvent]:
        return [copy.deepcopy(e) for e in sorted(events, key=lambda e: _ts(e.timestamp))]

    def fetch_events_by_id(self, ids: list[str]) -> list[PQEvent]:
        with self._lock:
            return self._sorted(self._events[i] for i in dict.fromkeys(ids) if i in self._events)

    def fetch_events_by_parent(self, mother_id: str) -> list[PQEvent]:
        with self._lock:
            return self._sorted(e for e in self._events.values() if e.parent_event_id == mother_id)

    def fetch_all_mother_events(self) -> list[PQEvent]:
        with self._lock:
            return self._sorted(e for e in self._events.values() if e.is_mother_event)

    def fetch_events(
        self,
        since: str | None = None,
        until: str | None = None,
        ungrouped_only: bool = False,
    ) -> list[PQEvent]:
        lo = _ts(since) if since else None
        hi = _ts(until) if until else None
        with self._lock:
            selected = []
            for e in self._events.values():
                t = _ts(e.timestamp)
                if lo is not None and t < lo:
                    continue
                if hi is not None and t > hi:
                    continue
                if ungrouped_only and e.parent_event_id:
                    continue
                selected.append(e)
            return self._sorted(selected)

    # ── writes ────────────────────────────────────────────────────────────

    def _check_patch(self, patch: dict[str, Any]) -> None:
        unknown = set(patch) - PQEvent.field_names()
        if unknown:
            raise StoreError(f"Unknown field(s) in patch: {', '.join(sorted(unknown))}")
        if "id" in patch:
            raise StoreError("Event id is immutable")

    def update_event(self, event_id: str, patch: dict[str, Any]) -> None:
        self._check_patch(patch)
        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                raise EventNotFoundError(f"Event not found: {event_id}")
            self._events[event_id] = replace(current, **copy.deepcopy(patch))

    def update_events(self, ids: list[str], patch: dict[str, Any]) -> None:
        self._check_patch(patch)
        with self._lock:
            missing = [i for i in ids if i not in self._events]
            if missing:
                raise EventNotFoundError(f"Events not found: {', '.join(missing)}")
            for i in ids:
                self._events[i] = replace(self._events[i], **copy.deepcopy(patch))

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = dict(self._events) if self._tx_depth == 0 else None
            self._tx_depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._events = snapshot
                    log.warning("Transaction rolled back (%d events restored)", len(snapshot))
                raise
            finally:
                self._tx_depth -= 1
