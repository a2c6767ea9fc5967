"""Abstract Event Store Gateway consumed by the grouping engine."""

from __future__ import annotations

import abc
import contextlib
from collections.abc import Iterator
from typing import Any

from src.contracts.event import PQEvent


class StoreError(Exception):
    """Raised by a gateway when a read or write fails."""


class EventNotFoundError(StoreError):
    """Raised when an update references an unknown event id."""


class EventStoreGateway(abc.ABC):
    """Read events and write relationship patches.

    Implementations must return *copies*: mutating a returned event never
    changes stored state; only ``update_event`` / ``update_events`` do.
    """

    @abc.abstractmethod
    def fetch_events_by_id(self, ids: list[str]) -> list[PQEvent]:
        """Return the events with the given ids, sorted by timestamp.

        Unknown ids are silently absent from the result.
        """
        ...

    @abc.abstractmethod
    def fetch_events_by_parent(self, mother_id: str) -> list[PQEvent]:
        """Return every event whose ``parent_event_id`` is *mother_id*."""
        ...

    @abc.abstractmethod
    def fetch_all_mother_events(self) -> list[PQEvent]:
        ...

    @abc.abstractmethod
    def fetch_events(
        self,
        since: str | None = None,
        until: str | None = None,
        ungrouped_only: bool = False,
    ) -> list[PQEvent]:
        """Return events in ``[since, until]`` sorted by timestamp."""
        ...

    @abc.abstractmethod
    def update_event(self, event_id: str, patch: dict[str, Any]) -> None:
        """Apply *patch* to one event. Raises StoreError on failure."""
        ...

    @abc.abstractmethod
    def update_events(self, ids: list[str], patch: dict[str, Any]) -> None:
        """Apply the same *patch* to every listed event. Raises StoreError."""
        ...

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        """Group several writes into one atomic unit.

        The default is a no-op for stores without transactions; writes
        then apply one by one as they are issued.
        """
        yield
