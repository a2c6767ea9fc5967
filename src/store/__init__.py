"""Event Store Gateway — the persistence seam of the core.

Modules
───────
  gateway — abstract gateway contract and store errors
  memory  — in-memory implementation with snapshot transactions
"""

from src.store.gateway import EventNotFoundError, EventStoreGateway, StoreError
from src.store.memory import InMemoryEventStore

__all__ = ["EventNotFoundError", "EventStoreGateway", "InMemoryEventStore", "StoreError"]
