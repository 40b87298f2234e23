"""Persistence — audit event log and state snapshots."""

from settlement.persistence.event_log import EventKind, EventLog, EventRecord
from settlement.persistence.state_store import StateStore, StoredState

__all__ = ["EventKind", "EventLog", "EventRecord", "StateStore", "StoredState"]
