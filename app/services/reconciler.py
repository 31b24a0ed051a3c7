"""Upsert calendar event drafts against the calendar store"""

import enum
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Optional, Protocol

from app.services.event_mapper import CalendarEventDraft

logger = logging.getLogger(__name__)


class SyncStatus(str, enum.Enum):
    """Sync outcome enumeration"""
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class ReconcileAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"


class CalendarStore(Protocol):
    def find_event_by_key(self, key: str) -> Optional[str]: ...

    def create_event(self, draft: CalendarEventDraft) -> str: ...

    def update_event(self, event_id: str, draft: CalendarEventDraft) -> None: ...


@dataclass
class SyncStats:
    """Per-run counters. Owned by the run that created them."""

    total_items: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    duration_ms: int = 0

    def record(self, action: ReconcileAction):
        if action is ReconcileAction.CREATED:
            self.created += 1
        else:
            self.updated += 1

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ReconciliationEngine:
    """Create-or-update by idempotency key, one draft at a time"""

    def __init__(self, store: CalendarStore):
        self.store = store

    def reconcile(self, draft: CalendarEventDraft) -> ReconcileAction:
        """Update the event carrying the draft's key, or create one.

        Lookup and write are not atomic; callers must not reconcile the same
        key concurrently.
        """
        existing_event_id = self.store.find_event_by_key(draft.idempotency_key)
        if existing_event_id:
            self.store.update_event(existing_event_id, draft)
            return ReconcileAction.UPDATED
        self.store.create_event(draft)
        return ReconcileAction.CREATED

    def reconcile_all(self, drafts: Iterable[CalendarEventDraft], stats: SyncStats) -> SyncStats:
        """Reconcile sequentially; a failing draft is counted and skipped."""
        for draft in drafts:
            try:
                action = self.reconcile(draft)
            except Exception as e:
                logger.error(f"Failed to sync {draft.source_label} item {draft.idempotency_key}: {e}")
                stats.errors += 1
                continue
            stats.record(action)
        return stats
