"""Outbox reconciliation.

Architecture:
    SyncTrigger → DeferredRunner → ReconciliationWorker → SubmissionClient

Components:
- **SyncTrigger**: Registers the sync tag with the deferred runner
- **DeferredRunner**: Fires sync events later and retries failed events
- **ReconciliationWorker**: Background drain, skips entries with images
- **ForegroundSync**: Interactive drain, uploads images first
"""

from lodgebox.client.sync.foreground import ForegroundSync, SyncReport
from lodgebox.client.sync.scheduler import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_BACKOFF,
    NETWORK_CHECK_INTERVAL,
    DeferredRunner,
    SyncEvent,
    SyncRegistration,
)
from lodgebox.client.sync.trigger import SYNC_TAG, SyncTrigger
from lodgebox.client.sync.worker import ReconcileResult, ReconciliationWorker

__all__ = [
    # Scheduler
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_BACKOFF",
    "NETWORK_CHECK_INTERVAL",
    "DeferredRunner",
    "SyncEvent",
    "SyncRegistration",
    # Trigger
    "SYNC_TAG",
    "SyncTrigger",
    # Workers
    "ForegroundSync",
    "ReconcileResult",
    "ReconciliationWorker",
    "SyncReport",
]
