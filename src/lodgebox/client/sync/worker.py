"""Background reconciliation of the outbox.

The worker is the only component that delivers queued work without a
user present. It runs once per sync event:

1. Read the outbox; stop if it is empty.
2. Walk entries in stored order:
   - entries with attachments are skipped and left for the foreground,
     since uploading images needs credentials this context does not hold;
   - other entries are posted to the submission endpoint;
   - on success the entry is removed (re-reading the outbox first) and
     SYNC_SUCCESS is broadcast to every open application instance;
   - on failure the error propagates and the remaining entries wait for
     the next run of the whole event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lodgebox.client.api import APIError
from lodgebox.client.broadcast import SYNC_SUCCESS, SyncMessage
from lodgebox.client.sync.trigger import SYNC_TAG

if TYPE_CHECKING:
    from lodgebox.client.api import SubmissionClient
    from lodgebox.client.broadcast import ClientHub
    from lodgebox.client.outbox import OutboxManager
    from lodgebox.client.sync.scheduler import SyncEvent

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of a completed reconciliation pass."""

    delivered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class ReconciliationWorker:
    """Drains the outbox against the submission endpoint."""

    def __init__(
        self,
        outbox: OutboxManager,
        client: SubmissionClient,
        hub: ClientHub,
        tag: str = SYNC_TAG,
    ) -> None:
        """Initialize the worker.

        Args:
            outbox: Outbox to drain.
            client: Client for the submission endpoint.
            hub: Application instances to notify.
            tag: Sync tag this worker answers to.
        """
        self._outbox = outbox
        self._client = client
        self._hub = hub
        self._tag = tag

    async def handle_sync(self, event: SyncEvent) -> None:
        """Sync listener: reconcile when the event carries our tag."""
        if event.tag != self._tag:
            return
        await self.sync_outbox()

    async def sync_outbox(self) -> ReconcileResult:
        """Deliver every deliverable entry, in order.

        Returns:
            Ids delivered and ids skipped for the foreground.

        Raises:
            APIError: On the first delivery failure.
        """
        result = ReconcileResult()
        outbox = await self._outbox.get_outbox()
        if not outbox:
            return result

        logger.info("Syncing outbox: %d item(s)", len(outbox))

        for item in outbox:
            if item.needs_foreground:
                logger.info(
                    "Skipping item %s (requires image upload - waiting for foreground)",
                    item.id,
                )
                result.skipped.append(item.id)
                continue

            try:
                await self._client.create_lodge(item.payload, item.units, item.auth_token)
            except APIError as e:
                logger.error("Sync failed for item %s: %s", item.id, e)
                raise

            await self._outbox.remove_from_outbox(item.id)
            await self._hub.broadcast(SyncMessage(type=SYNC_SUCCESS, id=item.id))
            result.delivered.append(item.id)

        logger.info(
            "Outbox sync done: %d delivered, %d skipped",
            len(result.delivered),
            len(result.skipped),
        )
        return result
