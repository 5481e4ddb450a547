"""Outbox sync run by the interactive application.

Unlike the background worker, the foreground can upload images, so it
resolves entries the worker skips. A failed entry does not stop the pass:
the user is present and sees what is still pending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lodgebox.client.api import APIError
from lodgebox.client.broadcast import SYNC_SUCCESS, SyncMessage
from lodgebox.client.upload import UploadError, merge_image_urls

if TYPE_CHECKING:
    from lodgebox.client.api import SubmissionClient
    from lodgebox.client.broadcast import ClientHub
    from lodgebox.client.outbox import OutboxManager, PendingSubmission
    from lodgebox.client.upload import CloudinaryUploader

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of a foreground sync pass."""

    delivered: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # id -> error
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class ForegroundSync:
    """Drains the whole outbox, uploading attachments when possible."""

    def __init__(
        self,
        outbox: OutboxManager,
        client: SubmissionClient,
        uploader: CloudinaryUploader | None = None,
        hub: ClientHub | None = None,
    ) -> None:
        self._outbox = outbox
        self._client = client
        self._uploader = uploader
        self._hub = hub

    async def _deliver(self, item: PendingSubmission) -> None:
        payload = item.payload
        if item.needs_foreground and self._uploader is not None:
            urls = await self._uploader.upload_all(item.attachments)
            payload = merge_image_urls(payload, urls)
        await self._client.create_lodge(payload, item.units, item.auth_token)

    async def sync_outbox(self) -> SyncReport:
        """Try to deliver every queued submission once."""
        report = SyncReport()

        for item in await self._outbox.get_outbox():
            if item.needs_foreground and self._uploader is None:
                logger.info("Skipping item %s (no image uploader configured)", item.id)
                report.skipped.append(item.id)
                continue

            try:
                await self._deliver(item)
            except (APIError, UploadError) as e:
                logger.warning("Foreground sync failed for item %s: %s", item.id, e)
                report.failed[item.id] = str(e)
                continue

            await self._outbox.remove_from_outbox(item.id)
            if self._hub is not None:
                await self._hub.broadcast(SyncMessage(type=SYNC_SUCCESS, id=item.id))
            report.delivered.append(item.id)

        if report.delivered or report.failed:
            logger.info(
                "Foreground sync: %d delivered, %d failed, %d skipped",
                len(report.delivered),
                len(report.failed),
                len(report.skipped),
            )
        return report
