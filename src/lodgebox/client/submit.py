"""Submit a lodge online, or queue it for later delivery.

A submission is only queued when the online attempt fails for a reason
that may go away (network down, server error, rate limit). Rejections
such as an invalid token or invalid data are returned to the caller,
since replaying them later would fail the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from lodgebox.client.api import APIError
from lodgebox.client.upload import UploadError, merge_image_urls

if TYPE_CHECKING:
    from lodgebox.client.api import SubmissionClient
    from lodgebox.client.outbox import OutboxManager
    from lodgebox.client.sync.trigger import SyncTrigger
    from lodgebox.client.upload import CloudinaryUploader

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """Outcome of a submission.

    Attributes:
        delivered: True if the endpoint accepted the lodge now.
        lodge_id: Id of the created lodge, when delivered.
        queued_id: Outbox id, when the submission was queued instead.
        sync_registered: True if a background sync was registered for it.
    """

    delivered: bool
    lodge_id: str | None = None
    queued_id: str | None = None
    sync_registered: bool = False


class SubmissionService:
    """Entry point used by the application to create lodges."""

    def __init__(
        self,
        client: SubmissionClient,
        outbox: OutboxManager,
        trigger: SyncTrigger,
        uploader: CloudinaryUploader | None = None,
    ) -> None:
        self._client = client
        self._outbox = outbox
        self._trigger = trigger
        self._uploader = uploader

    async def _queue(
        self,
        payload: dict[str, Any],
        units: list[dict[str, Any]],
        auth_token: str,
        attachments: dict[str, str] | None,
    ) -> SubmitResult:
        queued_id = await self._outbox.add_to_outbox(
            payload, units, auth_token, attachments=attachments
        )
        registered = await self._trigger.register_sync()
        return SubmitResult(delivered=False, queued_id=queued_id, sync_registered=registered)

    async def submit(
        self,
        payload: dict[str, Any],
        units: list[dict[str, Any]] | None = None,
        auth_token: str = "",
        attachments: dict[str, str] | None = None,
    ) -> SubmitResult:
        """Create a lodge, queueing it if the endpoint is unreachable.

        Args:
            payload: Lodge record.
            units: Unit records.
            auth_token: Bearer token of the submitting user.
            attachments: Local images to upload first (name -> path).

        Returns:
            Whether the lodge was delivered or queued.

        Raises:
            APIError: If the endpoint rejected the submission outright.
        """
        units = list(units or [])

        if attachments:
            if self._uploader is None:
                logger.info("No image uploader, queueing submission with attachments")
                return await self._queue(payload, units, auth_token, attachments)
            try:
                urls = await self._uploader.upload_all(attachments)
            except UploadError as e:
                logger.warning("Image upload failed, queueing submission: %s", e)
                return await self._queue(payload, units, auth_token, attachments)
            payload = merge_image_urls(payload, urls)

        try:
            created = await self._client.create_lodge(payload, units, auth_token)
        except APIError as e:
            if not e.is_transient:
                raise
            logger.warning("Submission failed, saving to outbox: %s", e)
            return await self._queue(payload, units, auth_token, None)

        logger.info("Lodge created: %s", created.lodge_id)
        return SubmitResult(delivered=True, lodge_id=created.lodge_id)
