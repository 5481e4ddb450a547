"""Registration of background sync requests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lodgebox.client.sync.scheduler import DeferredRunner

logger = logging.getLogger(__name__)

SYNC_TAG = "zik-sync-lodges"


class SyncTrigger:
    """Asks the deferred runner to reconcile the outbox later.

    Registration is best-effort: a missing runner or a failed registration
    is logged and the application falls back to foreground sync.
    """

    def __init__(self, runner: DeferredRunner | None, tag: str = SYNC_TAG) -> None:
        self._runner = runner
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag

    async def register_sync(self) -> bool:
        """Register the sync tag with the deferred runner.

        Returns:
            True if the tag was registered.
        """
        if self._runner is None or not getattr(self._runner, "supported", False):
            logger.warning("Background sync not supported")
            return False

        try:
            registration = await self._runner.ready()
            await registration.register(self._tag)
        except Exception as e:
            logger.error("Failed to register background sync: %s", e)
            return False

        logger.info("Background sync registered")
        return True
