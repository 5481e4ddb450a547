"""Outbox of lodge submissions waiting for delivery.

This module provides:
- PendingSubmission: A queued creation request
- OutboxManager: Typed operations over the outbox key of an OutboxStore
- derive_status: Computes the delivery status of a queued entry

The outbox is a single JSON list stored under ``OUTBOX_KEY``. Entries are
appended at the tail and may be removed from anywhere; they are never
edited in place.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lodgebox.core.types import SubmissionStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lodgebox.client.store import OutboxStore

logger = logging.getLogger(__name__)

OUTBOX_KEY = "zik_lodge_outbox"


@dataclass
class PendingSubmission:
    """A lodge creation request waiting in the outbox.

    Attributes:
        id: Identifier unique within the outbox (millisecond timestamp).
        payload: Lodge record, forwarded as ``lodgeData``.
        units: Unit records, forwarded as ``units``.
        auth_token: Bearer token captured when the entry was queued.
        created_at: Epoch seconds at enqueue time.
        attachments: Image name -> local file path, still to be uploaded.
    """

    id: str
    payload: dict[str, Any]
    units: list[dict[str, Any]]
    auth_token: str
    created_at: float
    attachments: dict[str, str] = field(default_factory=dict)

    @property
    def needs_foreground(self) -> bool:
        """True if the entry carries images the worker must not upload."""
        return bool(self.attachments)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingSubmission:
        """Create from a stored dictionary."""
        return cls(
            id=str(data["id"]),
            payload=data.get("payload") or {},
            units=data.get("units") or [],
            auth_token=data.get("authToken", ""),
            created_at=float(data.get("createdAt", 0.0)),
            attachments=data.get("attachments") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "payload": self.payload,
            "units": self.units,
            "authToken": self.auth_token,
            "createdAt": self.created_at,
            "attachments": self.attachments,
        }


def derive_status(submission: PendingSubmission) -> SubmissionStatus:
    """Derive the delivery status of a queued entry.

    Args:
        submission: The queued entry.

    Returns:
        AWAITING_FOREGROUND if it has attachments, PENDING otherwise.
    """
    if submission.needs_foreground:
        return SubmissionStatus.AWAITING_FOREGROUND
    return SubmissionStatus.PENDING


class _IdGenerator:
    """Millisecond-clock ids that never go backwards within a process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next_id(self, taken: Iterable[str] = ()) -> str:
        taken_ids = set(taken)
        with self._lock:
            candidate = max(int(time.time() * 1000), self._last + 1)
            while str(candidate) in taken_ids:
                candidate += 1
            self._last = candidate
        return str(candidate)


_id_generator = _IdGenerator()


class OutboxManager:
    """Typed operations over the outbox stored in an OutboxStore.

    Store failures propagate to the caller; nothing is retried here.
    """

    def __init__(self, store: OutboxStore, key: str = OUTBOX_KEY) -> None:
        """Initialize the manager.

        Args:
            store: Durable store holding the outbox.
            key: Storage key of the outbox.
        """
        self._store = store
        self._key = key

    @property
    def key(self) -> str:
        """Storage key of the outbox."""
        return self._key

    async def _load(self) -> list[dict[str, Any]]:
        raw = await self._store.read(self._key)
        return list(raw) if raw else []

    async def add_to_outbox(
        self,
        payload: dict[str, Any],
        units: list[dict[str, Any]] | None = None,
        auth_token: str = "",
        attachments: dict[str, str] | None = None,
    ) -> str:
        """Append a submission to the outbox.

        Does not trigger delivery.

        Args:
            payload: Lodge record.
            units: Unit records (may be empty).
            auth_token: Bearer token used later for delivery.
            attachments: Images still to be uploaded (name -> path).

        Returns:
            The id of the new entry.
        """
        outbox = await self._load()
        submission = PendingSubmission(
            id=_id_generator.next_id(item.get("id") for item in outbox),
            payload=payload,
            units=list(units or []),
            auth_token=auth_token,
            created_at=time.time(),
            attachments=dict(attachments or {}),
        )
        outbox.append(submission.to_dict())
        await self._store.write(self._key, outbox)

        logger.info(
            "Queued submission %s (%d pending)", submission.id, len(outbox)
        )
        return submission.id

    async def get_outbox(self) -> list[PendingSubmission]:
        """Get all pending submissions in enqueue order."""
        return [PendingSubmission.from_dict(item) for item in await self._load()]

    async def get(self, submission_id: str) -> PendingSubmission | None:
        """Get a pending submission by id, or None if it is not queued."""
        for submission in await self.get_outbox():
            if submission.id == submission_id:
                return submission
        return None

    async def pending_count(self) -> int:
        """Number of submissions waiting in the outbox."""
        return len(await self._load())

    async def remove_from_outbox(self, submission_id: str) -> None:
        """Remove a submission after it has been delivered.

        The outbox is re-read right before writing, so entries queued by
        another context since the caller last looked are kept. Removing an
        unknown id is a no-op.
        """
        outbox = await self._load()
        remaining = [item for item in outbox if item.get("id") != submission_id]
        if len(remaining) == len(outbox):
            logger.debug("Submission %s not in outbox, nothing to remove", submission_id)
            return

        await self._store.write(self._key, remaining)
        logger.debug("Removed submission %s (%d left)", submission_id, len(remaining))

    async def clear_outbox(self) -> None:
        """Delete the entire outbox."""
        await self._store.delete(self._key)
        logger.info("Outbox cleared")
