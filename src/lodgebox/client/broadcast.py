"""Notifications from sync passes to open application instances.

This module provides:
- SyncMessage: The message posted after a submission is delivered
- AppClient: An application instance that receives messages
- ClientHub: Registry of application instances and fan-out broadcast

Delivery is fire-and-forget: no acknowledgement is expected, and a client
that fails to accept a message is dropped from the hub.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SYNC_SUCCESS = "SYNC_SUCCESS"


@dataclass
class SyncMessage:
    """Message broadcast to application instances."""

    type: str
    id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire representation."""
        return {"type": self.type, "id": self.id}


class MessageClient(Protocol):
    """Anything that can receive a posted message."""

    def post_message(self, message: dict[str, Any]) -> None: ...


class AppClient:
    """An application instance listening for sync notifications.

    Messages are buffered in an asyncio queue until the instance reads them.
    """

    def __init__(self, name: str = "app") -> None:
        self.name = name
        self._inbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def __repr__(self) -> str:
        return f"AppClient({self.name!r})"

    def post_message(self, message: dict[str, Any]) -> None:
        """Queue a message for this instance."""
        self._inbox.put_nowait(message)

    async def next_message(self, timeout: float | None = None) -> dict[str, Any]:
        """Wait for the next message.

        Raises:
            asyncio.TimeoutError: If no message arrives within timeout.
        """
        return await asyncio.wait_for(self._inbox.get(), timeout)

    def drain(self) -> list[dict[str, Any]]:
        """Return every message received so far without waiting."""
        messages = []
        while not self._inbox.empty():
            messages.append(self._inbox.get_nowait())
        return messages


class ClientHub:
    """Registry of active application instances.

    Shared between the interactive application and the sync worker running
    in the same process.
    """

    def __init__(self) -> None:
        self._clients: list[MessageClient] = []
        self._lock = asyncio.Lock()

    async def connect(self, client: MessageClient) -> None:
        """Register an application instance."""
        async with self._lock:
            if client not in self._clients:
                self._clients.append(client)
        logger.debug("Client connected: %r", client)

    async def disconnect(self, client: MessageClient) -> None:
        """Unregister an application instance."""
        async with self._lock:
            if client in self._clients:
                self._clients.remove(client)
        logger.debug("Client disconnected: %r", client)

    async def match_all(self) -> list[MessageClient]:
        """List every connected application instance."""
        async with self._lock:
            return list(self._clients)

    async def broadcast(self, message: SyncMessage) -> int:
        """Post a message to every connected instance.

        Args:
            message: Message to send.

        Returns:
            Number of instances that accepted the message.
        """
        data = message.to_dict()
        sent = 0
        async with self._lock:
            disconnected = []
            for client in self._clients:
                try:
                    client.post_message(data)
                    sent += 1
                except Exception:
                    logger.warning("Failed to notify %r, dropping it", client)
                    disconnected.append(client)

            # Clean up disconnected
            for client in disconnected:
                self._clients.remove(client)

        logger.debug("Broadcast %s for %s to %d client(s)", message.type, message.id, sent)
        return sent
