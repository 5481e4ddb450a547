"""Deferred execution of sync passes.

This module provides:
- DeferredRunner: Host facility that runs registered sync tags later
- SyncRegistration: Handle used to request a run for a tag
- SyncEvent: Event delivered to listeners when a tag fires

The runner plays the part a browser's Background Sync plays for a web app:
callers register a named tag, and the runner fires a ``SyncEvent`` for it
at a time of its choosing, retrying the whole event with exponential
backoff when a listener fails. Individual outbox entries are never retried
here.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_BACKOFF = 5.0  # seconds
DEFAULT_MAX_BACKOFF = 300.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Seconds between connectivity checks while offline
NETWORK_CHECK_INTERVAL = 5.0


@dataclass
class SyncEvent:
    """A sync event fired for a registered tag.

    Attributes:
        tag: Tag the event was registered under.
        attempt: 1 for the first run, incremented on each retry.
        last_chance: True if no retry will follow a failure.
    """

    tag: str
    attempt: int = 1
    last_chance: bool = False


SyncListener = Callable[[SyncEvent], Awaitable[None]]


class SyncRegistration:
    """Handle returned by DeferredRunner.ready()."""

    def __init__(self, runner: DeferredRunner) -> None:
        self._runner = runner

    async def register(self, tag: str) -> None:
        """Request a sync event for a tag.

        Registering a tag that is already pending does not add a second run.
        Registering a tag while it is firing runs it again, from attempt 1,
        once the current run ends.
        """
        self._runner._request(tag)

    async def get_tags(self) -> list[str]:
        """List tags waiting to fire."""
        return self._runner.pending_tags()


class DeferredRunner:
    """Runs sync listeners for registered tags on an asyncio scheduler."""

    supported = True

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        connectivity_check: Callable[[], Awaitable[bool]] | None = None,
        network_check_interval: float = NETWORK_CHECK_INTERVAL,
    ) -> None:
        """Initialize the runner.

        Args:
            max_attempts: Runs per registration before the tag is dropped.
            initial_backoff: Delay before the first retry, in seconds.
            max_backoff: Maximum delay between retries, in seconds.
            backoff_multiplier: Multiplier applied after each failed run.
            connectivity_check: Optional coroutine returning False while offline.
            network_check_interval: Seconds to wait before re-checking connectivity.
        """
        self._max_attempts = max_attempts
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._backoff_multiplier = backoff_multiplier
        self._connectivity_check = connectivity_check
        self._network_check_interval = network_check_interval
        self._listeners: list[SyncListener] = []
        self._pending: set[str] = set()
        self._active: set[str] = set()
        self._refire: set[str] = set()
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        """True once ready() has started the scheduler."""
        return self._scheduler is not None

    def add_listener(self, listener: SyncListener) -> None:
        """Register a coroutine called for every sync event."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SyncListener) -> None:
        """Unregister a sync listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def pending_tags(self) -> list[str]:
        """Tags registered and not yet fired."""
        return sorted(self._pending)

    @property
    def idle(self) -> bool:
        """True if no tag is waiting to fire or currently firing."""
        return not self._pending and not self._active

    async def ready(self) -> SyncRegistration:
        """Start the scheduler if needed and return a registration handle."""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
            self._scheduler.start()
            logger.debug("Deferred runner started")
        return SyncRegistration(self)

    def stop(self) -> None:
        """Stop the scheduler, dropping pending runs."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._pending.clear()
            self._refire.clear()
            logger.debug("Deferred runner stopped")

    def backoff_for(self, attempt: int) -> float:
        """Delay before the run following a failed attempt."""
        delay = self._initial_backoff * self._backoff_multiplier ** (attempt - 1)
        return min(delay, self._max_backoff)

    def _schedule(self, tag: str, attempt: int, delay: float) -> None:
        if self._scheduler is None:
            raise RuntimeError("Deferred runner is not started")
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay)
        self._scheduler.add_job(
            self._run,
            trigger=DateTrigger(run_date=run_date),
            args=[tag, attempt],
            id=f"sync:{tag}",
            name=f"Sync {tag}",
            replace_existing=True,
            # The finishing run still counts as an instance when its follow-up is queued
            max_instances=2,
            misfire_grace_time=None,
        )
        self._pending.add(tag)

    def _request(self, tag: str) -> None:
        if tag in self._active:
            self._refire.add(tag)
            self._pending.add(tag)
            logger.debug("Sync %r is running, queued another run", tag)
            return
        self._schedule(tag, attempt=1, delay=0.0)

    async def dispatch(self, event: SyncEvent) -> None:
        """Fire an event to every listener, in registration order.

        Raises:
            Exception: Whatever the first failing listener raised.
        """
        for listener in list(self._listeners):
            await listener(event)

    async def _run(self, tag: str, attempt: int) -> None:
        """Job function for a scheduled sync event."""
        self._pending.discard(tag)
        self._active.add(tag)
        follow_up: tuple[int, float] | None = None
        try:
            follow_up = await self._fire(tag, attempt)
        finally:
            self._active.discard(tag)
            if tag in self._refire:
                self._refire.discard(tag)
                follow_up = (1, 0.0)
            if follow_up is not None:
                if self._scheduler is not None:
                    self._schedule(tag, *follow_up)
                else:
                    self._pending.discard(tag)

    async def _fire(self, tag: str, attempt: int) -> tuple[int, float] | None:
        """Fire one event; return the (attempt, delay) of the next run, if any."""
        if self._connectivity_check is not None and not await self._connectivity_check():
            logger.info(
                "Offline, deferring sync %r for %.0fs", tag, self._network_check_interval
            )
            return attempt, self._network_check_interval

        last_chance = attempt >= self._max_attempts
        event = SyncEvent(tag=tag, attempt=attempt, last_chance=last_chance)
        try:
            await self.dispatch(event)
        except Exception as e:
            if last_chance:
                logger.error(
                    "Sync %r failed after %d attempts, giving up: %s", tag, attempt, e
                )
                return None
            delay = self.backoff_for(attempt)
            logger.warning(
                "Sync %r attempt %d/%d failed: %s. Retrying in %.1fs...",
                tag,
                attempt,
                self._max_attempts,
                e,
                delay,
            )
            return attempt + 1, delay

        logger.info("Sync %r completed", tag)
        return None
