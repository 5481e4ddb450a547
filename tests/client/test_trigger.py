"""Tests for background sync registration."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from lodgebox.client.sync.scheduler import DeferredRunner
from lodgebox.client.sync.trigger import SYNC_TAG, SyncTrigger


class TestRegisterSync:
    """Tests for SyncTrigger.register_sync()."""

    @pytest.mark.asyncio
    async def test_unavailable(self, caplog: pytest.LogCaptureFixture) -> None:
        """Without a runner it should warn and return False."""
        with caplog.at_level(logging.WARNING, logger="lodgebox"):
            assert await SyncTrigger(None).register_sync() is False

        assert "Background sync not supported" in caplog.text

    @pytest.mark.asyncio
    async def test_unsupported_runner(self) -> None:
        """A runner reporting no support should be treated as missing."""
        runner = MagicMock()
        runner.supported = False

        assert await SyncTrigger(runner).register_sync() is False
        runner.ready.assert_not_called()

    @pytest.mark.asyncio
    async def test_registers_tag(self) -> None:
        """Should wait for the runner and register the sync tag."""
        registration = MagicMock()
        registration.register = AsyncMock()
        runner = MagicMock()
        runner.supported = True
        runner.ready = AsyncMock(return_value=registration)

        assert await SyncTrigger(runner).register_sync() is True
        registration.register.assert_awaited_once_with(SYNC_TAG)

    @pytest.mark.asyncio
    async def test_ready_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """A failing runner should be logged, not raised."""
        runner = MagicMock()
        runner.supported = True
        runner.ready = AsyncMock(side_effect=RuntimeError("no event loop"))

        with caplog.at_level(logging.ERROR, logger="lodgebox"):
            assert await SyncTrigger(runner).register_sync() is False

        assert "Failed to register background sync" in caplog.text

    @pytest.mark.asyncio
    async def test_register_failure_logged(self) -> None:
        """A rejected registration should return False."""
        registration = MagicMock()
        registration.register = AsyncMock(side_effect=RuntimeError("rejected"))
        runner = MagicMock()
        runner.supported = True
        runner.ready = AsyncMock(return_value=registration)

        assert await SyncTrigger(runner).register_sync() is False

    @pytest.mark.asyncio
    async def test_with_deferred_runner(self) -> None:
        """A real runner should end up with the tag pending."""
        runner = DeferredRunner()
        try:
            assert await SyncTrigger(runner, tag="custom").register_sync() is True
            assert runner.pending_tags() == ["custom"]
        finally:
            runner.stop()
