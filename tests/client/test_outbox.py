"""Tests for the outbox manager."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from lodgebox.client.outbox import (
    OUTBOX_KEY,
    OutboxManager,
    PendingSubmission,
    _IdGenerator,
    derive_status,
)
from lodgebox.client.store import OutboxStore, StoreError
from lodgebox.core.types import SubmissionStatus


class TestPendingSubmission:
    """Tests for PendingSubmission dataclass."""

    def test_from_dict(self) -> None:
        """Should create PendingSubmission from stored dictionary."""
        data = {
            "id": "1700000000000",
            "payload": {"title": "Room 1", "price": 150000},
            "units": [{"name": "Self-con", "price": 150000}],
            "authToken": "tok",
            "createdAt": 1700000000.5,
            "attachments": {"image_0": "/tmp/a.jpg"},
        }

        item = PendingSubmission.from_dict(data)

        assert item.id == "1700000000000"
        assert item.payload == {"title": "Room 1", "price": 150000}
        assert item.units == [{"name": "Self-con", "price": 150000}]
        assert item.auth_token == "tok"
        assert item.created_at == 1700000000.5
        assert item.attachments == {"image_0": "/tmp/a.jpg"}

    def test_from_dict_defaults(self) -> None:
        """Missing optional fields should get empty defaults."""
        item = PendingSubmission.from_dict({"id": 5})

        assert item.id == "5"
        assert item.payload == {}
        assert item.units == []
        assert item.auth_token == ""
        assert item.attachments == {}

    def test_to_dict_round_trip(self) -> None:
        """to_dict output should load back to an equal object."""
        item = PendingSubmission(
            id="1",
            payload={"title": "x"},
            units=[],
            auth_token="t",
            created_at=1.0,
        )

        assert PendingSubmission.from_dict(item.to_dict()) == item

    def test_needs_foreground(self) -> None:
        """Entries with attachments need the foreground."""
        plain = PendingSubmission("1", {}, [], "", 0.0)
        with_images = PendingSubmission("2", {}, [], "", 0.0, {"a": "/a.jpg"})

        assert plain.needs_foreground is False
        assert with_images.needs_foreground is True


class TestDeriveStatus:
    """Tests for derive_status()."""

    def test_pending(self) -> None:
        """Plain entries are deliverable by the worker."""
        item = PendingSubmission("1", {}, [], "", 0.0)
        assert derive_status(item) == SubmissionStatus.PENDING

    def test_awaiting_foreground(self) -> None:
        """Entries with images wait for the foreground."""
        item = PendingSubmission("1", {}, [], "", 0.0, {"a": "/a.jpg"})
        assert derive_status(item) == SubmissionStatus.AWAITING_FOREGROUND


class TestIdGenerator:
    """Tests for id generation."""

    def test_uses_millisecond_clock(self) -> None:
        """Ids should be the current time in milliseconds."""
        gen = _IdGenerator()
        with patch("lodgebox.client.outbox.time.time", return_value=1700000000.5):
            assert gen.next_id() == "1700000000500"

    def test_monotonic_under_frozen_clock(self) -> None:
        """Ids should keep increasing when the clock does not move."""
        gen = _IdGenerator()
        with patch("lodgebox.client.outbox.time.time", return_value=1000.0):
            ids = [gen.next_id() for _ in range(3)]

        assert ids == ["1000000", "1000001", "1000002"]

    def test_skips_taken_ids(self) -> None:
        """Ids already in the outbox should not be reused."""
        gen = _IdGenerator()
        with patch("lodgebox.client.outbox.time.time", return_value=1000.0):
            assert gen.next_id(["1000000", "1000001"]) == "1000002"


class TestAddAndGet:
    """Tests for add_to_outbox and get_outbox."""

    @pytest.mark.asyncio
    async def test_empty_outbox(self, manager: OutboxManager) -> None:
        """An outbox that was never written should be empty."""
        assert await manager.get_outbox() == []
        assert await manager.pending_count() == 0

    @pytest.mark.asyncio
    async def test_add_returns_id(self, manager: OutboxManager) -> None:
        """Adding should return the new entry's id."""
        submission_id = await manager.add_to_outbox({"title": "Room 1"}, [])

        outbox = await manager.get_outbox()
        assert len(outbox) == 1
        assert outbox[0].id == submission_id

    @pytest.mark.asyncio
    async def test_round_trip(self, manager: OutboxManager) -> None:
        """The new entry should carry exactly the payload and units given."""
        payload = {"title": "Room 1", "amenities": ["water", "light"]}
        units = [{"name": "Single", "price": 120000, "total_units": 4}]

        submission_id = await manager.add_to_outbox(payload, units, auth_token="tok")

        item = await manager.get(submission_id)
        assert item is not None
        assert item.payload == payload
        assert item.units == units
        assert item.auth_token == "tok"
        assert item.created_at > 0
        assert item.attachments == {}

    @pytest.mark.asyncio
    async def test_fifo_order(self, manager: OutboxManager) -> None:
        """Entries should come back in enqueue order."""
        ids = [await manager.add_to_outbox({"title": f"Room {i}"}, []) for i in range(5)]

        outbox = await manager.get_outbox()
        assert [item.id for item in outbox] == ids
        assert [item.payload["title"] for item in outbox] == [f"Room {i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_ids_unique(self, manager: OutboxManager) -> None:
        """Rapid enqueues should never share an id."""
        with patch("lodgebox.client.outbox.time.time", return_value=1000.0):
            ids = [await manager.add_to_outbox({}, []) for _ in range(4)]

        assert len(set(ids)) == 4

    @pytest.mark.asyncio
    async def test_stores_attachments(self, manager: OutboxManager) -> None:
        """Attachments should be persisted with the entry."""
        submission_id = await manager.add_to_outbox(
            {"title": "Room 1"}, [], attachments={"image_0": "/photos/a.jpg"}
        )

        item = await manager.get(submission_id)
        assert item is not None
        assert item.attachments == {"image_0": "/photos/a.jpg"}

    @pytest.mark.asyncio
    async def test_get_unknown(self, manager: OutboxManager) -> None:
        """get() should return None for unknown ids."""
        assert await manager.get("nope") is None

    @pytest.mark.asyncio
    async def test_uses_well_known_key(
        self, manager: OutboxManager, store: OutboxStore
    ) -> None:
        """The outbox should live under the well-known key."""
        await manager.add_to_outbox({"title": "Room 1"}, [])

        assert await store.keys() == [OUTBOX_KEY]
        assert manager.key == OUTBOX_KEY


class TestRemoveAndClear:
    """Tests for remove_from_outbox and clear_outbox."""

    @pytest.mark.asyncio
    async def test_remove(self, manager: OutboxManager) -> None:
        """Removing should drop only the matching entry, keeping order."""
        a = await manager.add_to_outbox({"title": "A"}, [])
        b = await manager.add_to_outbox({"title": "B"}, [])
        c = await manager.add_to_outbox({"title": "C"}, [])

        await manager.remove_from_outbox(b)

        assert [item.id for item in await manager.get_outbox()] == [a, c]

    @pytest.mark.asyncio
    async def test_remove_unknown_is_noop(
        self, manager: OutboxManager, store: OutboxStore
    ) -> None:
        """Removing an unknown id should leave the outbox unchanged."""
        await manager.add_to_outbox({"title": "A"}, [])
        before = await store.read(OUTBOX_KEY)

        await manager.remove_from_outbox("does-not-exist")

        assert await store.read(OUTBOX_KEY) == before

    @pytest.mark.asyncio
    async def test_remove_from_empty(self, manager: OutboxManager) -> None:
        """Removing from an empty outbox should not raise."""
        await manager.remove_from_outbox("anything")
        assert await manager.get_outbox() == []

    @pytest.mark.asyncio
    async def test_remove_keeps_concurrent_enqueue(self, tmp_path: Path) -> None:
        """An entry queued by another context after our read must survive removal."""
        app_store = OutboxStore(tmp_path / "outbox.db")
        worker_store = OutboxStore(tmp_path / "outbox.db")
        app = OutboxManager(app_store)
        worker = OutboxManager(worker_store)

        first = await app.add_to_outbox({"title": "first"}, [])
        snapshot = await worker.get_outbox()
        second = await app.add_to_outbox({"title": "second"}, [])

        await worker.remove_from_outbox(snapshot[0].id)

        assert [item.id for item in await app.get_outbox()] == [second]
        assert first != second

        app_store.close()
        worker_store.close()

    @pytest.mark.asyncio
    async def test_clear(self, manager: OutboxManager, store: OutboxStore) -> None:
        """Clearing should delete the outbox key."""
        await manager.add_to_outbox({"title": "A"}, [])
        await manager.add_to_outbox({"title": "B"}, [])

        await manager.clear_outbox()

        assert await manager.get_outbox() == []
        assert await store.read(OUTBOX_KEY) is None


class TestStoreFailures:
    """Store failures should reach the caller."""

    @pytest.mark.asyncio
    async def test_read_failure_propagates(self) -> None:
        """A failing read should raise from get_outbox."""
        store = AsyncMock()
        store.read.side_effect = StoreError("disk gone")
        manager = OutboxManager(store)

        with pytest.raises(StoreError):
            await manager.get_outbox()

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self) -> None:
        """A failing write should raise from add_to_outbox, without retry."""
        store = AsyncMock()
        store.read.return_value = None
        store.write.side_effect = StoreError("read-only")
        manager = OutboxManager(store)

        with pytest.raises(StoreError):
            await manager.add_to_outbox({"title": "A"}, [])
        assert store.write.await_count == 1
