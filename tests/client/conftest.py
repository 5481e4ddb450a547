"""Shared fixtures for client tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from lodgebox.client.broadcast import AppClient, ClientHub
from lodgebox.client.outbox import OutboxManager
from lodgebox.client.store import OutboxStore
from lodgebox.core.config import EndpointConfig

BASE_URL = "http://test"
CREATE_URL = f"{BASE_URL}/api/lodges/create"


@pytest.fixture
def config() -> EndpointConfig:
    """Create an EndpointConfig pointing at the mocked server."""
    return EndpointConfig(base_url=BASE_URL)


@pytest.fixture
def store(tmp_path: Path) -> Generator[OutboxStore, None, None]:
    """Create an OutboxStore on a temporary database."""
    s = OutboxStore(tmp_path / "outbox.db")
    yield s
    s.close()


@pytest.fixture
def manager(store: OutboxStore) -> OutboxManager:
    """Create an OutboxManager over the test store."""
    return OutboxManager(store)


@pytest.fixture
def hub() -> ClientHub:
    """Create an empty ClientHub."""
    return ClientHub()


@pytest.fixture
def app_client() -> AppClient:
    """Create an application instance."""
    return AppClient("tab-1")
