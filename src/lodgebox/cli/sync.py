"""Sync commands for the lodgebox CLI.

Commands:
- sync: Run one reconciliation pass now
- worker: Deliver the outbox in the background, retrying failed passes
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING

import click

from lodgebox.cli.config import (
    get_endpoint_config,
    get_state_db_path,
    get_upload_config,
    load_config,
)

if TYPE_CHECKING:
    from lodgebox.core.config import EndpointConfig, UploadConfig

# Seconds between checks for the worker to finish
WORKER_POLL_INTERVAL = 0.5


def _require_endpoint() -> tuple[EndpointConfig, UploadConfig | None]:
    config = load_config()
    endpoint = get_endpoint_config(config)
    if endpoint is None:
        click.echo("Error: Not configured. Run 'lodgebox configure' first.", err=True)
        sys.exit(1)
    return endpoint, get_upload_config(config)


async def _sync_once(
    endpoint: EndpointConfig,
    upload_config: UploadConfig | None,
    foreground: bool,
) -> tuple[int, int, int, int]:
    """Run one pass; returns (delivered, skipped, failed, still pending)."""
    from lodgebox.client.api import SubmissionClient
    from lodgebox.client.broadcast import ClientHub
    from lodgebox.client.outbox import OutboxManager
    from lodgebox.client.store import OutboxStore
    from lodgebox.client.sync import ForegroundSync, ReconciliationWorker
    from lodgebox.client.upload import CloudinaryUploader

    store = OutboxStore(get_state_db_path())
    client = SubmissionClient(endpoint)
    uploader = CloudinaryUploader(upload_config) if upload_config and foreground else None
    manager = OutboxManager(store)
    try:
        if foreground:
            report = await ForegroundSync(manager, client, uploader).sync_outbox()
            delivered, skipped, failed = (
                len(report.delivered),
                len(report.skipped),
                len(report.failed),
            )
        else:
            result = await ReconciliationWorker(manager, client, ClientHub()).sync_outbox()
            delivered, skipped, failed = len(result.delivered), len(result.skipped), 0
        return delivered, skipped, failed, await manager.pending_count()
    finally:
        await client.close()
        if uploader is not None:
            await uploader.close()
        store.close()


@click.command()
@click.option(
    "--foreground",
    is_flag=True,
    help="Also deliver submissions with images (uploads them first).",
)
def sync(foreground: bool) -> None:
    """Deliver queued submissions now.

    Without --foreground the pass behaves like the background worker:
    it stops at the first failure and skips submissions with images.
    """
    from lodgebox.client.api import APIError
    from lodgebox.client.store import StoreError

    endpoint, upload_config = _require_endpoint()
    try:
        delivered, skipped, failed, pending = asyncio.run(
            _sync_once(endpoint, upload_config, foreground)
        )
    except APIError as e:
        click.echo(f"Error: Sync failed: {e}", err=True)
        sys.exit(1)
    except StoreError as e:
        click.echo(f"Error: Outbox unavailable: {e}", err=True)
        sys.exit(1)

    click.echo(
        f"Delivered {delivered}, skipped {skipped}, failed {failed}, "
        f"{pending} still pending."
    )
    if failed:
        sys.exit(1)


async def _run_worker(endpoint: EndpointConfig, max_attempts: int, backoff: float) -> int:
    from lodgebox.client.api import SubmissionClient
    from lodgebox.client.broadcast import ClientHub
    from lodgebox.client.outbox import OutboxManager
    from lodgebox.client.store import OutboxStore
    from lodgebox.client.sync import DeferredRunner, ReconciliationWorker, SyncTrigger

    store = OutboxStore(get_state_db_path())
    client = SubmissionClient(endpoint)
    manager = OutboxManager(store)
    runner = DeferredRunner(
        max_attempts=max_attempts,
        initial_backoff=backoff,
        connectivity_check=client.health_check,
    )
    worker = ReconciliationWorker(manager, client, ClientHub())
    runner.add_listener(worker.handle_sync)
    try:
        if not await SyncTrigger(runner).register_sync():
            return await manager.pending_count()
        while not runner.idle:
            await asyncio.sleep(WORKER_POLL_INTERVAL)
        return sum(1 for entry in await manager.get_outbox() if not entry.needs_foreground)
    finally:
        runner.stop()
        await client.close()
        store.close()


@click.command()
@click.option("--max-attempts", default=3, show_default=True, help="Passes before giving up.")
@click.option("--backoff", default=5.0, show_default=True, help="Initial retry delay in seconds.")
def worker(max_attempts: int, backoff: float) -> None:
    """Deliver the outbox in the background until it is drained.

    Failed passes are retried with exponential backoff; the worker waits
    for the server to be reachable before each pass.
    """
    from lodgebox.client.store import StoreError

    endpoint, _ = _require_endpoint()
    try:
        remaining = asyncio.run(_run_worker(endpoint, max_attempts, backoff))
    except StoreError as e:
        click.echo(f"Error: Outbox unavailable: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("Interrupted.")
        sys.exit(130)

    if remaining:
        click.echo(f"{remaining} submission(s) could not be delivered.", err=True)
        sys.exit(1)
    click.echo("Outbox drained.")
