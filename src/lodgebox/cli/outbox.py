"""Outbox commands for the lodgebox CLI.

Commands:
- outbox list: Show queued submissions
- outbox remove: Drop one queued submission
- outbox clear: Drop every queued submission
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING, TypeVar

import click

from lodgebox.cli.config import get_state_db_path

if TYPE_CHECKING:
    from lodgebox.client.outbox import OutboxManager

T = TypeVar("T")


def run_with_outbox(func: Callable[[OutboxManager], Awaitable[T]]) -> T:
    """Open the outbox, run a coroutine against it, and close the store."""
    from lodgebox.client.outbox import OutboxManager
    from lodgebox.client.store import OutboxStore, StoreError

    try:
        store = OutboxStore(get_state_db_path())
        try:
            return asyncio.run(func(OutboxManager(store)))
        finally:
            store.close()
    except StoreError as e:
        click.echo(f"Error: Outbox unavailable: {e}", err=True)
        sys.exit(1)


@click.group()
def outbox() -> None:
    """Inspect and manage queued submissions."""


@outbox.command("list")
def list_cmd() -> None:
    """List queued submissions, oldest first."""
    from lodgebox.client.outbox import derive_status

    entries = run_with_outbox(lambda manager: manager.get_outbox())
    if not entries:
        click.echo("Outbox is empty.")
        return

    for entry in entries:
        created = datetime.fromtimestamp(entry.created_at).strftime("%Y-%m-%d %H:%M:%S")
        title = entry.payload.get("title", "(untitled)")
        status = derive_status(entry).value
        click.echo(f"{entry.id}  {created}  {status:<20}  {title}")
    click.echo(f"{len(entries)} submission(s) pending")


@outbox.command("remove")
@click.argument("submission_id")
def remove_cmd(submission_id: str) -> None:
    """Remove the submission SUBMISSION_ID from the outbox."""

    async def _remove(manager: OutboxManager) -> bool:
        if await manager.get(submission_id) is None:
            return False
        await manager.remove_from_outbox(submission_id)
        return True

    if not run_with_outbox(_remove):
        click.echo(f"Error: No queued submission with id {submission_id}", err=True)
        sys.exit(1)
    click.echo(f"Removed {submission_id}")


@outbox.command("clear")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def clear_cmd(yes: bool) -> None:
    """Remove every queued submission."""
    if not yes and not click.confirm("Discard all queued submissions?"):
        click.echo("Aborted.")
        return
    run_with_outbox(lambda manager: manager.clear_outbox())
    click.echo("Outbox cleared.")
