"""Submit command for the lodgebox CLI.

Commands:
- submit: Create a lodge, queueing it if the server is unreachable
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from lodgebox.cli.config import (
    get_endpoint_config,
    get_state_db_path,
    get_upload_config,
    load_config,
)

if TYPE_CHECKING:
    from lodgebox.core.config import EndpointConfig, UploadConfig


def _parse_json(value: str, name: str, expected: type) -> Any:
    try:
        parsed = json.loads(value)
    except ValueError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint=name) from e
    if not isinstance(parsed, expected):
        raise click.BadParameter(
            f"expected a JSON {'object' if expected is dict else 'array'}",
            param_hint=name,
        )
    return parsed


async def _submit(
    endpoint: EndpointConfig,
    upload_config: UploadConfig | None,
    payload: dict[str, Any],
    units: list[dict[str, Any]],
    token: str,
    attachments: dict[str, str],
) -> Any:
    from lodgebox.client.api import SubmissionClient
    from lodgebox.client.outbox import OutboxManager
    from lodgebox.client.store import OutboxStore
    from lodgebox.client.submit import SubmissionService
    from lodgebox.client.sync import SyncTrigger
    from lodgebox.client.upload import CloudinaryUploader

    store = OutboxStore(get_state_db_path())
    client = SubmissionClient(endpoint)
    uploader = CloudinaryUploader(upload_config) if upload_config else None
    try:
        # No deferred runner in a one-shot command: 'lodgebox worker' delivers later
        service = SubmissionService(
            client, OutboxManager(store), SyncTrigger(None), uploader=uploader
        )
        return await service.submit(payload, units, token, attachments=attachments)
    finally:
        await client.close()
        if uploader is not None:
            await uploader.close()
        store.close()


@click.command()
@click.argument("payload")
@click.option("--units", default="[]", help="Units as a JSON array.")
@click.option(
    "--image",
    "images",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Image file to attach (repeatable).",
)
@click.option("--token", default=None, help="Bearer token (default: configured token).")
def submit(payload: str, units: str, images: tuple[Path, ...], token: str | None) -> None:
    """Create a lodge from a JSON PAYLOAD.

    If the server cannot be reached the lodge is saved to the outbox.
    """
    from lodgebox.client.api import APIError
    from lodgebox.client.store import StoreError

    lodge = _parse_json(payload, "PAYLOAD", dict)
    unit_list = _parse_json(units, "--units", list)

    config = load_config()
    endpoint = get_endpoint_config(config)
    if endpoint is None:
        click.echo("Error: Not configured. Run 'lodgebox configure' first.", err=True)
        sys.exit(1)

    auth_token = token or config.get("auth_token", "")
    attachments = {f"image_{i}": str(path.resolve()) for i, path in enumerate(images)}

    try:
        result = asyncio.run(
            _submit(endpoint, get_upload_config(config), lodge, unit_list, auth_token, attachments)
        )
    except APIError as e:
        click.echo(f"Error: Submission rejected: {e}", err=True)
        sys.exit(1)
    except StoreError as e:
        click.echo(f"Error: Outbox unavailable: {e}", err=True)
        sys.exit(1)

    if result.delivered:
        click.echo(f"Lodge created: {result.lodge_id}")
    else:
        click.echo(f"Saved to outbox as {result.queued_id}")
        click.echo("Run 'lodgebox sync' or 'lodgebox worker' once back online.")
