"""Configuration command for the lodgebox CLI.

Commands:
- configure: Save the endpoint, token and image upload settings
"""

from __future__ import annotations

import click

from lodgebox.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option(
    "--server-url",
    required=True,
    help="Application URL (e.g., https://zik.example.com).",
)
@click.option("--token", default=None, help="Bearer token used for submissions.")
@click.option("--cloud-name", default=None, help="Image host cloud name.")
@click.option("--upload-preset", default=None, help="Unsigned image upload preset.")
def configure(
    server_url: str,
    token: str | None,
    cloud_name: str | None,
    upload_preset: str | None,
) -> None:
    """Save connection settings.

    Options that are not given keep their previous value.
    """
    config = load_config()
    config["server_url"] = server_url.rstrip("/")
    if token is not None:
        config["auth_token"] = token
    if cloud_name is not None:
        config["cloud_name"] = cloud_name
    if upload_preset is not None:
        config["upload_preset"] = upload_preset
    save_config(config)

    click.echo(f"Configuration saved to {get_config_file()}")
