"""Add command to register a new storage account."""
import asyncio
from typing import Optional

import typer

from vault_pool.commands.common import resolve_user, setup_logging
from vault_pool.models import SPEED_RANK
from vault_pool.session import VaultSession


def add(
    name: str = typer.Argument(..., help="Display name of the account"),
    project_url: str = typer.Argument(..., help="Storage project URL"),
    secret_key: str = typer.Argument(..., help="Storage project key"),
    limit_gb: float = typer.Option(1.0, "--limit-gb", help="Storage quota of the project in GB"),
    speed: str = typer.Option("medium", "--speed", "-s", help="Connection speed hint: fast, medium or slow"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Free text description"),
    primary: bool = typer.Option(False, "--primary", help="Make this the primary account"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """
    Add a storage account.

    The project is probed first; it is only stored when it can be reached and
    its bucket exists or can be created.
    """
    setup_logging(log_level)
    if speed not in SPEED_RANK:
        typer.echo(f"✗ Unknown speed: {speed}", err=True)
        raise typer.Exit(1)
    fields = {
        "storage_limit": int(limit_gb * 1024 ** 3),
        "connection_speed": speed,
        "is_primary": primary,
    }
    if description:
        fields["description"] = description
    asyncio.run(_add_account(resolve_user(user_id), name, project_url, secret_key, fields))


async def _add_account(user_id: str, name: str, project_url: str, secret_key: str, fields: dict):
    async with VaultSession(user_id) as session:
        result = await session.pool.register(name, project_url, secret_key, **fields)
        if not result.success:
            typer.echo(f"✗ Failed to add account: {result.error}", err=True)
            raise typer.Exit(1)
        typer.echo(f"✓ Account added: {result.data}")
