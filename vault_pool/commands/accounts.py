"""Commands changing the state of existing accounts."""
import asyncio
from typing import Optional

import typer

from vault_pool.commands.common import resolve_user, setup_logging
from vault_pool.session import VaultSession


def toggle(
    account_id: str = typer.Argument(..., help="Account id"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """Enable or disable an account for new uploads."""
    setup_logging(log_level)
    asyncio.run(_toggle(resolve_user(user_id), account_id))


async def _toggle(user_id: str, account_id: str):
    async with VaultSession(user_id) as session:
        result = await session.pool.toggle_active(account_id)
        if not result.success:
            typer.echo(f"✗ {result.error}", err=True)
            raise typer.Exit(1)
        typer.echo(f"✓ Account {account_id} is now {'active' if result.data else 'inactive'}")


def primary(
    account_id: str = typer.Argument(..., help="Account id"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """Make an account the primary one."""
    setup_logging(log_level)
    asyncio.run(_primary(resolve_user(user_id), account_id))


async def _primary(user_id: str, account_id: str):
    async with VaultSession(user_id) as session:
        result = await session.pool.set_primary(account_id)
        if not result.success:
            typer.echo(f"✗ {result.error}", err=True)
            raise typer.Exit(1)
        typer.echo(f"✓ Primary account: {result.data.name}")


def remove(
    account_id: str = typer.Argument(..., help="Account id"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """
    Delete an account.

    Files stored in it keep their records but can no longer be reached
    until the account is added again.
    """
    setup_logging(log_level)
    asyncio.run(_remove(resolve_user(user_id), account_id))


async def _remove(user_id: str, account_id: str):
    async with VaultSession(user_id) as session:
        result = await session.pool.delete(account_id)
        if not result.success:
            typer.echo(f"✗ {result.error}", err=True)
            raise typer.Exit(1)
        typer.echo(f"✓ Account {account_id} deleted")
