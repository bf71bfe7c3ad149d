"""Helpers shared by the CLI commands."""
import logging
from typing import Optional

import typer

from vault_pool import config
from vault_pool.models import FileRecord
from vault_pool.session import VaultSession


def setup_logging(log_level: str) -> None:
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        typer.echo(f"Invalid log level: {log_level}", err=True)
        raise typer.Exit(1)
    logging.basicConfig(level=numeric_level)


def resolve_user(user_id: Optional[str]) -> str:
    user_id = user_id or config.USER_ID
    if not user_id:
        typer.echo("✗ No user given. Pass --user or set VAULT_USER_ID.", err=True)
        raise typer.Exit(1)
    return user_id


async def find_file(session: VaultSession, file_id: str) -> FileRecord:
    record = await session.files.get_file(file_id, session.pool.user_id)
    if record is None:
        typer.echo(f"✗ File not found: {file_id}", err=True)
        raise typer.Exit(1)
    return record
