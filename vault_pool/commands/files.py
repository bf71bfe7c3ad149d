"""File commands: upload, download, delete and list."""
import asyncio
from pathlib import Path
from typing import Optional

import typer

from vault_pool.commands.common import find_file, resolve_user, setup_logging
from vault_pool.models import UploadFile
from vault_pool.session import VaultSession


def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """Upload a file to the best available account."""
    setup_logging(log_level)
    asyncio.run(_upload(resolve_user(user_id), path))


async def _upload(user_id: str, path: Path):
    async with VaultSession(user_id) as session:
        result = await session.router.upload(UploadFile.from_path(path))
        if not result.success:
            typer.echo(f"✗ Upload failed: {result.error}", err=True)
            raise typer.Exit(1)
        uploaded = result.data
        account = session.pool.get(uploaded.account_id)
        name = account.account.name if account else uploaded.account_id
        typer.echo(f"✓ Uploaded to {name}: {uploaded.storage_path}")


def download(
    file_id: str = typer.Argument(..., help="File record id"),
    dest: Path = typer.Option(Path("."), "--dest", "-o", help="Destination file or directory"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """Download a file."""
    setup_logging(log_level)
    asyncio.run(_download(resolve_user(user_id), file_id, dest))


async def _download(user_id: str, file_id: str, dest: Path):
    async with VaultSession(user_id) as session:
        record = await find_file(session, file_id)
        result = await session.lifecycle.save_to(record, dest)
        if not result.success:
            typer.echo(f"✗ Download failed: {result.error}", err=True)
            raise typer.Exit(1)
        typer.echo(f"✓ Saved {result.data}")


def delete(
    file_id: str = typer.Argument(..., help="File record id"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """Delete a file from its account."""
    setup_logging(log_level)
    asyncio.run(_delete(resolve_user(user_id), file_id))


async def _delete(user_id: str, file_id: str):
    async with VaultSession(user_id) as session:
        record = await find_file(session, file_id)
        result = await session.lifecycle.delete(record)
        if not result.success:
            typer.echo(f"✗ Delete failed: {result.error}", err=True)
            raise typer.Exit(1)
        typer.echo(f"✓ Deleted {record.original_name}")


def ls(
    file_type: Optional[str] = typer.Option(None, "--type", "-t", help="photo, video, document or other"),
    favorite: bool = typer.Option(False, "--favorite", "-f", help="Only favorites"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Match on file name"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level"),
):
    """List stored files, newest first."""
    setup_logging(log_level)
    asyncio.run(_ls(resolve_user(user_id), file_type, favorite, search))


async def _ls(user_id: str, file_type: Optional[str], favorite: bool, search: Optional[str]):
    async with VaultSession(user_id) as session:
        records = await session.files.list_files(user_id, file_type=file_type, favorite=favorite, search=search)
        for record in records:
            star = "*" if record.is_favorite else " "
            typer.echo(
                f"{star} {record.id} | {record.original_name} | {record.file_type} | "
                f"{record.file_size / (1024**2):.2f} MB | {record.account_id}"
            )
