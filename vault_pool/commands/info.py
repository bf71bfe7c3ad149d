"""Info command to show the accounts of a user."""
import asyncio
from typing import Optional

import typer

from vault_pool.commands.common import resolve_user, setup_logging
from vault_pool.session import VaultSession

app = typer.Typer()


@app.command()
def info(
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User id (default: VAULT_USER_ID)"),
    log_level: str = typer.Option("WARN", "--log-level", "-l", help="Logging level (e.g., DEBUG, INFO, WARN, ERROR)"),
):
    """Probe and show every storage account with the pool totals."""
    setup_logging(log_level)
    asyncio.run(_show_info(resolve_user(user_id)))


async def _show_info(user_id: str):
    async with VaultSession(user_id) as session:
        pool = session.pool
        if not pool.accounts:
            typer.echo("No accounts found.", err=True)
            raise typer.Exit(1)

        default = pool.default
        for account in pool.accounts:
            line = str(account)
            if default is not None and account.id == default.id:
                line += " (default)"
            if account.error_message:
                line += f"\n      error: {account.error_message}"
            typer.echo(line)

        stats = pool.stats()
        typer.echo(
            f"\n{stats.connected_count}/{stats.accounts_count} live account(s) connected | "
            f"{stats.total_used / (1024**3):.2f} GB / {stats.total_limit / (1024**3):.2f} GB used | "
            f"{stats.total_files} files"
        )


if __name__ == "__main__":
    app()
