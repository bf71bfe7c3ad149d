"""CLI entry point for vault-pool."""
import typer

from .commands.info import info
from .commands.accounts import primary, remove, toggle
from .commands.add import add
from .commands.files import delete, download, ls, upload

app = typer.Typer()
app.command("info")(info)
app.command("add")(add)
app.command("toggle")(toggle)
app.command("primary")(primary)
app.command("remove")(remove)
app.command("upload")(upload)
app.command("download")(download)
app.command("delete")(delete)
app.command("ls")(ls)


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
