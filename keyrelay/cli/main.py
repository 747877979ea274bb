"""Main CLI entry point for keyrelay."""

import typer
from rich.console import Console

from keyrelay.cli.commands import generate, keys, providers

app = typer.Typer(
    name="keyrelay",
    help="keyrelay CLI - API key pools and provider failover",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(keys.app, name="keys", help="API key management")
app.add_typer(providers.app, name="providers", help="Provider management")
app.command(name="generate")(generate.generate)


@app.command()
def version() -> None:
    """Show version information."""
    from keyrelay import __version__

    console = Console()
    console.print(f"[bold cyan]keyrelay[/bold cyan] version [green]{__version__}[/green]")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    home: str = typer.Option(None, "--home", help="State directory (default: KEYRELAY_HOME)"),
) -> None:
    """keyrelay CLI."""
    from keyrelay.core.logging import configure_root_logging

    configure_root_logging("DEBUG" if verbose else None)
    ctx.obj = {"home": home}


if __name__ == "__main__":
    app()
