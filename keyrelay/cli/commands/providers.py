"""Provider management commands."""

import typer
from rich.console import Console

from keyrelay.cli.presenters.providers import ProviderPresenter
from keyrelay.cli.runtime import fail, open_relay, parse_provider, save_relay
from keyrelay.core.provider.catalog import ProviderId

app = typer.Typer(help="Provider management")


@app.command("list")
def list_providers(ctx: typer.Context) -> None:
    """Show every provider in failover order."""
    console = Console()
    relay = open_relay(ctx, console)
    ProviderPresenter(console).present_summary(relay.registry.summary())


@app.command()
def enable(ctx: typer.Context, provider: str = typer.Argument(..., help="Provider id")) -> None:
    """Enable a provider (needs a validated key and a selected model)."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)

    if not relay.registry.set_enabled(provider_id, True):
        state = relay.registry.state(provider_id)
        reason = "no validated key" if not state.validated else "no model selected"
        fail(console, f"cannot enable {provider_id.value}: {reason}")
    save_relay(relay, console)
    console.print(f"[green]Enabled {provider_id.value}[/green]")


@app.command()
def disable(ctx: typer.Context, provider: str = typer.Argument(..., help="Provider id")) -> None:
    """Disable a provider."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)

    relay.registry.set_enabled(provider_id, False)
    save_relay(relay, console)
    console.print(f"Disabled {provider_id.value}")


@app.command()
def order(
    ctx: typer.Context,
    providers: list[str] = typer.Argument(None, help="New failover order; show it if omitted"),
) -> None:
    """Show or set the failover order."""
    console = Console()
    relay = open_relay(ctx, console)

    if providers:
        unknown = [p for p in providers if ProviderId.try_parse(p) is None]
        if unknown:
            console.print(f"[yellow]Ignoring unknown providers: {', '.join(unknown)}[/yellow]")
        relay.registry.set_provider_order(providers)
        save_relay(relay, console)

    ordered = [state.provider.value for state in relay.registry]
    console.print(" -> ".join(ordered))


@app.command("select-model")
def select_model(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider id"),
    model: str = typer.Argument(..., help="Model id from the discovered models"),
) -> None:
    """Select the model a provider uses by default."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)

    if not relay.registry.select_model(provider_id, model):
        fail(console, f"'{model}' is not a discovered {provider_id.value} model")
    save_relay(relay, console)
    console.print(f"Selected {model} for {provider_id.value}")


@app.command()
def models(ctx: typer.Context, provider: str = typer.Argument(..., help="Provider id")) -> None:
    """List the models discovered for a provider."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)
    state = relay.registry.state(provider_id)
    ProviderPresenter(console).present_models(provider_id.value, state.models, state.selected_model)
