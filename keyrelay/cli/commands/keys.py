"""API key management commands."""

import asyncio

import typer
from rich.console import Console

from keyrelay.cli.presenters.providers import ProviderPresenter
from keyrelay.cli.runtime import fail, find_key, open_relay, parse_provider, save_relay
from keyrelay.core.provider.credential import fingerprint_secret
from keyrelay.services.validation import KeyTestResult

app = typer.Typer(help="API key management")


def _print_result(console: Console, result: KeyTestResult, fingerprint: str) -> None:
    if result.valid:
        console.print(
            f"[green]✅ {result.provider.value} key {fingerprint} is valid[/green] "
            f"({len(result.models)} models, {result.response_time_ms:.0f}ms)"
        )
    else:
        console.print(f"[red]❌ {result.provider.value} key {fingerprint}: {result.error}[/red]")


@app.command()
def add(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider id (e.g., 'gemini')"),
    secret: str = typer.Argument(..., help="The API key"),
    label: str = typer.Option(None, "--label", "-l", help="Optional label"),
    validate: bool = typer.Option(True, "--validate/--no-validate", help="Validate before storing"),
) -> None:
    """Add a key. By default it is stored only if the provider accepts it."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)
    fingerprint = fingerprint_secret(secret)

    if not validate:
        if relay.registry.set_key(provider_id, secret, label):
            console.print(f"Stored {provider_id.value} key {fingerprint} (not validated)")
        else:
            console.print(f"[yellow]{provider_id.value} key {fingerprint} already stored[/yellow]")
        save_relay(relay, console)
        return

    result = asyncio.run(relay.validate_key(provider_id, secret))
    _print_result(console, result, fingerprint)
    if not result.valid:
        raise typer.Exit(1)
    if label:
        record = relay.registry.pool(provider_id).get(secret)
        if record is not None and record.label is None:
            record.label = label
    save_relay(relay, console)


@app.command()
def test(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider id"),
    key: str = typer.Option(None, "--key", "-k", help="Fingerprint or label; all keys if omitted"),
) -> None:
    """Re-validate stored keys against the provider."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)
    pool = relay.registry.pool(provider_id)

    records = [find_key(console, pool, key)] if key else pool.records
    if not records:
        fail(console, f"no {provider_id.value} keys stored")

    failures = 0
    for record in records:
        result = asyncio.run(relay.validate_key(provider_id, record.secret))
        _print_result(console, result, record.fingerprint)
        failures += 0 if result.valid else 1

    save_relay(relay, console)
    if failures:
        raise typer.Exit(1)


@app.command("list")
def list_keys(
    ctx: typer.Context,
    provider: str = typer.Argument(None, help="Only show this provider"),
) -> None:
    """List stored keys (fingerprints only)."""
    console = Console()
    provider_id = parse_provider(console, provider) if provider else None
    relay = open_relay(ctx, console)

    records = [
        record
        for state in relay.registry
        if provider_id is None or state.provider is provider_id
        for record in state.pool.records
    ]
    ProviderPresenter(console).present_keys(records)


@app.command()
def remove(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider id"),
    key: str = typer.Argument(..., help="Fingerprint or label"),
) -> None:
    """Remove a stored key."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)
    record = find_key(console, relay.registry.pool(provider_id), key)

    relay.registry.remove_key(provider_id, record.secret)
    save_relay(relay, console)
    console.print(f"Removed {provider_id.value} key {record.fingerprint}")


@app.command()
def enable(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider id"),
    key: str = typer.Argument(..., help="Fingerprint or label"),
) -> None:
    """Re-enable a key and reset its failure count."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)
    record = find_key(console, relay.registry.pool(provider_id), key)

    relay.registry.enable_key(provider_id, record.secret)
    save_relay(relay, console)
    console.print(f"Enabled {provider_id.value} key {record.fingerprint}")


@app.command()
def disable(
    ctx: typer.Context,
    provider: str = typer.Argument(..., help="Provider id"),
    key: str = typer.Argument(..., help="Fingerprint or label"),
) -> None:
    """Exclude a key from selection."""
    console = Console()
    provider_id = parse_provider(console, provider)
    relay = open_relay(ctx, console)
    record = find_key(console, relay.registry.pool(provider_id), key)

    relay.registry.disable_key(provider_id, record.secret)
    save_relay(relay, console)
    console.print(f"Disabled {provider_id.value} key {record.fingerprint}")
