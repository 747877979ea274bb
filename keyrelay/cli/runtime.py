"""Shared plumbing for CLI commands: loading, saving and argument lookup."""

from typing import NoReturn

import typer
from rich.console import Console

from keyrelay.core.exceptions import StateFormatError, StorageError
from keyrelay.core.provider.catalog import ProviderId
from keyrelay.core.provider.credential import CredentialRecord
from keyrelay.core.provider.key_pool import KeyPool
from keyrelay.core.storage import FileSystemStateStore
from keyrelay.engine import KeyRelay


def fail(console: Console, message: str) -> NoReturn:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def open_relay(ctx: typer.Context, console: Console) -> KeyRelay:
    """Build a KeyRelay over the state file and seed it from the environment."""
    home = (ctx.obj or {}).get("home")
    relay = KeyRelay(store=FileSystemStateStore(home))
    try:
        relay.load()
    except (StorageError, StateFormatError) as e:
        fail(console, f"cannot load state: {e}")
    relay.registry.load_from_env()
    return relay


def save_relay(relay: KeyRelay, console: Console) -> None:
    try:
        relay.save()
    except StorageError as e:
        fail(console, f"cannot save state: {e}")


def parse_provider(console: Console, name: str) -> ProviderId:
    try:
        return ProviderId.parse(name)
    except ValueError as e:
        fail(console, str(e))


def find_key(console: Console, pool: KeyPool, ref: str) -> CredentialRecord:
    """Resolve a fingerprint (with or without the ``sha256:`` prefix, or a
    unique prefix of it) or a label to exactly one pooled key."""
    needle = ref.removeprefix("sha256:")
    matches = [
        r
        for r in pool.records
        if r.fingerprint.removeprefix("sha256:").startswith(needle) or r.label == ref
    ]
    if not matches:
        fail(console, f"no {pool.provider.value} key matches '{ref}'")
    if len(matches) > 1:
        fail(console, f"'{ref}' matches {len(matches)} {pool.provider.value} keys; be more specific")
    return matches[0]
