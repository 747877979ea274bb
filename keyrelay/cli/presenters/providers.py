"""Presenters for provider and key display in the CLI."""

from datetime import datetime

from rich.console import Console
from rich.table import Table

from keyrelay.core.provider.credential import CredentialRecord
from keyrelay.core.provider.model_info import ModelDescriptor
from keyrelay.core.provider.registry import ProviderSummary


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def _timestamp(epoch: float | None) -> str:
    if not epoch:
        return "-"
    return datetime.fromtimestamp(epoch).strftime("%Y-%m-%d %H:%M:%S")


class ProviderPresenter:
    """Render registry data as Rich tables. Never shows secrets."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def present_summary(self, summaries: list[ProviderSummary]) -> None:
        table = Table(title="Providers (failover order)")
        table.add_column("#", justify="right")
        table.add_column("Provider", style="cyan")
        table.add_column("Enabled")
        table.add_column("Validated")
        table.add_column("Model", style="green")
        table.add_column("Keys", justify="right")
        table.add_column("Usage", justify="right")

        for position, s in enumerate(summaries, start=1):
            keys = f"{s.active_keys}/{s.total_keys}"
            if s.validated_keys:
                keys += f" ({s.validated_keys} ok)"
            table.add_row(
                str(position),
                s.provider.value,
                _yes_no(s.enabled),
                _yes_no(s.validated),
                s.selected_model or "-",
                keys,
                str(s.total_usage),
            )
        self.console.print(table)

    def present_keys(self, records: list[CredentialRecord]) -> None:
        if not records:
            self.console.print("[yellow]No keys stored[/yellow]")
            return

        table = Table(title="API keys")
        table.add_column("Provider", style="cyan")
        table.add_column("Fingerprint")
        table.add_column("Label")
        table.add_column("Validated")
        table.add_column("Disabled")
        table.add_column("Usage", justify="right")
        table.add_column("Failures", justify="right")
        table.add_column("Last used")

        for r in records:
            table.add_row(
                r.provider.value,
                r.fingerprint,
                r.label or "-",
                _yes_no(r.validated),
                "[red]yes[/red]" if r.disabled else "no",
                str(r.usage_count),
                str(r.failure_count),
                _timestamp(r.last_used),
            )
        self.console.print(table)

    def present_models(self, provider: str, models: list[ModelDescriptor], selected: str | None) -> None:
        if not models:
            self.console.print(f"[yellow]No models discovered for {provider}; test a key first[/yellow]")
            return

        table = Table(title=f"{provider} models")
        table.add_column("Model", style="cyan")
        table.add_column("Name")
        table.add_column("Context", justify="right")
        table.add_column("Selected")
        for m in models:
            table.add_row(
                m.id,
                m.display_name,
                str(m.context_length) if m.context_length else "-",
                "[green]*[/green]" if m.id == selected else "",
            )
        self.console.print(table)
