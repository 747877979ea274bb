"""Text generation command."""

import asyncio

import typer
from rich.console import Console

from keyrelay.cli.runtime import open_relay, parse_provider, save_relay
from keyrelay.services.orchestrator import GenerateOptions, GenerateResult


def _describe_failure(console: Console, result: GenerateResult) -> None:
    console.print(f"[red]❌ {result.error}[/red]")
    for attempt in result.attempts:
        console.print(
            f"  [dim]{attempt.provider.value} {attempt.key_fingerprint} "
            f"{attempt.model}: {attempt.error}[/dim]"
        )


def generate(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="Prompt text"),
    provider: str = typer.Option(None, "--provider", "-p", help="Preferred provider"),
    model: str = typer.Option(None, "--model", "-m", help="Model id"),
    system: str = typer.Option(None, "--system", "-s", help="System prompt"),
    max_tokens: int = typer.Option(None, "--max-tokens", help="Maximum output tokens"),
    temperature: float = typer.Option(None, "--temperature", "-t", help="Sampling temperature"),
    stream: bool = typer.Option(False, "--stream", help="Print text as it arrives"),
) -> None:
    """Generate text with automatic provider and key failover."""
    console = Console()
    err_console = Console(stderr=True)
    options = GenerateOptions(
        model=model,
        system_prompt=system,
        max_tokens=max_tokens,
        temperature=temperature,
        preferred_provider=parse_provider(console, provider) if provider else None,
    )
    relay = open_relay(ctx, console)

    if stream:
        generation = relay.stream(prompt, options)

        async def _consume() -> GenerateResult:
            async for chunk in generation:
                console.print(chunk, end="", markup=False, highlight=False)
            console.print()
            assert generation.result is not None
            return generation.result

        result = asyncio.run(_consume())
    else:
        result = asyncio.run(relay.generate(prompt, options))
        if result.success:
            console.print(result.content, markup=False, highlight=False)

    save_relay(relay, console)

    if not result.success:
        _describe_failure(err_console, result)
        raise typer.Exit(1)
    assert result.provider is not None
    err_console.print(f"[dim]via {result.provider.value} ({result.model})[/dim]")
