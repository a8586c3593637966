"""CLI entry point.

Provides commands:
  - process: Extract PDF text, upload the file, ask for a summary
  - upload: Upload a single file
  - complete: Send a prompt and print the completion
  - config: Manage API keys in the system keyring
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import keyring
import typer
from keyring.errors import KeyringError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pdfgenai.client import ResilientClient
from pdfgenai.config import (
    KEY_NAME,
    PROVIDERS,
    ClientConfig,
    RateLimitConfig,
    keyring_service,
    load_client_config,
)
from pdfgenai.errors import PdfGenAIError
from pdfgenai.extraction import extract_text
from pdfgenai.models import UploadResult
from pdfgenai.telemetry import configure_logging
from pdfgenai.transports import build_transport

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200
SUMMARY_SNIPPET_CHARS = 2000

app = typer.Typer(
    help="Extract text from PDFs and send it to a text-generation service",
    rich_markup_mode="rich",
)
console = Console()

config_app = typer.Typer(help="Manage configuration (API keys)")
app.add_typer(config_app, name="config")


@dataclass
class CliState:
    """Global options shared by all commands."""

    provider: str | None = None
    model: str | None = None
    config_path: Path | None = None
    rps: float | None = None
    burst: int | None = None
    timeout: float | None = None


@app.callback()
def app_callback(
    ctx: typer.Context,
    provider: Annotated[
        str | None,
        typer.Option("--provider", "-p", help="Remote service: openai or gemini"),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model name (provider default if omitted)"),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to client_config.json"),
    ] = None,
    rps: Annotated[
        float | None,
        typer.Option("--rps", help="Rate limit in requests per second"),
    ] = None,
    burst: Annotated[
        int | None,
        typer.Option("--burst", help="Rate limit burst size"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Overall deadline per operation, in seconds"),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="-v for info, -vv for debug"),
    ] = 0,
    log_dir: Annotated[
        str | None,
        typer.Option("--log-dir", help="Also write JSON-lines logs to this directory"),
    ] = None,
) -> None:
    """Configure logging and remember global options."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    configure_logging(level, log_dir)
    ctx.obj = CliState(
        provider=provider,
        model=model,
        config_path=config_path,
        rps=rps,
        burst=burst,
        timeout=timeout,
    )


def _client_config(state: CliState) -> ClientConfig:
    config = load_client_config(
        state.config_path,
        provider=state.provider,
        model=state.model,
    )
    if state.rps is not None or state.burst is not None:
        config.rate_limit = RateLimitConfig(
            rate=state.rps if state.rps is not None else config.rate_limit.rate,
            burst=state.burst if state.burst is not None else config.rate_limit.burst,
        )
    return config


def _build_client(state: CliState) -> ResilientClient:
    try:
        config = _client_config(state)
        return ResilientClient(build_transport(config), config)
    except (RuntimeError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


def _checked_purpose(purpose: str) -> str:
    if not purpose.strip():
        console.print("[red]Error:[/red] --purpose cannot be empty")
        raise typer.Exit(code=1)
    return purpose


def _print_upload(result: UploadResult, elapsed: float) -> None:
    table = Table(title=f"Uploaded in {elapsed:.2f}s", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("File ID", result.file_id)
    table.add_row("Filename", result.filename)
    table.add_row("Status", result.status)
    table.add_row("Purpose", result.purpose)
    console.print(table)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def process(
    ctx: typer.Context,
    file: Annotated[
        Path,
        typer.Argument(help="Path to the PDF file"),
    ],
    purpose: Annotated[
        str,
        typer.Option("--purpose", help="Upload purpose (e.g. assistants, fine-tune)"),
    ] = "assistants",
    summarize: Annotated[
        bool,
        typer.Option("--summarize/--no-summarize", help="Ask for a summary of the text"),
    ] = True,
) -> None:
    """Extract text from FILE, upload it, then request a short summary."""
    state: CliState = ctx.obj
    _checked_purpose(purpose)
    console.print(f"Processing file: [bold]{file}[/bold]")

    start = time.monotonic()
    try:
        text = extract_text(file)
    except PdfGenAIError as e:
        console.print(f"[red]Error extracting text:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(
        f"Extracted [bold]{len(text)}[/bold] characters in {time.monotonic() - start:.2f}s"
    )
    preview = text[:PREVIEW_CHARS] + ("..." if len(text) > PREVIEW_CHARS else "")
    console.print(Panel(preview or "[dim](no text)[/dim]", title="Preview"))

    client = _build_client(state)

    async def _run() -> None:
        async with client:
            console.print("Uploading file...")
            t0 = time.monotonic()
            result = await client.upload_file(str(file), purpose, timeout=state.timeout)
            _print_upload(result, time.monotonic() - t0)

            if not summarize or not text.strip():
                return
            console.print("Requesting summary...")
            prompt = (
                "Please summarize this text from a PDF: "
                f"{text[:SUMMARY_SNIPPET_CHARS]}"
            )
            try:
                summary = await client.send_text(prompt, timeout=state.timeout)
            except PdfGenAIError as e:
                console.print(f"[yellow]Error getting summary:[/yellow] {e}")
                return
            console.print(Panel(summary, title="Summary"))

    try:
        asyncio.run(_run())
    except PdfGenAIError as e:
        console.print(f"[red]Error uploading file:[/red] {e}")
        raise typer.Exit(code=1)


@app.command()
def upload(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="File to upload")],
    purpose: Annotated[
        str,
        typer.Option("--purpose", help="Upload purpose (e.g. assistants, fine-tune)"),
    ] = "assistants",
) -> None:
    """Upload a single file."""
    state: CliState = ctx.obj
    _checked_purpose(purpose)
    client = _build_client(state)

    async def _run() -> tuple[UploadResult, float]:
        async with client:
            t0 = time.monotonic()
            result = await client.upload_file(str(file), purpose, timeout=state.timeout)
            return result, time.monotonic() - t0

    try:
        result, elapsed = asyncio.run(_run())
    except PdfGenAIError as e:
        console.print(f"[red]Error uploading file:[/red] {e}")
        raise typer.Exit(code=1)
    _print_upload(result, elapsed)


@app.command()
def complete(
    ctx: typer.Context,
    prompt: Annotated[str, typer.Argument(help="Prompt text")],
    system: Annotated[
        str | None,
        typer.Option("--system", help="Optional system instruction"),
    ] = None,
) -> None:
    """Send PROMPT and print the completion."""
    state: CliState = ctx.obj
    if not prompt.strip():
        console.print("[red]Error:[/red] prompt cannot be empty")
        raise typer.Exit(code=1)
    client = _build_client(state)

    async def _run() -> str:
        async with client:
            result = await client.complete_text(prompt, system=system, timeout=state.timeout)
            return result.content

    try:
        content = asyncio.run(_run())
    except PdfGenAIError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(content)


# ---------------------------------------------------------------------------
# config command group
# ---------------------------------------------------------------------------

ProviderOption = Annotated[
    str,
    typer.Option("--provider", "-p", help=f"One of: {', '.join(PROVIDERS)}"),
]


def _checked_provider(provider: str) -> str:
    if provider not in PROVIDERS:
        console.print(
            f"[red]Error:[/red] unknown provider {provider!r} "
            f"(choose from {', '.join(PROVIDERS)})"
        )
        raise typer.Exit(code=1)
    return provider


@config_app.command("set-api-key")
def set_api_key(
    key: Annotated[str, typer.Argument(help="API key to store in the system keyring")],
    provider: ProviderOption = "openai",
) -> None:
    """Store an API key in the system keyring."""
    service = keyring_service(_checked_provider(provider))
    if not key or key.strip() == "":
        console.print("[red]Error:[/red] API key cannot be empty")
        raise typer.Exit(code=1)

    try:
        keyring.set_password(service, KEY_NAME, key)
    except KeyringError as e:
        console.print(f"[red]Error:[/red] Failed to store API key: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] API key stored in system keyring (service: {service})")


@config_app.command("get-api-key")
def show_api_key(provider: ProviderOption = "openai") -> None:
    """Display the stored API key (masked)."""
    service = keyring_service(_checked_provider(provider))
    api_key = keyring.get_password(service, KEY_NAME)
    if not api_key:
        console.print(
            "[yellow]No API key found in keyring.[/yellow]\n"
            f"Set it with: [bold]pdfgenai config set-api-key YOUR_KEY --provider {provider}[/bold]"
        )
        raise typer.Exit(code=1)

    if len(api_key) > 8:
        masked = api_key[:8] + "*" * (len(api_key) - 8)
    else:
        masked = api_key[:2] + "*" * max(1, len(api_key) - 2)

    console.print(f"[green]API key:[/green] {masked}")
    console.print(f"[dim](stored in service: {service})[/dim]")


@config_app.command("remove-api-key")
def remove_api_key(provider: ProviderOption = "openai") -> None:
    """Delete the stored API key from the system keyring."""
    service = keyring_service(_checked_provider(provider))
    if not keyring.get_password(service, KEY_NAME):
        console.print("[yellow]Warning:[/yellow] No API key found in keyring.\nNothing to remove.")
        return

    try:
        keyring.delete_password(service, KEY_NAME)
    except KeyringError as e:
        console.print(f"[red]Error:[/red] Failed to remove API key: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] API key removed from system keyring (service: {service})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
