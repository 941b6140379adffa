"""Hydra CLI — Typer + Rich terminal interface.

Commands: ask, models, health. Running ``hydra`` with no subcommand starts
the interactive chat REPL.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from hydra import __version__
from hydra.catalog import get_model, load_client_config, load_models
from hydra.display import BRAND, health_text, models_table, render_turn
from hydra.schemas.config import ClientConfig
from hydra.schemas.messages import Attachment, AttachmentKind, TurnState
from hydra.schemas.streaming import StreamEvent, TokenEvent

console = Console()

app = typer.Typer(
    name="hydra",
    help="Streaming chat client for the Hydra backend.",
    no_args_is_help=False,
    rich_markup_mode="rich",
)


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"hydra {__version__}")
        raise typer.Exit()


# ── App Callback ────────────────────────────────────────────────


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Enable debug logging.",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config",
        help="Path to a client defaults TOML file.",
    ),
) -> None:
    """Hydra — chat with a remote model, streamed token by token."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = {"config_path": config_path}

    if ctx.invoked_subcommand is None:
        from hydra.client import ChatClient
        from hydra.repl import ChatREPL

        ChatREPL(ChatClient(_load_config(ctx)), _load_catalog()).run()


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(ctx: typer.Context) -> ClientConfig:
    """Load client config, exit on error."""
    path = (ctx.obj or {}).get("config_path")
    try:
        return load_client_config(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _load_catalog():
    """Load the model catalog, exit on error."""
    try:
        return load_models()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading models:[/red] {e}")
        raise typer.Exit(1) from None


def _read_attachment(path: Path) -> Attachment:
    """Attach a text file by inlining its contents."""
    try:
        payload = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Cannot attach {path}:[/red] {e}")
        raise typer.Exit(1) from None
    return Attachment(name=path.name, kind=AttachmentKind.FILE, payload=payload)


# ── hydra ask ────────────────────────────────────────────────────


@app.command()
def ask(
    ctx: typer.Context,
    prompt: str = typer.Argument(..., help="Message to send"),
    model: Optional[str] = typer.Option(
        None, "--model", "-m",
        help="Model id or catalog key (default from config).",
    ),
    files: list[Path] = typer.Option(
        [], "--file", "-f",
        help="Text file to attach (repeatable).",
    ),
    plain: bool = typer.Option(
        False, "--plain",
        help="Write raw tokens to stdout instead of a rendered panel.",
    ),
) -> None:
    """Send one message and stream the answer."""
    from hydra.client import ChatClient

    config = _load_config(ctx)
    model_id = config.default_model
    if model:
        info = get_model(_load_catalog(), model)
        model_id = info.id if info else model

    attachments = [_read_attachment(path) for path in files]

    def _write_token(event: StreamEvent) -> None:
        if isinstance(event, TokenEvent):
            sys.stdout.write(event.text)
            sys.stdout.flush()

    async def _ask():
        async with ChatClient(config) as client:
            subscription = client.submit(
                prompt, attachments, model_id,
                on_event=_write_token if plain else None,
            )
            await subscription.wait()
            return subscription.assistant_turn

    try:
        turn = asyncio.run(_ask())
    except ValueError as e:
        console.print(f"[red]Cannot send:[/red] {e}")
        raise typer.Exit(1) from None

    if plain:
        sys.stdout.write("\n")
        if turn.state == TurnState.ERROR:
            console.print(f"[{BRAND['red']}]{turn.text}[/{BRAND['red']}]")
    else:
        console.print(render_turn(turn))

    if turn.state != TurnState.COMPLETE:
        raise typer.Exit(1)


# ── hydra models ─────────────────────────────────────────────────


@app.command()
def models(ctx: typer.Context) -> None:
    """Show the model catalog."""
    catalog = _load_catalog()
    config = _load_config(ctx)
    console.print(models_table(catalog, config.default_model))
    console.print(f"\n[dim]{len(catalog)} models in catalog[/dim]")


# ── hydra health ─────────────────────────────────────────────────


@app.command()
def health(ctx: typer.Context) -> None:
    """Probe the backend and show provider availability."""
    from hydra.transport import ChatTransport

    config = _load_config(ctx)

    async def _probe():
        transport = ChatTransport(config)
        try:
            return await transport.check_health()
        finally:
            await transport.aclose()

    status = asyncio.run(_probe())
    console.print(health_text(status, config.provider))
    if not status.is_available(config.provider):
        raise typer.Exit(1)
