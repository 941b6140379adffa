"""Interactive chat REPL.

Plain input is sent to the active session and the answer streams into a
Rich Live panel. Lines starting with ``/`` are commands. Ctrl-C while a
response is streaming cancels that request; Ctrl-C at the prompt exits.
"""

from __future__ import annotations

import asyncio
import logging

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from hydra.catalog import get_model
from hydra.client import ChatClient
from hydra.display import (
    BRAND,
    health_text,
    models_table,
    render_timeline,
    render_turn,
    sessions_table,
)
from hydra.exceptions import AlreadyStreaming, HydraError
from hydra.schemas.config import ModelInfo
from hydra.schemas.streaming import TerminalEvent
from hydra.timeline.events import TimelineChange

logger = logging.getLogger(__name__)

console = Console()

_COMMANDS = {
    "/new": "Start a new session",
    "/sessions": "List sessions (most recent first)",
    "/switch": "Switch to a session by id prefix",
    "/rename": "Rename the active session",
    "/delete": "Delete the active session",
    "/clear": "Clear the active session's messages",
    "/model": "Select the model for new messages",
    "/models": "Show the model catalog",
    "/history": "Reprint the active session",
    "/help": "Show this help",
    "/exit": "Exit the REPL",
}


class ChatREPL:
    """Interactive loop over a ChatClient.

    Owns one ``asyncio.Runner`` so the client's HTTP connection pool and
    stream tasks live on a single event loop across prompts.
    """

    def __init__(self, client: ChatClient, catalog: dict[str, ModelInfo]) -> None:
        self.client = client
        self.catalog = catalog
        self.model = client.config.default_model
        self.connected = False
        self._runner: asyncio.Runner | None = None

    def run(self) -> None:
        """Main REPL loop."""
        with asyncio.Runner() as runner:
            self._runner = runner
            health = runner.run(self.client.check_health())
            self.connected = health.is_available(self.client.config.provider)
            self._print_banner(health)

            while True:
                try:
                    prompt_text = Text()
                    prompt_text.append("\nhydra", style=BRAND["green"])
                    prompt_text.append(" ▸ ", style=BRAND["accent"])
                    user_input = console.input(prompt_text).strip()
                except (KeyboardInterrupt, EOFError):
                    console.print(f"\n[{BRAND['dim']}]Goodbye.[/{BRAND['dim']}]")
                    break

                if not user_input:
                    continue
                try:
                    self._dispatch(user_input)
                except EOFError:
                    console.print(f"[{BRAND['dim']}]Goodbye.[/{BRAND['dim']}]")
                    break

            runner.run(self.client.aclose())
            self._runner = None

    # ── Dispatch ─────────────────────────────────────────────

    def _dispatch(self, user_input: str) -> None:
        """Dispatch a user input line to a command or send it as a message."""
        if not user_input.startswith("/"):
            self._send(user_input)
            return

        parts = user_input.split(None, 1)
        command = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        if command in ("/exit", "/quit"):
            raise EOFError
        if command == "/help":
            self._show_help()
        elif command == "/new":
            session = self.client.new_session(args or None)
            console.print(f"  Started [bold]{session.title}[/bold] [dim]({session.id[:8]})[/dim]")
        elif command == "/sessions":
            console.print(sessions_table(self.client.sessions(), self.client.registry.active_session_id))
        elif command == "/switch":
            self._switch(args)
        elif command == "/rename":
            self._rename(args)
        elif command == "/delete":
            self._delete()
        elif command == "/clear":
            if self.client.active_session is not None:
                self.client.clear()
            console.print(f"  [{BRAND['dim']}]Session cleared.[/{BRAND['dim']}]")
        elif command == "/model":
            self._set_model(args)
        elif command == "/models":
            console.print(models_table(self.catalog, self.model))
        elif command == "/history":
            self._show_history()
        else:
            console.print(f"  [{BRAND['amber']}]Unknown command {command}. Try /help.[/{BRAND['amber']}]")

    def _switch(self, prefix: str) -> None:
        if not prefix:
            console.print(f"  [{BRAND['dim']}]Usage: /switch <id-prefix>[/{BRAND['dim']}]")
            return
        session = self.client.find_session(prefix)
        if session is None:
            console.print(f"  [{BRAND['red']}]No unique session matches {prefix!r}[/{BRAND['red']}]")
            return
        self.client.select(session.id)
        console.print(f"  Switched to [bold]{session.title}[/bold]")
        self._show_history()

    def _rename(self, title: str) -> None:
        session = self.client.active_session
        if session is None:
            console.print(f"  [{BRAND['dim']}]No active session.[/{BRAND['dim']}]")
            return
        if self.client.rename(session.id, title):
            console.print(f"  Renamed to [bold]{session.title}[/bold]")
        else:
            console.print(f"  [{BRAND['dim']}]Title unchanged.[/{BRAND['dim']}]")

    def _delete(self) -> None:
        session = self.client.active_session
        if session is None:
            console.print(f"  [{BRAND['dim']}]No active session.[/{BRAND['dim']}]")
            return
        self.client.delete(session.id)
        console.print(f"  Deleted [bold]{session.title}[/bold]")
        active = self.client.active_session
        if active is not None:
            console.print(f"  Now in [bold]{active.title}[/bold] [dim]({active.id[:8]})[/dim]")

    def _set_model(self, model: str) -> None:
        if not model:
            console.print(f"  Current model: [bold]{self.model}[/bold]")
            return
        info = get_model(self.catalog, model)
        if info is None:
            console.print(f"  [{BRAND['red']}]Unknown model {model!r}. See /models.[/{BRAND['red']}]")
            return
        if not info.available:
            console.print(f"  [{BRAND['amber']}]{info.name} is not available.[/{BRAND['amber']}]")
            return
        self.model = info.id
        console.print(f"  Model set to [bold]{info.name}[/bold]")

    # ── Chat ─────────────────────────────────────────────────

    def _send(self, text: str) -> None:
        if not self.connected:
            console.print(
                f"  [{BRAND['amber']}]Backend reports {self.client.config.provider} "
                f"unavailable; sending anyway.[/{BRAND['amber']}]"
            )
        try:
            self._runner.run(self._stream(text))
        except KeyboardInterrupt:
            console.print(f"  [{BRAND['dim']}]Cancelled.[/{BRAND['dim']}]")
        except AlreadyStreaming:
            console.print(f"  [{BRAND['amber']}]Still waiting for the previous answer.[/{BRAND['amber']}]")
        except HydraError as e:
            logger.debug("Send failed: %s", e)
            console.print(f"  [{BRAND['red']}]{e}[/{BRAND['red']}]")

    async def _stream(self, text: str) -> TerminalEvent:
        subscription = self.client.submit(text, model=self.model)
        timeline = subscription.timeline
        console.print(render_turn(subscription.user_turn))

        with Live(
            render_turn(subscription.assistant_turn),
            console=console,
            refresh_per_second=12,
        ) as live:

            def _on_change(change: TimelineChange) -> None:
                if change.turn is not None and change.turn.id == subscription.assistant_turn_id:
                    live.update(render_turn(change.turn))

            timeline.add_listener(_on_change)
            try:
                return await subscription.wait()
            except asyncio.CancelledError:
                subscription.cancel()
                raise
            finally:
                timeline.remove_listener(_on_change)

    # ── Output ───────────────────────────────────────────────

    def _show_history(self) -> None:
        session = self.client.active_session
        if session is None or not session.turns:
            console.print(f"  [{BRAND['dim']}]No messages yet.[/{BRAND['dim']}]")
            return
        for renderable in render_timeline(session.turns):
            console.print(renderable)

    def _show_help(self) -> None:
        help_text = Text()
        help_text.append("\n  Type a message to chat.\n\n", style="bold")
        for command, description in _COMMANDS.items():
            help_text.append(f"    {command:<12}", style=BRAND["green"])
            help_text.append(f"  {description}\n")
        console.print(help_text)

    def _print_banner(self, health) -> None:
        body = health_text(health, self.client.config.provider)
        body.append("\n  Model:     ")
        body.append(self.model, style=BRAND["green"])
        body.append(f"\n  Endpoint:  {self.client.config.base_url}", style="dim")
        console.print(Panel(
            body,
            title="[bold]Hydra Chat[/bold]",
            border_style="dim",
            expand=True,
            padding=(0, 1),
        ))
        console.print(f"  [{BRAND['dim']}]Type /help for commands.[/{BRAND['dim']}]")
