"""Rich rendering helpers for turns, sessions, and the model catalog."""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import RenderableType
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hydra.schemas.config import HealthStatus, ModelInfo
from hydra.schemas.messages import AttachmentKind, Role, Turn, TurnState
from hydra.schemas.session import SessionSummary

BRAND = {
    "accent": "#00ffbb",
    "green": "#00ff88",
    "dim": "#6a8a6a",
    "amber": "#ffaa00",
    "red": "#ff4444",
}

_STATE_BORDER: dict[TurnState, str] = {
    TurnState.PENDING: BRAND["dim"],
    TurnState.STREAMING: BRAND["accent"],
    TurnState.COMPLETE: BRAND["green"],
    TurnState.ERROR: BRAND["red"],
}


def render_turn(turn: Turn) -> RenderableType:
    """Render one turn as a panel; assistant text is rendered as markdown."""
    if turn.role == Role.USER:
        body = Text(turn.text)
        for attachment in turn.attachments:
            icon = "🖼" if attachment.kind == AttachmentKind.IMAGE else "📎"
            body.append(f"\n{icon} {attachment.name}", style="dim")
        return Panel(body, title="[bold]You[/bold]", title_align="left", border_style="dim")

    if turn.role == Role.SYSTEM:
        return Text(turn.text, style="dim italic")

    if turn.state == TurnState.PENDING:
        body: RenderableType = Text("thinking…", style=BRAND["dim"])
    elif turn.state == TurnState.ERROR:
        body = Text(turn.text, style=BRAND["red"])
    else:
        body = Markdown(turn.text or " ")

    title = f"[bold]{turn.model or 'assistant'}[/bold]"
    if turn.state == TurnState.STREAMING:
        title += " [dim]▸ streaming[/dim]"
    return Panel(
        body,
        title=title,
        title_align="left",
        border_style=_STATE_BORDER[turn.state],
    )


def render_timeline(turns: Iterable[Turn]) -> list[RenderableType]:
    return [render_turn(turn) for turn in turns]


def sessions_table(summaries: list[SessionSummary], active_id: str | None) -> Table:
    """Session list, most recently updated first."""
    table = Table(title="Sessions", show_lines=False)
    table.add_column("", width=1)
    table.add_column("ID", style="bold cyan")
    table.add_column("Title")
    table.add_column("Turns", justify="right")
    table.add_column("Updated", style="dim")
    table.add_column("Preview", style="dim", max_width=40, no_wrap=True)

    for summary in summaries:
        marker = "▸" if summary.id == active_id else ""
        table.add_row(
            marker,
            summary.id[:8],
            summary.title,
            str(summary.message_count),
            summary.updated_at.astimezone().strftime("%H:%M:%S"),
            summary.preview,
        )
    return table


def models_table(catalog: dict[str, ModelInfo], selected: str | None = None) -> Table:
    table = Table(title="Models", show_lines=True)
    table.add_column("Key", style="bold cyan")
    table.add_column("Model ID")
    table.add_column("Name")
    table.add_column("Tier", style="dim")
    table.add_column("Provider", style="dim")
    table.add_column("Available", justify="center")

    for key, info in catalog.items():
        name = f"{info.name} ▸" if info.id == selected else info.name
        table.add_row(
            key,
            info.id,
            name,
            info.tier,
            info.provider,
            "[green]✓[/green]" if info.available else "[red]✗[/red]",
        )
    return table


def health_text(health: HealthStatus, provider: str) -> Text:
    """One-line backend status for banners and `hydra health`."""
    text = Text("  Backend:   ")
    if not health.reachable:
        text.append("✗ unreachable", style=BRAND["red"])
        return text
    text.append(f"✓ {health.status}", style=BRAND["green"])
    if health.version:
        text.append(f" (v{health.version})", style="dim")
    text.append("\n  Providers: ")
    for info in health.providers:
        mark, style = ("✓", BRAND["green"]) if info.available else ("✗", BRAND["red"])
        text.append(f"{mark} {info.name}  ", style=style)
    if not health.is_available(provider):
        text.append(f"\n  {provider} is not configured on the backend", style=BRAND["amber"])
    return text
