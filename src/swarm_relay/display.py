# display.py
# Terminal rendering of runs.
#
# The orchestrator never formats output; it logs. This module turns a finished
# RunResult into rich panels and a per-turn tree. Swap this file to change the UI.
#
# Colour language:
#   cyan    agents and routing
#   blue    model messages
#   magenta tool calls and results
#   green   success
#   red     failures, halts

import json

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from swarm_relay.models import Message, Role, RunResult, RunStatus

console = Console()

_STATUS_STYLE = {
    RunStatus.COMPLETED: ("COMPLETED ✓", "green"),
    RunStatus.MAX_TURNS: ("MAX TURNS", "yellow"),
    RunStatus.FAILED: ("FAILED ✗", "red"),
    RunStatus.CANCELLED: ("CANCELLED", "yellow"),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    value = value.replace("\n", " ")
    if len(value) > max_len:
        value = value[:max_len] + "…"
    return escape(value)


def _agent_name(agent: object) -> str:
    return getattr(agent, "name", None) or type(agent).__name__


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------


def banner(model: str, agent_name: str, out: Console | None = None) -> None:
    out = out or console
    out.print()
    out.print(
        Panel.fit(
            "[bold cyan]swarm-relay[/bold cyan]\n"
            "[dim]Multi-turn tool orchestration with agent hand-off[/dim]\n\n"
            f"[dim]Model :[/dim] [white]{model}[/white]\n"
            f"[dim]Agent :[/dim] [white]{agent_name}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def prompt_received(prompt: str, out: Console | None = None) -> None:
    out = out or console
    out.print()
    out.print(
        Panel(
            f"[white]{escape(prompt)}[/white]",
            title=_label("USER PROMPT", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


def history_table(history: list[Message]) -> Table:
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("#", justify="right", width=4)
    table.add_column("Role", width=10)
    table.add_column("Content", style="white")

    for index, message in enumerate(history):
        if message.tool_calls:
            calls = ", ".join(f"{call.name}({_mono(call.arguments, 40)})" for call in message.tool_calls)
            content = f"[magenta]→ {calls}[/magenta]"
            if message.content:
                content = f"{_mono(message.content, 60)} {content}"
        elif message.role is Role.TOOL:
            content = f"[magenta]{message.tool_name}[/magenta] ← {_mono(message.content or '', 80)}"
        else:
            content = _mono(message.content or "", 100)
        table.add_row(str(index), message.role.value, content)
    return table


def render_history(history: list[Message], out: Console | None = None) -> None:
    out = out or console
    out.print(Panel(history_table(history), title="[dim]HISTORY[/dim]", border_style="dim", padding=(0, 1)))


# ---------------------------------------------------------------------------
# Turn tree
# ---------------------------------------------------------------------------


def turn_tree(result: RunResult) -> Tree:
    """Group the history into turns: each assistant response and the tool results it produced."""
    tag, color = _STATUS_STYLE[result.status]
    tree = Tree(f"[bold {color}]Run: {tag}[/bold {color}] [dim]({result.turns} turn(s))[/dim]")

    turn_node = None
    turn = 0
    for message in result.history:
        if message.role is Role.ASSISTANT:
            turn += 1
            turn_node = tree.add(f"[bold cyan]Turn {turn}[/bold cyan]")
            if message.content:
                turn_node.add(f"[blue]assistant:[/blue] {_mono(message.content, 100)}")
            for call in message.tool_calls or ():
                turn_node.add(f"[magenta]call[/magenta] {call.name} [dim]{_mono(call.arguments, 60)}[/dim]")
        elif message.role is Role.TOOL and turn_node is not None:
            turn_node.add(f"[green]result[/green] {message.tool_name}: {_mono(message.content or '', 80)}")

    tree.add(f"[cyan]Active agent:[/cyan] {_agent_name(result.active_agent)}")
    if result.context:
        tree.add(f"[dim]Context:[/dim] {_mono(json.dumps(result.context, default=str), 100)}")
    if result.error is not None:
        tree.add(f"[bold red]{type(result.error).__name__}:[/bold red] {escape(str(result.error))}")
    return tree


def render_result(result: RunResult, out: Console | None = None) -> None:
    out = out or console
    out.print()
    out.print(turn_tree(result))

    if result.status is RunStatus.FAILED:
        halt(result.fallback_message or "Run failed.", out=out)
        return

    final = next(
        (m.content for m in reversed(result.history) if m.role is Role.ASSISTANT and m.content),
        None,
    )
    if final:
        final_result(final, out=out)


def final_result(result: str, out: Console | None = None) -> None:
    out = out or console
    out.print()
    out.print(
        Panel(
            f"[white]{escape(result)}[/white]",
            title=_label("RESULT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    out.print()


def halt(reason: str, out: Console | None = None) -> None:
    out = out or console
    out.print()
    out.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    out.print()
