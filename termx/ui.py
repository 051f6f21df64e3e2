"""Terminal rendering with rich."""

import json
from datetime import UTC, datetime
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from termx.agent import AgentEvents
from termx.exceptions import ApprovalError
from termx.logging import get_logger
from termx.session import Session

log = get_logger(__name__)

DIFF_MAX_LINES = 10
DIFF_MAX_WIDTH = 50
RESULT_PREVIEW_CHARS = 200


def _shorten(line: str, width: int = DIFF_MAX_WIDTH) -> str:
    if len(line) <= width:
        return line
    return line[: width - 3] + "..."


def build_diff_table(old_str: str, new_str: str) -> Table:
    """Side-by-side before/after view of an ``edit_file`` call."""
    old_lines = old_str.splitlines()
    new_lines = new_str.splitlines()
    shown = min(max(len(old_lines), len(new_lines)), DIFF_MAX_LINES)

    table = Table(title="Changes", show_header=True, header_style="bold cyan")
    table.add_column("Before", style="red", no_wrap=True)
    table.add_column("After", style="green", no_wrap=True)
    for i in range(shown):
        old_line = old_lines[i] if i < len(old_lines) else ""
        new_line = new_lines[i] if i < len(new_lines) else ""
        table.add_row(escape(_shorten(old_line)), escape(_shorten(new_line)))
    if len(old_lines) > shown or len(new_lines) > shown:
        table.add_row("[dim]... (truncated)[/dim]", "")
    return table


class TerminalUI(AgentEvents):
    """Console front end: renders agent events and answers approval prompts."""

    def __init__(self, console: Console | None = None, streaming: bool = True, colors: bool = True):
        self.console = console or Console(no_color=not colors, highlight=False)
        self.streaming = streaming
        self._streamed = False

    # Agent events

    def on_content_chunk(self, chunk: str) -> None:
        if not self.streaming:
            return
        self._streamed = True
        self.console.print(chunk, end="", markup=False, soft_wrap=True)

    def on_tool_call(self, name: str, arguments: dict[str, Any]) -> None:
        self.end_stream()
        self.console.print(f"[bold yellow]\\[tool][/bold yellow] [bold]{escape(name)}[/bold]")
        if name == "edit_file" and isinstance(arguments.get("old_str"), str):
            self.console.print(
                build_diff_table(arguments["old_str"], str(arguments.get("new_str", "")))
            )
            return
        self.console.print_json(json.dumps(arguments, ensure_ascii=False, default=str))

    def on_tool_result(self, name: str, observation: str) -> None:
        preview = observation
        if len(preview) > RESULT_PREVIEW_CHARS:
            preview = preview[:RESULT_PREVIEW_CHARS] + "..."
        style = "red" if observation.startswith("Error") else "dim"
        self.console.print(f"[{style}]\\[result] {escape(name)}:[/{style}] {escape(preview)}")

    def on_step_limit(self, max_steps: int) -> None:
        self.end_stream()
        self.print_warning(f"Reached the step limit ({max_steps}) without a final answer.")

    # Approval

    def request_approval(self, prompt: str) -> bool:
        """Ask the human whether a mutating tool may run.

        Raises:
            ApprovalError if input could not be read
        """
        self.end_stream()
        try:
            return Confirm.ask(f"[bold magenta]{escape(prompt)}[/bold magenta]\n", console=self.console, default=False)
        except (EOFError, OSError) as e:
            log.warning("Approval input unavailable", error=str(e))
            raise ApprovalError(f"Failed to read input: {e}") from e

    # Plain output

    def end_stream(self) -> None:
        if self._streamed:
            self.console.print()
            self._streamed = False

    def print_answer(self, answer: str) -> None:
        """Print the final answer unless it was already streamed."""
        if self._streamed:
            self.end_stream()
            return
        self.console.print(answer, markup=False)

    def print_welcome(self, model: str) -> None:
        self.console.print("[bold cyan]=== termx ===[/bold cyan]")
        self.console.print(f"Model: {model}")
        self.console.print("Type 'help' for commands.\n")

    def print_help(self) -> None:
        table = Table(title="Available Commands", show_header=False)
        table.add_column("Command", style="green")
        table.add_column("Description")
        table.add_row("help", "Show this help message")
        table.add_row("clear", "Clear the terminal screen")
        table.add_row("status", "Show current session information")
        table.add_row("quit", "Exit and show the session summary")
        self.console.print(table)
        self.console.print(
            "Type your coding task as a natural language prompt. "
            "The agent will use tools to help with your request."
        )

    def print_status(self, session: Session) -> None:
        info = session.summary()
        table = Table(title="Session Status", show_header=False)
        table.add_column("Field", style="green")
        table.add_column("Value")
        table.add_row("Session ID", info["id"])
        table.add_row("Model", info["model"] or "default")
        table.add_row("Messages", str(info["messages"]))
        table.add_row("Started", info["created_at"])
        self.console.print(table)

    def print_summary(self, session: Session) -> None:
        self.console.print("\n[cyan]Session Summary:[/cyan]")
        self.console.print(f"[green]  Session ID:[/green]     {session.id}")
        self.console.print(f"[green]  Total Messages:[/green] {len(session.messages)}")
        ended = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
        self.console.print(f"[green]  Ended at:[/green]       {ended}")

    def print_error(self, error: str) -> None:
        self.end_stream()
        self.console.print(f"[bold red]Error:[/bold red] {escape(error)}", highlight=False)

    def print_warning(self, warning: str) -> None:
        self.console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")

    def clear_screen(self) -> None:
        self.console.clear()

    def prompt(self) -> str:
        return self.console.input("[bold bright_yellow]You:[/bold bright_yellow] ")
