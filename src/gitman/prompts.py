"""Interactive terminal prompts built on readchar and rich Live."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import readchar
import typer
from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

PAGE_SIZE = 50

ENTER_KEYS = (readchar.key.ENTER, "\r", "\n")
BACKSPACE_KEYS = (readchar.key.BACKSPACE, "\x7f", "\x08")


def fuzzy_match(needle: str, haystack: str) -> bool:
    """Check whether the characters of needle appear in haystack, in order."""
    remaining = iter(haystack.lower())
    return all(char in remaining for char in needle.lower())


@dataclass(frozen=True)
class Choice:
    """One selectable line: the value returned and the markup shown."""

    value: str
    label: str
    section: str = ""


class CheckboxState:
    """Cursor position, search query and checked values of a checkbox prompt."""

    def __init__(self, choices: Sequence[Choice], page_size: int = PAGE_SIZE):
        self.choices = list(choices)
        self.page_size = page_size
        self.checked: set[str] = set()
        self.query = ""
        self.cursor = 0

    @property
    def visible(self) -> list[Choice]:
        return [c for c in self.choices if fuzzy_match(self.query, c.value)]

    def move(self, step: int) -> None:
        visible = self.visible
        if visible:
            self.cursor = (self.cursor + step) % len(visible)

    def toggle(self) -> None:
        visible = self.visible
        if not visible:
            return
        value = visible[self.cursor].value
        if value in self.checked:
            self.checked.remove(value)
        else:
            self.checked.add(value)

    def search(self, query: str) -> None:
        self.query = query
        self.cursor = 0

    def selected(self) -> list[str]:
        """Checked values in display order, including ones hidden by the query."""
        return [c.value for c in self.choices if c.value in self.checked]

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns True once the user confirms."""
        if key == readchar.key.UP:
            self.move(-1)
        elif key == readchar.key.DOWN:
            self.move(1)
        elif key == " ":
            self.toggle()
        elif key in BACKSPACE_KEYS:
            self.search(self.query[:-1])
        elif key in ENTER_KEYS:
            return True
        elif key in (readchar.key.ESC, readchar.key.CTRL_C):
            raise KeyboardInterrupt
        elif len(key) == 1 and key.isprintable():
            self.search(self.query + key)
        return False

    def render(self, message: str) -> Panel:
        table = Table.grid(padding=(0, 1))
        table.add_column(width=1)
        table.add_column(width=1)
        table.add_column()

        visible = self.visible
        start = max(0, self.cursor - self.page_size + 1)
        section = None
        for index, choice in enumerate(visible[start : start + self.page_size], start=start):
            if choice.section and choice.section != section:
                section = choice.section
                table.add_row("", "", f"[bold cyan]=== {escape(section)} ===[/]")
            pointer = "[cyan]▶[/]" if index == self.cursor else " "
            box = "[green]◉[/]" if choice.value in self.checked else "○"
            table.add_row(pointer, box, choice.label)
        if not visible:
            table.add_row("", "", "[dim]No matches[/]")

        footer = (
            f"\n[dim]Search:[/] {escape(self.query)}\n"
            "[dim]↑/↓ move, Space toggle, type to search, Enter confirm, Esc cancel[/]"
        )
        return Panel(
            Group(table, footer),
            title=f"[bold]{message}[/]",
            border_style="cyan",
            padding=(1, 2),
        )


def select_many(choices: Sequence[Choice], message: str, console: Console) -> list[str]:
    """Checkbox prompt with type-to-search. Esc or Ctrl+C exits with status 1."""
    state = CheckboxState(choices)
    if not state.choices:
        return []

    try:
        with Live(
            state.render(message), console=console, transient=True, auto_refresh=False
        ) as live:
            while not state.handle_key(readchar.readkey()):
                live.update(state.render(message), refresh=True)
    except KeyboardInterrupt:
        console.print("[yellow]Selection cancelled[/]")
        raise typer.Exit(1)

    return state.selected()


def select_one(options: Sequence[str], message: str, console: Console) -> str:
    """Arrow-key single choice prompt."""
    option_list = list(options)
    selected_index = 0

    def create_selection_panel() -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", width=1)
        table.add_column()
        for i, option in enumerate(option_list):
            table.add_row("▶" if i == selected_index else " ", escape(option))
        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/]")
        return Panel(table, title=f"[bold]{message}[/]", border_style="cyan", padding=(1, 2))

    try:
        with Live(
            create_selection_panel(), console=console, transient=True, auto_refresh=False
        ) as live:
            while True:
                key = readchar.readkey()
                if key == readchar.key.UP:
                    selected_index = (selected_index - 1) % len(option_list)
                elif key == readchar.key.DOWN:
                    selected_index = (selected_index + 1) % len(option_list)
                elif key in ENTER_KEYS:
                    break
                elif key in (readchar.key.ESC, readchar.key.CTRL_C):
                    raise KeyboardInterrupt
                live.update(create_selection_panel(), refresh=True)
    except KeyboardInterrupt:
        console.print("[yellow]Selection cancelled[/]")
        raise typer.Exit(1)

    return option_list[selected_index]


def confirm(message: str, console: Console, default: bool = True) -> bool:
    return Confirm.ask(message, console=console, default=default)


def ask(message: str, console: Console, password: bool = False) -> str:
    return Prompt.ask(message, console=console, password=password)
