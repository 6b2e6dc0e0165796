"""Output formatters for console and JSON display."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.status import Status
from rich.table import Table

if TYPE_CHECKING:
    from .core import (
        ActionKind,
        ActionPlan,
        ActionResult,
        BatchReport,
        Diagnostic,
        RepositoryIndex,
        RepositoryRecord,
    )


class OutputFormatter:
    """Format output for console or JSON."""

    def __init__(self, console: Console, use_json: bool = False):
        self.console = console
        self.use_json = use_json

    def _print_json(self, output: dict):
        self.console.print(
            json.dumps(output, indent=2, default=str),
            soft_wrap=True,
            markup=False,
            highlight=False,
        )

    def print_repository_index(self, index: RepositoryIndex, root_path: Path):
        """Print local repositories and the remote ones not cloned yet."""
        if self.use_json:
            self._print_json({"root": str(root_path), **index.to_dict()})
            return

        self.print_diagnostics(index.diagnostics)
        table = Table(title=f"Repositories: {root_path}")
        table.add_column("Repository", no_wrap=True)
        table.add_column("Where", justify="center")

        for record in index.local:
            table.add_row(record.display_label, "[cyan]local[/]")
        for record in index.remote:
            table.add_row(record.display_label, "[dim]remote[/]")

        self.console.print(table)
        self.console.print(
            f"[bold]Local:[/] {len(index.local)} | [bold]Remote (not cloned):[/] "
            f"{len(index.remote)}"
        )

    def print_diagnostics(self, diagnostics: list[Diagnostic]):
        """Print discovery problems as dim warnings (console mode only)."""
        if self.use_json:
            return
        for diagnostic in diagnostics:
            self.console.print(
                f"[yellow]⚠[/] [dim]{diagnostic.stage}: {escape(diagnostic.name)} - "
                f"{escape(diagnostic.reason)}[/]"
            )

    def print_nothing_to_do(self):
        if self.use_json:
            from .core import BatchReport, BatchState

            self._print_json(BatchReport(state=BatchState.COMPLETED).to_dict())
        else:
            self.console.print("[dim]Nothing to do.[/]")

    def print_plan(self, plan: ActionPlan):
        """Print the review of planned pulls and clones."""
        if self.use_json:
            return

        self.console.print("\nReview your selections:\n")
        if plan.pulls:
            self.console.print("[cyan]🔄 Updating:[/]")
            for record in plan.pulls:
                self.console.print(f"[cyan]➜[/]  [green]{escape(record.name)}[/]")
        if plan.clones:
            self.console.print("\n[cyan]🆕 Cloning:[/]")
            for record in plan.clones:
                self.console.print(f"[cyan]➜[/]  [green]{escape(record.name)}[/]")
        if plan.skipped:
            self.console.print("\n[yellow]Skipping unknown repositories:[/]")
            for name in plan.skipped:
                self.console.print(f"[yellow]➜[/]  {escape(name)}")
        self.console.print()

    def print_report(self, report: BatchReport):
        """Print per-item results and the completion summary."""
        if self.use_json:
            self._print_json(report.to_dict())
            return

        from .core import ItemStatus

        table = Table(title="Results")
        table.add_column("Repository", style="cyan")
        table.add_column("Action")
        table.add_column("Status", justify="center")
        table.add_column("Message")

        for result in report.results:
            match result.status:
                case ItemStatus.SUCCEEDED:
                    status = "[green]✓[/]"
                    message = escape(result.message[:60]) if result.message else "OK"
                case ItemStatus.FAILED:
                    status = "[red]✗[/]"
                    message = f"[red]{escape(result.error[:60])}[/]" if result.error else "Failed"
                case _:
                    status = "[yellow]-[/]"
                    message = f"[yellow]{escape(result.error)}[/]"
            action = result.action.value if result.action else ""
            table.add_row(escape(result.name), action, status, message)

        self.console.print(table)

        parts = [f"[bold]Succeeded:[/] {len(report.succeeded)}/{report.attempted}"]
        if report.failed:
            parts.append(f"[red]✗ Failed:[/] {len(report.failed)}")
        if report.skipped:
            parts.append(f"[yellow]Skipped:[/] {len(report.skipped)}")
        self.console.print(" | ".join(parts))

        if report.failed:
            self.console.print("\n[bold red]Some repositories need manual attention[/]")
        else:
            self.console.print("\n[bold magenta]Gitman[/], done!")


class SpinnerProgress:
    """Show one spinner per item while it runs, then a ✓ or ✗ line."""

    LABELS = {"pull": "Updating", "clone": "Cloning"}

    def __init__(self, console: Console):
        self.console = console
        self._status: Status | None = None
        self._label = ""

    def on_start(self, action: ActionKind, record: RepositoryRecord) -> None:
        self._label = f"{self.LABELS.get(action.value, action.value)} [green]{escape(record.name)}[/]"
        self._status = self.console.status(self._label)
        self._status.start()

    def on_finish(self, result: ActionResult) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        if result.success:
            self.console.print(f"[green]✔[/] {self._label}")
        else:
            self.console.print(f"[red]✖[/] {self._label} [red]{escape(result.error[:80])}[/]")
