# src/ytoperator/cli/formatter.py
from typing import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from ytoperator.core.conditions import Condition
from ytoperator.core.models import SyncStatus
from ytoperator.orchestrator.reconciler import PassReport

console = Console()

STATUS_COLORS = {
    SyncStatus.READY: "green",
    SyncStatus.PENDING: "yellow",
    SyncStatus.BLOCKED: "red",
    SyncStatus.UPDATING: "cyan",
    SyncStatus.NEED_FULL_UPDATE: "magenta",
}


class StatusFormatter:
    """
    Renders pass reports: per-component status table, cluster state panel,
    condition lists and rendered manifests.
    """

    def __init__(self, out: Console = None):
        self.console = out or console

    def print_component_table(self, report: PassReport):
        table = Table(title=f"Cluster {report.cluster}", show_lines=True, header_style="bold magenta")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Reason")
        table.add_column("Result", justify="center")

        for name, status in report.statuses.items():
            color = STATUS_COLORS.get(status.sync_status, "white")
            icon = "✅" if status.is_ready else "⏳" if status.sync_status != SyncStatus.BLOCKED else "⛔"
            table.add_row(name, f"[{color}]{status.sync_status.value}[/{color}]", status.message, icon)

        for name, error in report.errors.items():
            table.add_row(name, "[red]Error[/red]", error, "❌")

        self.console.print(table)

    def print_conditions(self, title: str, conditions: Iterable[Condition]):
        conditions = list(conditions)
        if not conditions:
            return
        table = Table(title=title, header_style="bold magenta")
        table.add_column("Type", style="dim")
        table.add_column("Status")
        table.add_column("Message")
        for cond in conditions:
            color = "green" if cond.is_true else "white"
            table.add_row(cond.type, f"[{color}]{cond.status}[/{color}]", cond.message)
        self.console.print(table)

    def print_summary(self, report: PassReport):
        summary = report.summary()
        by_status = ", ".join(f"{k}: {v}" for k, v in sorted(summary["by_status"].items())) or "none"
        lines = [
            "[bold white]Cluster State[/bold white]",
            "════════════════════════════════════════",
            f"State:          {summary['state']}",
            f"Update State:   {summary['update_state']}",
            f"Components:     {summary['components']} ({by_status})",
            f"Errors:         [red]{summary['errors']}[/red]",
        ]
        for transition in report.transitions:
            lines.append(f"Transition:     [cyan]{transition}[/cyan]")
        self.console.print(Panel("\n".join(lines), border_style="dim"))

    def print_report(self, report: PassReport, show_conditions: bool = True):
        self.print_component_table(report)
        if show_conditions:
            self.print_conditions("Cluster Conditions", report.conditions)
            self.print_conditions("Update Conditions", report.update_conditions)
        self.print_summary(report)

    def print_manifest(self, text: str, highlight: bool = True):
        if not highlight:
            self.console.print(text, markup=False, highlight=False, soft_wrap=True, end="")
            return
        self.console.print(Syntax(text, "yaml", theme="monokai", line_numbers=False))
