"""
Rich output formatting for Accord plans and apply reports.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import ApplyReport, Ensure, ExecutionStatus, ResourcePlan


class PlanFormatter:
    """Renders plans and reports as Rich tables.

    Uses Terraform-like symbols for planned nodes:
    - `+` for nodes that converge to an existing state
    - `-` for nodes that converge to absence
    """

    def __init__(self, console: Optional[Console] = None):
        """Initialize formatter with Rich console."""
        self.console = console or Console()

        self.status_styles = {
            ExecutionStatus.SUCCESS: "green",
            ExecutionStatus.FAILED: "bold red",
            ExecutionStatus.SKIPPED: "yellow",
        }

    def plan_table(self, plan: ResourcePlan) -> Table:
        table = Table(title=f"Account {escape(plan.title)} ({plan.ensure.value})", title_justify="left")
        table.add_column("", width=1)
        table.add_column("Resource", style="bright_white", no_wrap=True)
        table.add_column("Ensure", style="cyan")
        table.add_column("Requires", style="dim")

        for node in plan.nodes:
            removing = node.ensure == Ensure.ABSENT.value
            symbol = "[red]-[/red]" if removing else "[green]+[/green]"
            table.add_row(
                symbol,
                escape(node.ref),
                str(node.ensure),
                escape(", ".join(sorted(node.ordering_constraints))),
            )
        return table

    def report_table(self, report: ApplyReport) -> Table:
        title = f"Account {escape(report.title)}"
        if report.dry_run:
            title += " (dry run)"
        table = Table(title=title, title_justify="left")
        table.add_column("Resource", style="bright_white", no_wrap=True)
        table.add_column("Status")
        table.add_column("Detail", style="dim")

        for result in report.results:
            style = self.status_styles[result.status]
            table.add_row(
                escape(result.ref),
                f"[{style}]{result.status.value}[/{style}]",
                escape(result.error or ""),
            )
        return table

    def print_plan(self, plan: ResourcePlan) -> None:
        self.console.print(self.plan_table(plan))

    def print_report(self, report: ApplyReport) -> None:
        self.console.print(self.report_table(report))
        self.console.print(
            f"[dim]{report.count(ExecutionStatus.SUCCESS)} converged, "
            f"{report.count(ExecutionStatus.FAILED)} failed, "
            f"{report.count(ExecutionStatus.SKIPPED)} skipped[/dim]"
        )
