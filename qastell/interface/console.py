"""Rich console rendering of audit results."""
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from qastell.licensing import get_tier_display_name
from qastell.results import AuditResults
from qastell.rules import Severity
from qastell.version import TOOL_NAME, VERSION

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
    "info": "cyan",
}


def create_summary_table(results: AuditResults) -> Table:
    """Build the severity breakdown table.

    Args:
        results: Results of one audit

    Returns:
        Formatted Rich table
    """
    table = Table(
        title=f"{TOOL_NAME} v{VERSION} Security Audit",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Severity", style="cyan", width=12)
    table.add_column("Violations", justify="right", width=12)

    for severity in Severity.ordered():
        count = results.summary.by_severity.get(severity.value, 0)
        style = SEVERITY_STYLES[severity.value] if count else "dim"
        table.add_row(Text(severity.value.capitalize(), style=style), str(count))

    table.add_row("", "")  # Separator
    table.add_row(Text("Total", style="bold"), str(results.summary.total))
    return table


def create_failures_table(results: AuditResults) -> Table:
    table = Table(title="Failing Rules", show_header=True, header_style="bold red")
    table.add_column("Rule", style="magenta")
    table.add_column("Severity")
    table.add_column("Count", justify="right")
    table.add_column("Limit", justify="right")

    for failure in results.get_failures():
        severity = failure.severity.value
        table.add_row(
            failure.rule.id,
            Text(severity, style=SEVERITY_STYLES[severity]),
            str(len(failure.violations)),
            str(failure.limit),
        )
    return table


def print_summary(results: AuditResults, console: Console | None = None) -> None:
    """Print the audit verdict, severity counts and failing rules."""
    console = console or Console()

    if results.skipped:
        status = Text("SKIPPED (daily scan quota exhausted)", style="bold yellow")
    elif results.passed():
        status = Text("PASSED", style="bold green")
    else:
        status = Text("FAILED", style="bold red")

    header = Text.assemble(
        ("URL: ", "bold"),
        results.raw.url or "-",
        ("\nFramework: ", "bold"),
        results.raw.framework,
        ("\nLicense: ", "bold"),
        get_tier_display_name(results.tier),
        ("\nStatus: ", "bold"),
        status,
    )
    console.print(Panel(header, title=TOOL_NAME, border_style="cyan"))
    console.print(create_summary_table(results))

    if results.get_failures():
        console.print(create_failures_table(results))

    for result in results.raw.errors:
        console.print(Text.assemble(("Rule error ", "yellow"), f"{result.rule.id}: {result.error}"))
