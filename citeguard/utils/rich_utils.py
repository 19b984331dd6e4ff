"""
Centralized Rich console utilities for run summaries.

A singleton Console is shared by every reporting helper so that output
from verification and repair runs is formatted consistently.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from citeguard.models import (
    BatchRepairSummary,
    CitationArchiveFile,
    PageRepairReport,
    RepairOutcome,
    VerificationStatus,
)

# Singleton console instance
console = Console()

_STATUS_STYLE = {
    VerificationStatus.VERIFIED: "green",
    VerificationStatus.BROKEN: "red",
    VerificationStatus.UNVERIFIABLE: "yellow",
    VerificationStatus.PENDING: "dim",
}

_OUTCOME_STYLE = {
    RepairOutcome.IMPROVED: "green",
    RepairOutcome.UNCHANGED: "yellow",
    RepairOutcome.REGRESSED: "bold red",
    RepairOutcome.NOT_RUN: "dim",
}


def print_panel(
    content: str,
    title: Optional[str] = None,
    border_style: str = "blue",
    add_spacing: bool = True,
    target: Optional[Console] = None,
) -> None:
    """
    Print a Rich panel with consistent spacing.

    Args:
        content: The content to display in the panel
        title: Optional title for the panel
        border_style: Color/style for the panel border
        add_spacing: Whether to add a blank line before the panel
        target: Console to print to (defaults to the shared console)
    """
    out = target or console
    if add_spacing:
        out.print()
    out.print(Panel(content, title=title, border_style=border_style))


def build_archive_table(archive: CitationArchiveFile) -> Table:
    """Build a per-citation status table for one page's verification archive."""
    table = Table(title=f"Citations: {archive.page_id}", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("HTTP", justify="right")
    table.add_column("URL", overflow="fold")
    table.add_column("Note", overflow="fold")
    for record in archive.citations:
        style = _STATUS_STYLE.get(record.status, "")
        table.add_row(
            str(record.footnote),
            f"[{style}]{record.status.value}[/{style}]",
            "" if record.http_status is None else str(record.http_status),
            escape(record.url),
            escape(record.note or ""),
        )
    return table


def print_archive_summary(archive: CitationArchiveFile, target: Optional[Console] = None) -> None:
    out = target or console
    out.print(build_archive_table(archive))
    out.print(
        f"[green]{archive.verified} verified[/green]  "
        f"[red]{archive.broken} broken[/red]  "
        f"[yellow]{archive.unverifiable} unverifiable[/yellow]  "
        f"of {archive.total_citations}"
    )


def print_repair_report(report: PageRepairReport, target: Optional[Console] = None) -> None:
    """
    Print the before/after summary of one page repair.

    A regression is printed with a red border since it means the repair
    made the page worse.
    """
    style = _OUTCOME_STYLE.get(report.outcome, "")
    after = "n/a" if report.after_flagged is None else str(report.after_flagged)
    lines = [
        f"[yellow]Stages:[/yellow] {', '.join(s.value for s in report.stages) or 'none'}",
        f"[yellow]Proposed:[/yellow] {report.proposed}  "
        f"[yellow]Applied:[/yellow] {report.applied}  "
        f"[yellow]Skipped:[/yellow] {report.skipped}",
        f"[yellow]Sections rewritten:[/yellow] {report.sections_rewritten}  "
        f"[yellow]Rejected:[/yellow] {report.rewrites_rejected}",
        f"[yellow]Sources replaced:[/yellow] {report.sources_replaced}",
        f"[yellow]Flagged:[/yellow] {report.before_flagged} -> {after}",
        f"[{style}]Outcome: {report.outcome.value}[/{style}]",
    ]
    if report.orphans_removed:
        removed = ", ".join(f"[^{n}]" for n in report.orphans_removed)
        lines.append(f"[dim]Orphaned definitions removed: {removed}[/dim]")
    for warning in report.warnings:
        lines.append(f"[yellow]! {escape(warning)}[/yellow]")
    border = "red" if report.outcome == RepairOutcome.REGRESSED else "cyan"
    print_panel(
        "\n".join(lines),
        title=f"[bold]Citation repair: {report.page_id}[/bold]",
        border_style=border,
        target=target,
    )


def print_batch_summary(summary: BatchRepairSummary, target: Optional[Console] = None) -> None:
    out = target or console
    table = Table(title="Batch repair")
    table.add_column("Page")
    table.add_column("Applied", justify="right")
    table.add_column("Flagged", justify="right")
    table.add_column("Outcome")
    for report in summary.reports:
        style = _OUTCOME_STYLE.get(report.outcome, "")
        after = "n/a" if report.after_flagged is None else str(report.after_flagged)
        table.add_row(
            report.page_id,
            str(report.applied + report.sections_rewritten + report.sources_replaced),
            f"{report.before_flagged} -> {after}",
            f"[{style}]{report.outcome.value}[/{style}]",
        )
    for page_id, error in summary.errors.items():
        table.add_row(page_id, "-", "-", f"[red]error: {error}[/red]")
    out.print(table)
