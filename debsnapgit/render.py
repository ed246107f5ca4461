"""
Rendering functions for debsnapgit output.

This module handles all pretty-printing and table formatting.
Commands return data as JSON by default; this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Optional

from .domain.instant import format_instant
from .infra.git_client import GitCommit
from .services.walker import WalkResult

console = Console()


def render_table(headers: List[str], rows: List[List[str]], title: Optional[str] = None) -> None:
    """
    Render a generic table with the given headers and rows.

    Args:
        headers: List of column headers
        rows: List of rows, where each row is a list of values
        title: Optional table title
    """
    if not rows:
        console.print("[yellow]No data to display.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(val) for val in row])

    console.print(table)


def render_walk_result(result: WalkResult) -> None:
    """Render the snapshots committed by a walk."""
    rows = [[format_instant(instant), commit[:12]] for instant, commit in result.commits]
    title = f"Snapshots {format_instant(result.start)} .. {format_instant(result.end)}"
    if not rows:
        console.print(f"[yellow]No new snapshots after {format_instant(result.start)}.[/yellow]")
        return
    render_table(["Snapshot", "Commit"], rows, title=title)


def render_history(commits: List[GitCommit]) -> None:
    """Render the archive's commit history."""
    if not commits:
        console.print("[yellow]No snapshots committed yet.[/yellow]")
        return
    rows = [
        [c.hash[:12], c.date.strftime('%Y-%m-%d %H:%M:%S'), c.message]
        for c in commits
    ]
    render_table(["Commit", "Date", "Message"], rows, title="Archive history")
