"""Display logic for snapshot history, diffs and batch results."""

from typing import Dict, List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core import FileDiff, FileStatus, LineChange, RestoreResult, Snapshot, SnapshotDiff
from .monitor import ChangeKind
from .utils import format_iso_date, humanize_date


STATUS_LABELS = {
    FileStatus.ADDED: "[green]+ added[/green]",
    FileStatus.REMOVED: "[red]- removed[/red]",
    FileStatus.MODIFIED: "[yellow]~ modified[/yellow]",
    FileStatus.UNCHANGED: "[dim]= unchanged[/dim]",
}


def display_history(snapshots: List[Snapshot], console: Console):
    """Show snapshots in creation order."""
    if not snapshots:
        console.print("[dim]No snapshots yet[/dim]")
        return

    table = Table(title=f"Snapshots ({len(snapshots)})")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Description")
    table.add_column("Files", justify="right")
    table.add_column("Created")

    for snapshot in snapshots:
        table.add_row(
            str(snapshot.id),
            escape(snapshot.description),
            str(snapshot.file_count),
            f"{format_iso_date(snapshot.created_at)} [dim]({humanize_date(snapshot.created_at)})[/dim]",
        )

    console.print(table)


def _side_by_side(file_diff: FileDiff) -> Table:
    """Two-column old/new rendering of one file's runs."""
    table = Table(title=escape(file_diff.path), show_lines=False, expand=True)
    table.add_column("Old", ratio=1, overflow="fold")
    table.add_column("New", ratio=1, overflow="fold")

    runs = file_diff.runs
    i = 0
    while i < len(runs):
        run = runs[i]
        if run.kind == LineChange.UNCHANGED:
            for line in run.lines:
                text = f"[dim]{escape(line.rstrip())}[/dim]"
                table.add_row(text, text)
            i += 1
            continue

        # Pair a removed run with the added run that replaces it
        removed: List[str] = []
        added: List[str] = []
        if run.kind == LineChange.REMOVED:
            removed = run.lines
            if i + 1 < len(runs) and runs[i + 1].kind == LineChange.ADDED:
                added = runs[i + 1].lines
                i += 1
        else:
            added = run.lines
        i += 1

        for n in range(max(len(removed), len(added))):
            old = f"[red]- {escape(removed[n].rstrip())}[/red]" if n < len(removed) else ""
            new = f"[green]+ {escape(added[n].rstrip())}[/green]" if n < len(added) else ""
            table.add_row(old, new)

    return table


def display_diff(diff: SnapshotDiff, console: Console, show_unchanged: bool = False):
    """Show a snapshot diff: a per-file summary followed by changed files side by side."""
    console.print(f"\n[bold]Snapshot {diff.base_id} → {diff.target_id}[/bold]")

    if not diff.files:
        console.print("[dim]No files to compare[/dim]")
        return

    for file_diff in diff.files:
        if file_diff.changed or show_unchanged:
            console.print(f"  {STATUS_LABELS[file_diff.status]}  {escape(file_diff.path)}")

    changed = diff.changed_files
    if not changed:
        console.print("[green]✓ No differences[/green]")
        return

    for file_diff in changed:
        console.print()
        console.print(_side_by_side(file_diff))

    console.print(f"\n[bold]{len(changed)}[/bold] of {len(diff.files)} files changed")


def display_restore(result: RestoreResult, console: Console):
    for path in result.restored:
        console.print(f"[green]✓[/green] Restored {escape(path)}")
    for failure in result.failures:
        console.print(f"[red]✗[/red] {escape(failure.path)}: {escape(failure.error)}")


def display_session_summary(summary: Dict[ChangeKind, int], console: Console):
    """One line per change kind observed during monitoring."""
    console.print("\n[bold]Changes detected:[/bold]")
    console.print(f"  [green]Added:[/green] {summary[ChangeKind.ADDED]}")
    console.print(f"  [yellow]Modified:[/yellow] {summary[ChangeKind.MODIFIED]}")
    console.print(f"  [red]Deleted:[/red] {summary[ChangeKind.DELETED]}")
