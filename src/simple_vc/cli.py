"""CLI for simple-vc."""

import logging
from pathlib import Path
from typing import List, NoReturn, Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import ops
from .collaboration import get_secret_key, regenerate_secret_key
from .constants import SVC_VERSION
from .context import ProjectContext
from .core import DiffFilter, Project
from .display import display_diff, display_history, display_restore, display_session_summary
from .errors import FileAccessError, NotInitializedError, SvcError
from .ignore import IgnoreRules
from .monitor import ChangeEvent, ChangeMonitor, TriageAction, triage, watch
from .store import Store
from .tracker import track, track_paths


app = typer.Typer(help="""\
Local snapshot versioning for a working directory. Track files, capture
named snapshots, compare them line by line, and restore files from any
snapshot.""")

console = Console()
err_console = Console(stderr=True)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(e: Exception) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]✗[/red] {escape(str(e))}")
    raise typer.Exit(1)


def require_project() -> Tuple[ProjectContext, Store, Project]:
    """Open the project containing the current directory.

    Raises:
        typer.Exit: If not in a project directory
    """
    try:
        return ops.open_project()
    except NotInitializedError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        console.print()
        console.print("To initialize a new project, run:")
        console.print("  [cyan]svc init[/cyan]")
        raise typer.Exit(1)
    except SvcError as e:
        _fail(e)


@app.command()
def init(
    path: Optional[str] = typer.Argument(None, help="Directory to initialize (default: current directory)"),
):
    """Initialize a project (safe to run again)."""
    target_dir = Path(path) if path else Path.cwd()
    if not target_dir.is_dir():
        _fail(FileAccessError(str(target_dir), "directory not found"))

    already = ProjectContext.is_initialized(target_dir)
    try:
        ctx, _, project = ops.init_project(target_dir)
    except SvcError as e:
        _fail(e)

    if already:
        console.print(f"[yellow]⚠[/yellow] Project '{project.name}' already initialized")
    else:
        console.print(f"[green]✓[/green] Initialized project '{project.name}' in {ctx.root}")
        console.print(f"[dim]Ignore rules: {ctx.ignore_path.name}[/dim]")


@app.command(name="track")
def track_command(
    files: Optional[List[Path]] = typer.Argument(None, help="Files to track (default: whole project)"),
):
    """Record the current hash of every non-ignored file.

    Examples:
        svc track                  # Walk the whole project
        svc track src/app.py       # Track specific files
    """
    ctx, store, project = require_project()
    try:
        if files:
            rel_paths = [ctx.to_project_relative(f.resolve()) for f in files]
            result = track_paths(ctx, store, project.id, rel_paths)
        else:
            result = track(ctx, store, project.id)
    except SvcError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Tracking {len(result.tracked)} files")
    if result.ignored:
        console.print(f"[dim]{len(result.ignored)} ignored[/dim]")
    for failure in result.failures:
        console.print(f"[red]✗[/red] {escape(failure.path)}: {escape(failure.error)}")


# ============= Snapshots =============

snapshot_app = typer.Typer(help="Create, list and delete snapshots")
app.add_typer(snapshot_app, name="snapshot")


@snapshot_app.command(name="create")
def snapshot_create(
    description: str = typer.Argument(..., help="What this snapshot captures"),
):
    """Track the project and capture every tracked file."""
    ctx, store, project = require_project()
    try:
        snapshot_id = ops.create_snapshot(ctx, store, project, description)
        snapshot = ops.get_snapshot(store, project, snapshot_id)
    except SvcError as e:
        _fail(e)
    console.print(
        f"[green]✓[/green] Created snapshot [cyan]{snapshot_id}[/cyan] "
        f"({snapshot.file_count} files): {escape(description)}"
    )


@snapshot_app.command(name="list")
def snapshot_list():
    """List snapshots in creation order."""
    _, store, project = require_project()
    display_history(ops.list_snapshots(store, project), console)


@app.command()
def history():
    """Show snapshot history (same as 'snapshot list')."""
    snapshot_list()


@snapshot_app.command(name="delete")
def snapshot_delete(
    snapshot_id: int = typer.Argument(..., help="Snapshot to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a snapshot and all of its captured content."""
    _, store, project = require_project()
    try:
        snapshot = ops.get_snapshot(store, project, snapshot_id)
        if not yes and not typer.confirm(
            f"Delete snapshot {snapshot.id} ({snapshot.description})?"
        ):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)
        removed = ops.delete_snapshot(store, project, snapshot_id)
    except SvcError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted snapshot {snapshot_id} ({removed} files)")


# ============= Diff & Restore =============

@app.command()
def diff(
    base: int = typer.Argument(..., help="Older snapshot id"),
    target: int = typer.Argument(..., help="Newer snapshot id"),
    ext: Optional[str] = typer.Option(None, "--ext", help="Only files ending with this suffix (e.g. .py)"),
    directory: Optional[str] = typer.Option(None, "--dir", help="Only files under this directory (e.g. src/)"),
    show_all: bool = typer.Option(False, "--all", help="Also list unchanged files"),
):
    """Compare two snapshots line by line.

    Examples:
        svc diff 1 2
        svc diff 1 2 --ext .py
        svc diff 1 2 --dir src/
    """
    _, store, project = require_project()
    diff_filter = DiffFilter(extension=ext, directory=directory) if (ext or directory) else None
    try:
        result = ops.diff_snapshots(store, project, base, target, diff_filter)
    except SvcError as e:
        _fail(e)
    display_diff(result, console, show_unchanged=show_all)


@app.command()
def revert(
    snapshot_id: int = typer.Argument(..., help="Snapshot to revert to"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Overwrite files with their content from a snapshot.

    Files the snapshot does not contain are left untouched.
    """
    ctx, store, project = require_project()
    try:
        snapshot = ops.get_snapshot(store, project, snapshot_id)
        if not yes and not typer.confirm(
            f"Overwrite {snapshot.file_count} files with snapshot {snapshot.id}?"
        ):
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(0)
        result = ops.revert_to_snapshot(ctx, store, project, snapshot_id)
    except SvcError as e:
        _fail(e)

    display_restore(result, console)
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def restore(
    snapshot_id: int = typer.Argument(..., help="Snapshot to restore from"),
    paths: Optional[List[Path]] = typer.Argument(None, help="Files to restore"),
):
    """Restore selected files from a snapshot.

    Example:
        svc restore 3 src/app.py README.md
    """
    ctx, store, project = require_project()
    try:
        selected = [ctx.to_project_relative(p.resolve()) for p in paths or []]
        result = ops.selective_restore(ctx, store, project, snapshot_id, selected)
    except SvcError as e:
        _fail(e)

    display_restore(result, console)
    if not result.ok:
        raise typer.Exit(1)


# ============= Ignore Rules =============

ignore_app = typer.Typer(help="Manage ignore rules")
app.add_typer(ignore_app, name="ignore")


def _load_rules() -> IgnoreRules:
    ctx, _, _ = require_project()
    return IgnoreRules.load(ctx.ignore_path)


@ignore_app.command(name="list")
def ignore_list():
    """Show ignore rules in file order."""
    rules = _load_rules()
    if not rules.patterns:
        console.print("[dim]No ignore rules[/dim]")
        return
    for pattern in rules.patterns:
        console.print(f"  {escape(pattern)}")


@ignore_app.command(name="add")
def ignore_add(pattern: str = typer.Argument(..., help="Glob or regular expression")):
    """Add an ignore rule."""
    rules = _load_rules()
    try:
        added = rules.add(pattern)
    except SvcError as e:
        _fail(e)
    if not added:
        console.print(f"[yellow]⚠[/yellow] Rule already present: {escape(pattern)}")
        return
    rules.save()
    console.print(f"[green]✓[/green] Added rule: {escape(pattern)}")


@ignore_app.command(name="remove")
def ignore_remove(pattern: str = typer.Argument(..., help="Rule to remove")):
    """Remove an ignore rule."""
    rules = _load_rules()
    if not rules.remove(pattern):
        _fail(SvcError(f"No such rule: {pattern}"))
    rules.save()
    console.print(f"[green]✓[/green] Removed rule: {escape(pattern)}")


@ignore_app.command(name="preview")
def ignore_preview():
    """Show which files each rule currently matches."""
    ctx, _, _ = require_project()
    preview = IgnoreRules.load(ctx.ignore_path).preview(ctx.root)
    if not preview:
        console.print("[dim]No ignore rules[/dim]")
        return
    for pattern, matched in preview.items():
        console.print(f"[cyan]{escape(pattern)}[/cyan] [dim]({len(matched)})[/dim]")
        for path in matched:
            console.print(f"  {escape(path)}")


# ============= Monitor =============

TRIAGE_CHOICES = {"t": TriageAction.TRACK, "i": TriageAction.IGNORE, "s": TriageAction.SKIP}


def _prompt_action(event: ChangeEvent) -> TriageAction:
    while True:
        answer = typer.prompt(
            f"{event.kind.value} {event.path} - [t]rack, [i]gnore, [s]kip", default="s"
        ).strip().lower()
        if answer[:1] in TRIAGE_CHOICES:
            return TRIAGE_CHOICES[answer[:1]]
        console.print("[yellow]Please answer t, i or s[/yellow]")


@app.command()
def monitor():
    """Watch the project for changes until Ctrl-C, then triage them."""
    ctx, store, project = require_project()
    rules = IgnoreRules.load(ctx.ignore_path)
    change_monitor = ChangeMonitor(debounce_seconds=ctx.config.debounce_seconds, rules=rules)

    observer = watch(ctx, change_monitor)
    console.print(f"[green]Watching[/green] {ctx.root} [dim](Ctrl-C to stop)[/dim]")
    try:
        while observer.is_alive():
            observer.join(1)
    except KeyboardInterrupt:
        pass
    finally:
        observer.stop()
        observer.join()

    session = change_monitor.stop()
    display_session_summary(session.summary(), console)
    if session.is_empty:
        return

    report = triage(session, _prompt_action, ctx, store, project.id, rules)
    console.print(
        f"[green]✓[/green] {len(report.tracked)} tracked, "
        f"{len(report.ignored)} ignored, {len(report.skipped)} skipped"
    )
    for failure in report.failures:
        console.print(f"[red]✗[/red] {escape(failure.path)}: {escape(failure.error)}")


# ============= Collaboration =============

secret_app = typer.Typer(help="Project secret key for collaboration")
app.add_typer(secret_app, name="secret")


@secret_app.command(name="show")
def secret_show():
    """Show the project secret key (issued on first use)."""
    _, store, project = require_project()
    console.print(f"Secret Key: [green]{get_secret_key(store, project.id)}[/green]")


@secret_app.command(name="regenerate")
def secret_regenerate():
    """Replace the project secret key."""
    _, store, project = require_project()
    console.print(f"New Secret Key: [green]{regenerate_secret_key(store, project.id)}[/green]")


@app.command()
def version():
    """Show version."""
    console.print(f"svc {SVC_VERSION}")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
