from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from savekeep import __version__
from savekeep.config import (
    find_config,
    init_config,
    load_config,
    save_global_config,
    save_project_config,
)
from savekeep.errors import SaveKeepError
from savekeep.log import read_logs, setup_logging
from savekeep.tracker import (
    candidate_files,
    list_snapshots,
    resolve_paths,
    restore_snapshot,
    start_watching,
    take_snapshot,
)
from savekeep.watch import WatchState


def _load(console):
    try:
        return load_config()
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1)


def _fail(console, error):
    console.print(f"[red]Error occurred: {escape(error.message)}[/red]")
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Show debug log output.")
def main(verbose):
    """savekeep: numbered backups of a single save file."""
    setup_logging(verbose)


@main.command()
@click.option("--save-dir", default=None, help="Directory holding the files to track.")
@click.option("--extension", default=None, help="Extension of tracked files, e.g. .ck2")
@click.option("--global", "global_", is_flag=True, help="Save these as defaults in ~/.savekeep/config.json.")
def init(save_dir, extension, global_):
    """Create a .savekeep config in the current directory."""
    if global_:
        updates = {"save_dir": str(Path(save_dir).resolve()) if save_dir else None, "extension": extension}
        updates = {k: v for k, v in updates.items() if v is not None}
        if not updates:
            click.echo("Nothing to save. Pass --save-dir and/or --extension.")
            raise SystemExit(1)
        config_path = save_global_config(updates)
        click.echo(f"Saved defaults to {config_path}")
        return
    if find_config():
        click.echo(".savekeep already exists.")
        return
    config_path = init_config(save_dir=save_dir, extension=extension)
    click.echo(f"Created {config_path}")


@main.command()
@click.argument("name", required=False)
def track(name):
    """Set the file to back up. Without NAME, choose from the save directory."""
    console = Console()
    config = _load(console)

    if not name:
        try:
            names = candidate_files(config)
        except SaveKeepError as e:
            _fail(console, e)
        if not names:
            console.print(f"[dim]No files found in {escape(config['save_dir'])}.[/dim]")
            raise SystemExit(1)
        for i, candidate in enumerate(names, 1):
            console.print(f"  [bold cyan]{i}[/bold cyan]  {escape(candidate)}")
        choice = click.prompt("Select file", type=click.IntRange(1, len(names)))
        name = names[choice - 1]
    else:
        name = name.strip()
        if not name:
            console.print("[red]Enter the name of a file.[/red]")
            raise SystemExit(1)
        paths = resolve_paths({**config, "tracked_file": name})
        if not paths.source_path.is_file():
            console.print(f"[yellow]Warning: {escape(str(paths.source_path))} does not exist yet.[/yellow]")

    save_project_config({"tracked_file": name})
    console.print(f"Tracked file set to: [bold]{escape(name)}[/bold]")


@main.command()
@click.option("--note", default=None, help="Annotation appended to the backup name.")
def backup(note):
    """Make a new backup of the tracked file."""
    console = Console()
    config = _load(console)
    try:
        snapshot = take_snapshot(config, note)
    except SaveKeepError as e:
        _fail(console, e)
    console.print(f"[green]Backup number {snapshot.index} created[/green] [dim]({escape(snapshot.name)})[/dim]")


def _snapshot_table(snapshots):
    table = Table(title="Backups")
    table.add_column("#", style="bold cyan", justify="right")
    table.add_column("Note")
    table.add_column("Size", style="dim", justify="right")
    table.add_column("Modified", style="dim")

    for s in snapshots:
        stat = s.path.stat()
        modified = datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M")
        table.add_row(str(s.index), escape(s.note or ""), f"{stat.st_size:,}", modified)
    return table


@main.command("list")
def list_cmd():
    """List backups of the tracked file, oldest first."""
    console = Console()
    config = _load(console)
    try:
        snapshots = list_snapshots(config)
    except SaveKeepError as e:
        _fail(console, e)

    if not snapshots:
        console.print("[dim]No backups found.[/dim]")
        return
    console.print(_snapshot_table(snapshots))


@main.command()
@click.argument("name", required=False)
def restore(name):
    """Overwrite the tracked file with a backup. NAME is a backup name or number."""
    console = Console()
    config = _load(console)
    try:
        if not name:
            snapshots = list_snapshots(config)
            if not snapshots:
                console.print("[dim]No backups found.[/dim]")
                return
            console.print(_snapshot_table(snapshots))
            name = click.prompt("Backup number to restore", type=str)
        path = restore_snapshot(config, name)
    except SaveKeepError as e:
        _fail(console, e)
    console.print(f"[green]Restored backup {escape(name)} to {escape(str(path))}[/green]")


@main.command()
@click.option("--debounce", type=float, default=None, help="Seconds of quiet before a backup is taken.")
def watch(debounce):
    """Automatically back up the tracked file after it changes. Ctrl-C stops."""
    console = Console()
    config = _load(console)
    try:
        trigger = start_watching(config, debounce)
    except SaveKeepError as e:
        _fail(console, e)

    console.print("[bold]Automatically backing up save files...[/bold] [dim](Ctrl-C to stop)[/dim]")
    try:
        while not trigger.wait(timeout=1):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        trigger.cancel()

    if trigger.state is WatchState.FAULTED:
        console.print(f"[red]Automatic backups stopped: {escape(trigger.fault.message)}[/red]")
        raise SystemExit(1)
    console.print("[dim]Stopped automatic backups.[/dim]")


@main.command()
@click.option("-n", "--limit", default=20, help="Number of log entries to show.")
@click.option("--all", "show_all", is_flag=True, help="Show entries for every tracked file.")
def logs(limit, show_all):
    """Show the backup/restore audit log."""
    console = Console()
    tracked = None
    if not show_all:
        tracked = _load(console).get("tracked_file")

    entries = read_logs(tracked)
    if not entries:
        console.print("[dim]No logs found.[/dim]")
        return

    table = Table(title="Backup Log")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("File")
    table.add_column("Backup", style="cyan")

    for entry in entries[-limit:]:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M")
            except ValueError:
                pass
        table.add_row(
            ts,
            entry.get("event", ""),
            escape(str(entry.get("tracked_file", ""))),
            escape(str(entry.get("snapshot", ""))),
        )

    console.print(table)


if __name__ == "__main__":
    main()
