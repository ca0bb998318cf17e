"""Settings CLI commands for Agency Desk.

settings.json holds machine-local paths; agency data itself lives in the
data directory's record store.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from agencydesk.sdk import (
    get_data_path,
    get_output_path,
    get_profile_value,
    get_settings_path,
    load_settings,
    open_store,
    save_settings,
    set_setting,
)
from agencydesk.sdk.store import COLLECTIONS


@click.group()
def settings():
    """Machine settings (settings.json).

    \b
    Keys:
    - data_dir: record store, generated PDFs and CSV exports
    - profile: external profile.yaml (set with 'profile use')
    """
    pass


@settings.command("show")
def settings_show():
    """Show settings, effective paths and record counts."""
    settings_path = get_settings_path()
    current = load_settings()
    store = open_store()

    console = Console()
    console.print(f"Settings file: {settings_path}" + ("" if settings_path.exists() else " (not created)"))

    paths = Table(show_header=False, box=None, pad_edge=False)
    paths.add_column("Key", style="bold")
    paths.add_column("Path")
    paths.add_row("data_dir", f"{get_data_path()}" + ("" if current.get("data_dir") else " (default)"))
    paths.add_row("store", str(store.root))
    paths.add_row("output", str(get_output_path()))
    paths.add_row("profile", current.get("profile") or "(config dir)")
    paths.add_row("template", get_profile_value("buy_order_template") or "(not set)")
    console.print(paths)

    counts = Table(show_header=True, header_style="bold", title="Records")
    counts.add_column("Collection")
    counts.add_column("Documents", justify="right")
    for collection in COLLECTIONS:
        counts.add_row(collection, str(store.count(collection)))
    console.print(counts)


@settings.command("data-dir")
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option("--clear", is_flag=True, help="Go back to the XDG default location")
def settings_data_dir(path, clear):
    """Show, set or clear the data directory.

    Records are not moved. Copy <old data_dir>/store across first if the
    new location should start with the existing records.

    Examples:
        agency-desk settings data-dir ~/agency-data
        agency-desk settings data-dir --clear
    """
    current = load_settings()

    if clear:
        if current.pop("data_dir", None) is None:
            click.echo("data_dir was not set.")
            return
        save_settings(current)
        click.echo(f"Cleared data_dir. Using default: {get_data_path()}")
        return

    if not path:
        click.echo(get_data_path())
        return

    new_path = Path(path).expanduser().resolve()
    try:
        new_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise click.ClickException(f"Cannot create directory: {new_path}\n{e}")

    old_store = get_data_path() / "store"
    if old_store.exists() and not (new_path / "store").exists():
        click.echo(f"Note: existing records stay in {old_store}", err=True)

    settings_file = set_setting("data_dir", str(new_path))
    click.echo(f"Set data_dir: {new_path}")
    click.echo(f"Saved to: {settings_file}")
