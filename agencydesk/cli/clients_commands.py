"""Client CLI commands for Agency Desk."""

from pathlib import Path

import click
from rich.console import Console

from agencydesk.sdk import clients as sdk_clients
from agencydesk.sdk import get_output_path
from agencydesk.sdk.paystubs import client_ytd

from .common import echo_json, json_option, open_session, sdk_errors
from .renderers.tables import render_clients, render_ytd


def _client_fields(name, address, state, zip_code, ssn_last4, account_last4):
    values = {
        "full_name": name,
        "address": address,
        "state": state,
        "zip": zip_code,
        "ssn_last4": ssn_last4,
        "account_last4": account_last4,
    }
    return {k: v for k, v in values.items() if v is not None}


@click.group()
def clients():
    """Manage payroll clients.

    Archived clients are hidden from the default list but keep their
    paystubs and YTD baseline.
    """
    pass


@clients.command("add")
@click.option("--name", required=True, help="Full name")
@click.option("--address", default="", help="Street address")
@click.option("--state", required=True, help="2-letter state code (drives state withholding)")
@click.option("--zip", "zip_code", default="", help="ZIP or ZIP+4")
@click.option("--ssn-last4", default="", help="Last 4 digits of SSN")
@click.option("--account-last4", default="", help="Last 4 digits of bank account")
@json_option
def clients_add(name, address, state, zip_code, ssn_last4, account_last4, output_json):
    """Create a client."""
    store, _ = open_session()
    with sdk_errors():
        client = sdk_clients.create_client(
            store, _client_fields(name, address, state, zip_code, ssn_last4, account_last4)
        )

    if output_json:
        echo_json(client)
    else:
        click.echo(f"Created client {client.id}: {client.full_name}")


@clients.command("list")
@click.option("--archived", is_flag=True, help="Show archived clients instead of active ones")
@click.option("--search", "-s", help="Match name, address, state, ZIP or last-4 digits")
@json_option
def clients_list(archived, search, output_json):
    """List clients, newest first."""
    store, _ = open_session()
    with sdk_errors():
        results = sdk_clients.list_clients(store, archived=archived, search=search)

    if output_json:
        echo_json(results)
    else:
        render_clients(Console(), results)


@clients.command("show")
@click.argument("client_id")
@json_option
def clients_show(client_id, output_json):
    """Show a client and their year-so-far totals."""
    store, _ = open_session()
    with sdk_errors():
        client = sdk_clients.get_client(store, client_id)
        summary = client_ytd(store, client_id)

    if output_json:
        echo_json({"client": client.model_dump(mode="json"), "ytd": summary.model_dump()})
        return

    console = Console()
    render_clients(console, [client])
    if client.ytd_base:
        base = client.ytd_base
        console.print(
            f"Baseline {base.year}: gross ${base.total_gross:,.2f}"
            + (f", federal {base.federal_pct * 100:g}%" if base.federal_pct is not None else "")
        )
    render_ytd(console, summary, "Year to date")


@clients.command("edit")
@click.argument("client_id")
@click.option("--name", default=None)
@click.option("--address", default=None)
@click.option("--state", default=None)
@click.option("--zip", "zip_code", default=None)
@click.option("--ssn-last4", default=None)
@click.option("--account-last4", default=None)
def clients_edit(client_id, name, address, state, zip_code, ssn_last4, account_last4):
    """Update client fields (only the options given are changed)."""
    changes = _client_fields(name, address, state, zip_code, ssn_last4, account_last4)
    if not changes:
        raise click.UsageError("Nothing to change. Pass at least one option.")

    store, _ = open_session()
    with sdk_errors():
        client = sdk_clients.update_client(store, client_id, changes)
    click.echo(f"Updated client {client.id}: {client.full_name}")


@clients.command("archive")
@click.argument("client_id")
def clients_archive(client_id):
    """Archive a client (soft delete)."""
    store, _ = open_session()
    with sdk_errors():
        client = sdk_clients.archive_client(store, client_id)
    click.echo(f"Archived {client.full_name}")


@clients.command("restore")
@click.argument("client_id")
def clients_restore(client_id):
    """Restore an archived client."""
    store, _ = open_session()
    with sdk_errors():
        client = sdk_clients.restore_client(store, client_id)
    click.echo(f"Restored {client.full_name}")


@clients.command("export")
@click.option("--output", "-o", type=click.Path(), help="CSV path (default: <data_dir>/output/clients.csv)")
@click.option("--archived", is_flag=True, help="Export archived clients")
@click.option("--search", "-s", help="Only clients matching this term")
def clients_export(output, archived, search):
    """Export the (filtered) client list as CSV."""
    path = Path(output) if output else get_output_path() / "clients.csv"
    store, _ = open_session()
    with sdk_errors():
        count = sdk_clients.export_clients_csv(store, path, archived=archived, search=search)
    click.echo(f"Exported {count} client(s) to {path}")
