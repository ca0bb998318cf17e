"""Year-to-date CLI commands for Agency Desk."""

from datetime import datetime

import click
from rich.console import Console

from agencydesk.sdk import paystubs as sdk_paystubs

from .common import echo_json, json_option, open_session, parse_fraction, sdk_errors
from .renderers.tables import render_ytd


@click.group()
def ytd():
    """Year-to-date totals and opening baselines.

    \b
    'ytd client' sums the baseline and the amounts stored on this year's
    paystubs. 'ytd through' recomputes taxes on the cumulative gross up to
    a given paystub using the baseline's federal percent, so the two can
    differ when periods used different federal percents.
    """
    pass


@ytd.command("client")
@click.argument("client_id")
@json_option
def ytd_client(client_id, output_json):
    """Year-so-far totals for CLIENT_ID."""
    store, _ = open_session()
    with sdk_errors():
        summary = sdk_paystubs.client_ytd(store, client_id)

    if output_json:
        echo_json(summary)
    else:
        render_ytd(Console(), summary, "Year to date")


@ytd.command("through")
@click.argument("paystub_id")
@json_option
def ytd_through(paystub_id, output_json):
    """Cumulative totals through PAYSTUB_ID (inclusive)."""
    store, rates = open_session()
    with sdk_errors():
        summary = sdk_paystubs.paystub_ytd(store, paystub_id, rates)

    if summary is None:
        raise click.ClickException(f"Paystub {paystub_id} has no creation time; cannot place it in a year")

    if output_json:
        echo_json(summary)
    else:
        render_ytd(Console(), summary, f"YTD through {paystub_id}")


@ytd.command("baseline")
@click.argument("client_id")
@click.option("--year", type=int, default=lambda: datetime.now().year, help="Baseline year (default: current)")
@click.option("--regular", "regular_gross", type=float, required=True, help="Regular gross before tracked paystubs")
@click.option("--overtime", "overtime_gross", type=float, default=0, help="Overtime gross before tracked paystubs")
@click.option("--federal-pct", type=float, default=None,
              help="Federal withholding, 0.12 or 12 for 12% (default: profile default_federal_pct, else 12%)")
def ytd_baseline(client_id, year, regular_gross, overtime_gross, federal_pct):
    """Set the opening YTD baseline for CLIENT_ID.

    Taxes on the baseline are computed from regular + overtime with the
    client's state.
    """
    store, rates = open_session()
    with sdk_errors():
        client = sdk_paystubs.adjust_ytd_baseline(
            store, client_id, year, regular_gross, overtime_gross,
            parse_fraction(federal_pct), rates,
        )

    base = client.ytd_base
    click.echo(f"Set {base.year} baseline for {client.full_name}:")
    click.echo(f"  gross ${base.gross:,.2f} (regular ${base.regular_gross:,.2f}, overtime ${base.overtime_gross:,.2f})")
    click.echo(f"  taxes ${base.taxes:,.2f}, net ${base.net:,.2f}")
