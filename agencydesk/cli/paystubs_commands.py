"""Paystub CLI commands for Agency Desk."""

import click
from rich.console import Console

from agencydesk.sdk import paystubs as sdk_paystubs
from agencydesk.sdk.taxes import compute_paystub

from .common import echo_json, json_option, open_session, parse_fraction, sdk_errors
from .renderers.tables import render_paystubs, render_payroll_taxes

federal_pct_option = click.option(
    "--federal-pct", type=float, default=None,
    help="Federal withholding, 0.12 or 12 for 12% (default: profile default_federal_pct, else 12%)",
)


def _pay_inputs(hours, rate, ot_hours, ot_rate, federal_pct):
    return {
        "hours": hours,
        "rate": rate,
        "overtime_hours": ot_hours,
        "overtime_rate": ot_rate,
        "federal_pct": parse_fraction(federal_pct),
    }


@click.group()
def paystubs():
    """Create and list paystubs.

    Taxes are computed when a paystub is created and stored with it.
    """
    pass


@paystubs.command("add")
@click.argument("client_id")
@click.option("--start", "period_start", required=True, help="Period start (YYYY-MM-DD)")
@click.option("--end", "period_end", required=True, help="Period end (YYYY-MM-DD)")
@click.option("--hours", type=float, required=True)
@click.option("--rate", type=float, required=True, help="Hourly rate")
@click.option("--ot-hours", type=float, default=0, help="Overtime hours")
@click.option("--ot-rate", type=float, default=0, help="Overtime hourly rate")
@federal_pct_option
@json_option
def paystubs_add(client_id, period_start, period_end, hours, rate, ot_hours, ot_rate,
                 federal_pct, output_json):
    """Create one paystub for CLIENT_ID."""
    store, rates = open_session()
    data = _pay_inputs(hours, rate, ot_hours, ot_rate, federal_pct)
    data.update(period_start=period_start, period_end=period_end)

    with sdk_errors():
        ps = sdk_paystubs.create_paystub(store, client_id, data, rates)

    if output_json:
        echo_json(ps)
    else:
        render_paystubs(Console(), [ps])


@paystubs.command("bulk")
@click.argument("client_id")
@click.option("--start", required=True, help="First period start (YYYY-MM-DD)")
@click.option("--frequency", type=click.Choice(["weekly", "biweekly"]), default="weekly", show_default=True)
@click.option("--hours", type=float, required=True)
@click.option("--rate", type=float, required=True, help="Hourly rate")
@click.option("--ot-hours", type=float, default=0, help="Overtime hours")
@click.option("--ot-rate", type=float, default=0, help="Overtime hourly rate")
@federal_pct_option
@json_option
def paystubs_bulk(client_id, start, frequency, hours, rate, ot_hours, ot_rate, federal_pct, output_json):
    """Create four consecutive paystubs for CLIENT_ID.

    Weekly periods are 7 days, biweekly 14; each ends the day before the
    next one starts.
    """
    store, rates = open_session()
    data = _pay_inputs(hours, rate, ot_hours, ot_rate, federal_pct)

    with sdk_errors():
        created = sdk_paystubs.create_bulk_paystubs(store, client_id, start, frequency, data, rates)

    if output_json:
        echo_json(created)
    else:
        render_paystubs(Console(), created)


@paystubs.command("list")
@click.option("--client", "client_id", help="Only this client's paystubs")
@click.option("--limit", type=int, help="Maximum paystubs shown")
@json_option
def paystubs_list(client_id, limit, output_json):
    """List paystubs, newest first."""
    store, _ = open_session()
    with sdk_errors():
        results = sdk_paystubs.list_paystubs(store, client_id=client_id, limit=limit)

    if output_json:
        echo_json(results)
    else:
        render_paystubs(Console(), results)


@paystubs.command("delete")
@click.argument("paystub_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
def paystubs_delete(paystub_id, yes):
    """Delete a paystub."""
    if not yes:
        click.confirm(f"Delete paystub {paystub_id}?", abort=True)
    store, _ = open_session()
    if not sdk_paystubs.delete_paystub(store, paystub_id):
        raise click.ClickException(f"Paystub not found: {paystub_id}")
    click.echo(f"Deleted paystub {paystub_id}")


@paystubs.command("calc")
@click.option("--hours", type=float, required=True)
@click.option("--rate", type=float, required=True, help="Hourly rate")
@click.option("--state", required=True, help="2-letter state code")
@click.option("--ot-hours", type=float, default=0, help="Overtime hours")
@click.option("--ot-rate", type=float, default=0, help="Overtime hourly rate")
@federal_pct_option
@json_option
def paystubs_calc(hours, rate, state, ot_hours, ot_rate, federal_pct, output_json):
    """Preview withholding for a period without saving anything."""
    _, rates = open_session()
    fed = parse_fraction(federal_pct)
    if fed is None:
        fed = sdk_paystubs.default_federal_pct()
    calc = compute_paystub(
        hours, rate, ot_hours, ot_rate,
        state=state, federal_pct=fed, rates=rates,
    )

    if output_json:
        echo_json(calc)
    else:
        render_payroll_taxes(Console(), calc, title=f"Withholding ({state.upper()})")
