"""Rate table CLI commands for Agency Desk.

Vehicle sales tax rates live in the settings/taxRates document; payroll
state rates are profile overrides on top of the built-in table.
"""

import click
from rich.console import Console
from rich.table import Table

from agencydesk.sdk.taxes import (
    CITY_TAX_RATES,
    RateTableError,
    load_rates_yaml,
    save_rate_config,
)

from .common import echo_json, json_option, open_session, sdk_errors
from .renderers.tables import render_rates


@click.group()
def rates():
    """View and edit tax rate tables.

    \b
    Vehicle rates are percentages per city (state, county, city, cd, rtd).
    Edits are saved to the store and used by new buy orders; saved orders
    keep the figures they were priced with.
    """
    pass


@rates.command("show")
@click.argument("city", required=False)
@json_option
def rates_show(city, output_json):
    """Show the vehicle tax table (or one CITY's components)."""
    _, config = open_session()
    vehicle = config.vehicle_rates()

    if city:
        resolved, components = config.jurisdiction(city)
        if resolved != city:
            click.echo(f"Unknown city '{city}', showing {resolved} (default jurisdiction).", err=True)
        vehicle = {resolved: components}

    if output_json:
        echo_json({"source": config.source, "default_jurisdiction": config.default_jurisdiction,
                   "rates": vehicle})
    else:
        render_rates(Console(), vehicle, config.source)


@rates.command("payroll")
@json_option
def rates_payroll(output_json):
    """Show payroll withholding rates (FICA and flat state rates)."""
    _, config = open_session()
    payroll = config.payroll_rates()

    if output_json:
        echo_json(payroll)
        return

    console = Console()
    console.print(f"Social Security: {payroll.ss_pct * 100:.2f}%")
    console.print(f"Medicare:        {payroll.medicare_pct * 100:.2f}%")
    table = Table(show_header=True, header_style="bold", title="State withholding")
    table.add_column("State")
    table.add_column("Rate", justify="right")
    for code, pct in sorted(payroll.state_pct.items()):
        table.add_row(code, f"{pct * 100:.2f}%")
    console.print(table)
    console.print("Unlisted states withhold 0%.", style="dim")


@rates.command("set")
@click.argument("city")
@click.argument("component")
@click.argument("percent", type=float)
def rates_set(city, component, percent):
    """Set one CITY COMPONENT to PERCENT (e.g., rates set Aurora city 3.80)."""
    store, config = open_session()
    with sdk_errors():
        updated = config.with_component(city, component, percent)
        save_rate_config(store, updated)
    click.echo(f"Set {city}.{component} = {percent:.2f}%")


@rates.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def rates_import(path):
    """Replace the vehicle table with a YAML file.

    The file maps city -> {component: percent}, optionally under a
    top-level 'rates' key. Every city must list the same components.
    """
    store, config = open_session()
    with sdk_errors():
        try:
            vehicle = load_rates_yaml(path)
        except OSError as e:
            raise RateTableError(f"Cannot read {path}: {e}")
        save_rate_config(store, config.with_vehicle_rates(vehicle, source="settings"))
    click.echo(f"Imported {len(vehicle)} cities from {path}")


@rates.command("reset")
@click.option("--yes", is_flag=True, help="Skip confirmation")
def rates_reset(yes):
    """Reset the vehicle table to the built-in defaults."""
    if not yes:
        click.confirm("Replace the saved vehicle rates with the built-in defaults?", abort=True)
    store, config = open_session()
    with sdk_errors():
        save_rate_config(store, config.with_vehicle_rates(CITY_TAX_RATES, source="defaults"))
    click.echo(f"Reset vehicle rates to defaults ({len(CITY_TAX_RATES)} cities)")
