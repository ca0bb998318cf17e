"""Agency Desk CLI - payroll, buy orders and insurance from the command line."""

import click
from rich.console import Console

from agencydesk import __version__
from agencydesk.sdk import dashboard as sdk_dashboard

from .buy_orders_commands import buy_orders as buy_orders_group
from .clients_commands import clients as clients_group
from .common import echo_json, json_option, open_session, sdk_errors
from .insurance_commands import insurance as insurance_group
from .paystubs_commands import paystubs as paystubs_group
from .profile_commands import profile as profile_group
from .rates_commands import rates as rates_group
from .renderers.tables import render_dashboard
from .settings_commands import settings as settings_group
from .ytd_commands import ytd as ytd_group


@click.group()
@click.version_option(version=__version__, prog_name="agency-desk")
def cli():
    """Agency Desk - back office tools for a small agency.

    Clients and their paystubs, year-to-date payroll totals, vehicle
    buy orders with Colorado sales tax, and insurance policies.

    Configuration is loaded from (in order):

    \b
    1. AGENCY_DESK_CONFIG_PATH environment variable
    2. settings.json 'profile' key (if set via CLI)
    3. ~/.config/agency-desk/profile.yaml (XDG default)

    Run 'agency-desk settings show' to see where records are stored.
    """
    pass


cli.add_command(clients_group)
cli.add_command(paystubs_group)
cli.add_command(ytd_group)
cli.add_command(buy_orders_group, name="buy-orders")
cli.add_command(insurance_group)
cli.add_command(rates_group)
cli.add_command(settings_group)
cli.add_command(profile_group)


@cli.command("dashboard")
@json_option
def dashboard(output_json):
    """Activity for the last 30 days compared with the 30 before."""
    store, _ = open_session()
    with sdk_errors():
        stats = sdk_dashboard.get_stats(store)

    if output_json:
        data = stats.model_dump()
        data["clients_growth"] = round(stats.clients_growth, 1)
        data["paystubs_growth"] = round(stats.paystubs_growth, 1)
        echo_json(data)
    else:
        render_dashboard(Console(), stats)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
