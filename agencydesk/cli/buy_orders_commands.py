"""Buy order CLI commands for Agency Desk."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from agencydesk.sdk import buy_orders as sdk_buy_orders
from agencydesk.sdk import get_profile_value
from agencydesk.sdk.buy_order_pdf import (
    fill_buy_order_pdf,
    map_fields,
    template_field_names,
)
from agencydesk.sdk.taxes import compute_buy_order

from .common import echo_json, json_option, open_session, sdk_errors
from .renderers.tables import render_buy_order_totals, render_buy_orders

# option name -> record field
ORDER_OPTIONS = {
    "buyer": "buyer_name",
    "address": "address",
    "phone": "phone",
    "city": "city",
    "state": "state",
    "zip_code": "zip",
    "license_number": "license_number",
    "birth_date": "birth_date",
    "year": "year",
    "make": "make",
    "model": "model",
    "body": "body",
    "color": "color",
    "mileage": "mileage",
    "vin": "vin",
    "cylinders": "cylinders",
    "fuel_type": "fuel_type",
    "stock_number": "stock_number",
    "salesman": "salesman",
    "source": "source",
    "price": "price",
    "fee": "fee",
    "down_payment": "down_payment",
    "trade_allowance": "trade_allowance",
    "status": "status",
}


def order_options(required: bool):
    """Attach the buy order field options to a command."""
    def decorator(f):
        options = [
            click.option("--buyer", required=required, help="Purchaser full name"),
            click.option("--address", required=required, help="Purchaser street address"),
            click.option("--phone"),
            click.option("--city", help="City key in the rate table (e.g., Colorado_Springs)"),
            click.option("--state", help="2-letter state (default CO)"),
            click.option("--zip", "zip_code"),
            click.option("--license-number", help="Driver license number"),
            click.option("--birth-date", help="Purchaser date of birth"),
            click.option("--year"),
            click.option("--make", required=required),
            click.option("--model", required=required),
            click.option("--body"),
            click.option("--color"),
            click.option("--mileage"),
            click.option("--vin", required=required),
            click.option("--cylinders"),
            click.option("--fuel-type"),
            click.option("--stock-number"),
            click.option("--salesman"),
            click.option("--source", help="Where the deal came from"),
            click.option("--price", type=float, required=required, help="Selling price"),
            click.option("--fee", type=float, help="Filing fee (default: profile default_fee or 47.20)"),
            click.option("--down-payment", type=float),
            click.option("--trade-allowance", type=float),
            click.option("--status", type=click.Choice(["draft", "registered"])),
        ]
        for option in reversed(options):
            f = option(f)
        return f
    return decorator


def _collect(kwargs) -> dict:
    return {ORDER_OPTIONS[k]: v for k, v in kwargs.items() if k in ORDER_OPTIONS and v is not None}


def _resolve_template(template) -> Path:
    path = template or get_profile_value("buy_order_template")
    if not path:
        raise click.ClickException(
            "No buy order template. Pass --template or set one with:\n"
            "  agency-desk profile set buy_order_template /path/to/BUY_ORDER_template.pdf"
        )
    return Path(path).expanduser()


@click.group("buy-orders")
def buy_orders():
    """Vehicle buy orders: pricing, registration and PDF generation.

    Tax figures are frozen when an order is saved or edited; later rate
    changes do not affect saved orders.
    """
    pass


@buy_orders.command("quote")
@click.option("--price", type=float, required=True, help="Selling price")
@click.option("--city", help="City key in the rate table")
@click.option("--fee", type=float, help="Filing fee (default: profile default_fee or 47.20)")
@click.option("--down-payment", type=float, default=0)
@json_option
def buy_orders_quote(price, city, fee, down_payment, output_json):
    """Price a sale without saving it."""
    _, rates = open_session()
    resolved, _ = rates.jurisdiction(city)
    totals = compute_buy_order(
        price, city,
        fee=sdk_buy_orders.default_fee() if fee is None else fee,
        down_payment=down_payment,
        rates=rates,
    )

    if output_json:
        echo_json({"city": resolved, **totals.model_dump()})
        return

    if city and resolved != city:
        click.echo(f"Unknown city '{city}', using {resolved} rates.", err=True)
    render_buy_order_totals(Console(), totals, resolved)


@buy_orders.command("add")
@order_options(required=True)
@json_option
def buy_orders_add(output_json, **kwargs):
    """Save a new buy order."""
    store, rates = open_session()
    with sdk_errors():
        order = sdk_buy_orders.create_buy_order(store, _collect(kwargs), rates)

    if output_json:
        echo_json(order)
    else:
        click.echo(f"Created buy order {order.id} for {order.buyer_name}")
        render_buy_orders(Console(), [order])


@buy_orders.command("edit")
@click.argument("order_id")
@order_options(required=False)
def buy_orders_edit(order_id, **kwargs):
    """Edit a buy order and recompute its figures with the current rates."""
    changes = _collect(kwargs)
    if not changes:
        raise click.UsageError("Nothing to change. Pass at least one option.")

    store, rates = open_session()
    with sdk_errors():
        order = sdk_buy_orders.update_buy_order(store, order_id, changes, rates)
    click.echo(f"Updated buy order {order.id}")
    render_buy_orders(Console(), [order])


@buy_orders.command("list")
@click.option("--search", "-s", help="Match buyer, address, VIN, city or status")
@click.option("--status", type=click.Choice(["draft", "registered"]))
@json_option
def buy_orders_list(search, status, output_json):
    """List buy orders, newest first."""
    store, _ = open_session()
    with sdk_errors():
        orders = sdk_buy_orders.list_buy_orders(store, search=search, status=status)

    if output_json:
        echo_json(orders)
    else:
        render_buy_orders(Console(), orders)


@buy_orders.command("show")
@click.argument("order_id")
@json_option
def buy_orders_show(order_id, output_json):
    """Show a buy order with its frozen tax breakdown."""
    store, _ = open_session()
    with sdk_errors():
        order = sdk_buy_orders.get_buy_order(store, order_id)

    if output_json:
        echo_json(order)
        return

    console = Console()
    render_buy_orders(console, [order])
    console.print(f"Stock #: {order.stock_number or '-'}   Salesman: {order.salesman or '-'}")
    for item in order.tax_items:
        console.print(f"  {item.name:<16} {item.pct_percent:>5.2f}%  ${item.amount:,.2f}")
    console.print(f"  Subtotal ${order.subtotal:,.2f}  Fee ${order.fee:,.2f}  "
                  f"Down ${order.down_payment:,.2f}  Balance ${order.balance_due:,.2f}")


@buy_orders.command("register")
@click.argument("order_id")
def buy_orders_register(order_id):
    """Mark a buy order as registered."""
    store, _ = open_session()
    with sdk_errors():
        order = sdk_buy_orders.mark_registered(store, order_id)
    click.echo(f"Buy order {order.id} ({order.buyer_name}) registered")


@buy_orders.command("delete")
@click.argument("order_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
def buy_orders_delete(order_id, yes):
    """Delete a buy order."""
    if not yes:
        click.confirm(f"Delete buy order {order_id}?", abort=True)
    store, _ = open_session()
    if not sdk_buy_orders.delete_buy_order(store, order_id):
        raise click.ClickException(f"Buy order not found: {order_id}")
    click.echo(f"Deleted buy order {order_id}")


@buy_orders.command("pdf")
@click.argument("order_id")
@click.option("--template", "-t", type=click.Path(), help="AcroForm template (default: profile buy_order_template)")
@click.option("--output-dir", "-o", type=click.Path(), help="Output directory (default: <data_dir>/output)")
@click.option("--debug", is_flag=True, help="Write each field's name instead of its value")
def buy_orders_pdf(order_id, template, output_dir, debug):
    """Fill the buy order PDF template for ORDER_ID."""
    store, _ = open_session()
    template_path = _resolve_template(template)

    with sdk_errors():
        order = sdk_buy_orders.get_buy_order(store, order_id)
        result = fill_buy_order_pdf(
            order, template_path,
            output_dir=Path(output_dir) if output_dir else None,
            debug=debug,
        )

    for warning in result["warnings"]:
        click.echo(f"Warning: {warning}", err=True)
    click.echo(f"Filled {result['filled']}/{result['fields']} fields")
    click.echo(f"Wrote {result['path']}")


@buy_orders.command("fields")
@click.argument("order_id", required=False)
@click.option("--template", "-t", type=click.Path(), help="AcroForm template (default: profile buy_order_template)")
def buy_orders_fields(order_id, template):
    """List the template's fields, and the values ORDER_ID would put in them."""
    template_path = _resolve_template(template)

    with sdk_errors():
        fields = template_field_names(template_path)
        values = {}
        if order_id:
            store, _ = open_session()
            order = sdk_buy_orders.get_buy_order(store, order_id)
            text_fields = [name for name, ftype in fields if ftype == "/Tx"]
            values = map_fields(order, text_fields)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Type", style="dim")
    if order_id:
        table.add_column("Value")
    for name, ftype in fields:
        row = [name, str(ftype or "")]
        if order_id:
            row.append(values.get(name, ""))
        table.add_row(*row)
    Console().print(table)
