"""Rich renderers for Agency Desk records.

Transforms SDK models into formatted Rich tables.
"""

from typing import Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from agencydesk.sdk.dashboard import DashboardStats, format_pct
from agencydesk.sdk.schemas import (
    BuyOrderRecord,
    BuyOrderTotals,
    Client,
    InsurancePolicyRecord,
    PaystubRecord,
    PayrollTaxes,
    YTDSummary,
)

STATUS_STYLES = {
    "active": "green",
    "registered": "green",
    "pending": "cyan",
    "expired": "yellow",
    "cancelled": "dim",
    "draft": "dim",
}


def money(value: Optional[float]) -> str:
    return f"${(value or 0):,.2f}"


def _status(status: str) -> str:
    style = STATUS_STYLES.get(status, "")
    return f"[{style}]{status}[/{style}]" if style else status


def render_clients(console: Console, clients: List[Client]) -> None:
    if not clients:
        console.print("No clients found.", style="dim")
        return

    table = Table(show_header=True, header_style="bold", box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Address")
    table.add_column("State")
    table.add_column("ZIP")
    table.add_column("SSN")
    table.add_column("Account")

    for c in clients:
        table.add_row(
            c.id or "",
            c.full_name if c.active else f"[dim]{c.full_name} (archived)[/dim]",
            c.address,
            c.state,
            c.zip,
            f"***-**-{c.ssn_last4}" if c.ssn_last4 else "",
            f"****{c.account_last4}" if c.account_last4 else "",
        )

    console.print(table)
    console.print(f"{len(clients)} client(s)", style="dim")


def render_paystubs(console: Console, paystubs: List[PaystubRecord]) -> None:
    if not paystubs:
        console.print("No paystubs found.", style="dim")
        return

    table = Table(show_header=True, header_style="bold", box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Client")
    table.add_column("Period")
    table.add_column("Hours", justify="right")
    table.add_column("Gross", justify="right")
    table.add_column("Taxes", justify="right")
    table.add_column("Net", justify="right")

    for ps in paystubs:
        hours = f"{ps.hours:g}"
        if ps.overtime_hours:
            hours += f" + {ps.overtime_hours:g} OT"
        table.add_row(
            ps.id or "",
            ps.client_name,
            f"{ps.period_start or '?'} -> {ps.period_end or '?'}",
            hours,
            money(ps.gross),
            money(ps.taxes),
            f"[green]{money(ps.net)}[/green]",
        )

    console.print(table)


def render_payroll_taxes(console: Console, calc: PayrollTaxes, title: str = "Withholding") -> None:
    table = Table(show_header=False, box=box.SIMPLE, title=title)
    table.add_column("Field")
    table.add_column("Amount", justify="right")
    table.add_row("Gross", money(calc.gross))
    table.add_row("Social Security", money(calc.ss))
    table.add_row("Medicare", money(calc.medicare))
    table.add_row("State", money(calc.state_tax))
    table.add_row("Federal", money(calc.federal))
    table.add_row("Total taxes", money(calc.taxes))
    table.add_row("Net", f"[green]{money(calc.net)}[/green]")
    console.print(table)


def render_ytd(console: Console, summary: YTDSummary, title: str) -> None:
    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Field")
    table.add_column("Amount", justify="right")
    table.add_row("Regular", money(summary.regular))
    table.add_row("Overtime", money(summary.overtime))
    table.add_row("[bold]Gross[/bold]", f"[bold]{money(summary.gross)}[/bold]")
    table.add_row("Social Security", money(summary.ss))
    table.add_row("Medicare", money(summary.medicare))
    table.add_row("State", money(summary.state_tax))
    table.add_row("Federal", money(summary.federal))
    table.add_row("Total taxes", money(summary.taxes))
    table.add_row("Net", f"[green]{money(summary.net)}[/green]")
    table.add_row("Paystubs", str(summary.paystub_count))
    console.print(Panel(table, title=f"{title} ({summary.year})", border_style="dim"))


def render_buy_order_totals(console: Console, totals: BuyOrderTotals, city: str = "") -> None:
    table = Table(show_header=True, header_style="bold", box=box.SIMPLE,
                  title=f"Buy order - {city.replace('_', ' ')}" if city else None)
    table.add_column("Line")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")

    table.add_row("Price", "", money(totals.price))
    for item in totals.tax_items:
        table.add_row(item.name, f"{item.pct_percent:.2f}%", money(item.amount))
    table.add_row("Total taxes", "", money(totals.total_taxes))
    table.add_row("Subtotal", "", money(totals.subtotal))
    table.add_row("Filing fee", "", money(totals.fee))
    table.add_row("[bold]Total[/bold]", "", f"[bold]{money(totals.total_with_fees)}[/bold]")
    table.add_row("Down payment", "", money(totals.down_payment))
    table.add_row("Balance due", "", f"[green]{money(totals.balance_due)}[/green]")
    console.print(table)


def render_buy_orders(console: Console, orders: List[BuyOrderRecord]) -> None:
    if not orders:
        console.print("No buy orders found.", style="dim")
        return

    table = Table(show_header=True, header_style="bold", box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Buyer")
    table.add_column("Vehicle")
    table.add_column("VIN")
    table.add_column("City")
    table.add_column("Total", justify="right")
    table.add_column("Balance", justify="right")
    table.add_column("Status")

    for o in orders:
        table.add_row(
            o.id or "",
            o.buyer_name,
            " ".join(p for p in (o.year, o.make, o.model) if p),
            o.vin,
            o.city.replace("_", " "),
            money(o.total_with_fees),
            money(o.balance_due),
            _status(o.status),
        )

    console.print(table)


def render_policies(console: Console, policies: List[InsurancePolicyRecord]) -> None:
    if not policies:
        console.print("No policies found.", style="dim")
        return

    table = Table(show_header=True, header_style="bold", box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Holder")
    table.add_column("Carrier")
    table.add_column("Policy #")
    table.add_column("Vehicle")
    table.add_column("Term")
    table.add_column("Premium", justify="right")
    table.add_column("Status")

    for p in policies:
        table.add_row(
            p.id or "",
            p.holder_name,
            p.carrier,
            p.policy_number,
            " ".join(x for x in (p.year, p.make, p.model) if x),
            f"{p.start_date} -> {p.end_date}" if p.start_date or p.end_date else "",
            money(p.premium) if p.premium else "",
            _status(p.status),
        )

    console.print(table)


def render_rates(console: Console, vehicle: Dict[str, Dict[str, float]], source: str) -> None:
    components = list(next(iter(vehicle.values())).keys()) if vehicle else []

    table = Table(show_header=True, header_style="bold", box=box.SIMPLE,
                  title=f"Vehicle sales tax (%) - {source}")
    table.add_column("City")
    for key in components:
        table.add_column(key, justify="right")
    table.add_column("Total", justify="right", style="bold")

    for city, rates in vehicle.items():
        table.add_row(
            city.replace("_", " "),
            *[f"{rates.get(k, 0):.2f}" for k in components],
            f"{sum(rates.values()):.2f}",
        )

    console.print(table)


def render_dashboard(console: Console, stats: DashboardStats) -> None:
    def growth(value: float) -> str:
        style = "green" if value > 0 else "red" if value < 0 else "dim"
        return f"[{style}]{format_pct(value)}[/{style}]"

    table = Table(show_header=True, header_style="bold", box=box.SIMPLE)
    table.add_column("Metric")
    table.add_column("Last 30 days", justify="right")
    table.add_column("Previous 30", justify="right")
    table.add_column("Change", justify="right")

    table.add_row("New clients", str(stats.clients_30d), str(stats.clients_30d_prev),
                  growth(stats.clients_growth))
    table.add_row("Paystubs", str(stats.paystubs_30d), str(stats.paystubs_30d_prev),
                  growth(stats.paystubs_growth))

    console.print(table)
    console.print(f"Total clients: [bold]{stats.clients_total}[/bold]")
    console.print(f"Active policies: [bold]{stats.active_policies}[/bold]")
