"""Agency Desk MCP Server - FastMCP tools for payroll and buy order lookups."""

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from agencydesk.sdk import open_store
from agencydesk.sdk import buy_orders as sdk_buy_orders
from agencydesk.sdk import paystubs as sdk_paystubs
from agencydesk.sdk.taxes import (
    compute_buy_order as sdk_compute_buy_order,
    compute_paystub,
    load_rate_config,
)

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("agency-desk")


def _session():
    store = open_store()
    return store, load_rate_config(store)


# --- Tools ---

@mcp.tool()
async def compute_paystub_taxes(
    hours: float = Field(description="Regular hours worked in the period"),
    rate: float = Field(description="Hourly rate in dollars"),
    state: str = Field(description="2-letter state code of the employee (e.g., 'CO')"),
    overtime_hours: float = Field(default=0, description="Overtime hours"),
    overtime_rate: float = Field(default=0, description="Overtime hourly rate"),
    federal_pct: float | None = Field(default=None, description="Federal withholding as a fraction (0.12 = 12%); default from profile, else 0.12"),
) -> dict[str, Any]:
    """Compute gross, Social Security, Medicare, state and federal withholding and net for one pay period."""
    try:
        _, rates = _session()
        if federal_pct is None:
            federal_pct = sdk_paystubs.default_federal_pct()
        calc = compute_paystub(
            hours, rate, overtime_hours, overtime_rate,
            state=state, federal_pct=federal_pct, rates=rates,
        )
        return calc.model_dump()
    except Exception as e:
        logger.error(f"Error computing paystub taxes: {e}")
        return {"error": str(e)}


@mcp.tool()
async def compute_buy_order(
    price: float = Field(description="Vehicle selling price"),
    city: str | None = Field(default=None, description="City key in the rate table (e.g., 'Colorado_Springs'); unknown cities use the default jurisdiction"),
    fee: float | None = Field(default=None, description="Filing fee (default from profile, else 47.20)"),
    down_payment: float = Field(default=0, description="Cash down payment"),
) -> dict[str, Any]:
    """Compute the sales tax breakdown, total with fees and balance due for a vehicle sale."""
    try:
        _, rates = _session()
        resolved_city, _ = rates.jurisdiction(city)
        totals = sdk_compute_buy_order(
            price, city,
            fee=sdk_buy_orders.default_fee() if fee is None else fee,
            down_payment=down_payment,
            rates=rates,
        )
        return {"city": resolved_city, **totals.model_dump()}
    except Exception as e:
        logger.error(f"Error computing buy order: {e}")
        return {"error": str(e)}


@mcp.tool()
async def client_ytd(
    client_id: str = Field(description="Client ID"),
    through_paystub_id: str | None = Field(default=None, description="If set, cumulative YTD through this paystub with freshly computed taxes"),
) -> dict[str, Any]:
    """Year-to-date payroll totals for a client, either year-so-far or through a specific paystub."""
    try:
        store, rates = _session()
        if through_paystub_id:
            summary = sdk_paystubs.paystub_ytd(store, through_paystub_id, rates)
            if summary is None:
                return {"error": f"Paystub {through_paystub_id} has no creation time", "ytd": None}
            mode = "through_paystub"
        else:
            summary = sdk_paystubs.client_ytd(store, client_id)
            mode = "year_so_far"
        return {"client_id": client_id, "mode": mode, "ytd": summary.model_dump()}
    except Exception as e:
        logger.error(f"Error computing YTD: {e}")
        return {"error": str(e), "ytd": None}


@mcp.tool()
async def list_buy_orders(
    search: str | None = Field(default=None, description="Case-insensitive match on buyer, address, VIN, city or status"),
    status: str | None = Field(default=None, description="Filter by status ('draft' or 'registered')"),
    limit: int = Field(default=50, description="Maximum number of orders to return (default 50)"),
) -> dict[str, Any]:
    """List saved buy orders, newest first, with frozen totals."""
    try:
        store, _ = _session()
        orders = sdk_buy_orders.list_buy_orders(store, search=search, status=status)
        total_count = len(orders)
        formatted = [
            {
                "id": o.id,
                "buyer": o.buyer_name,
                "vehicle": " ".join(p for p in (o.year, o.make, o.model) if p),
                "vin": o.vin,
                "city": o.city,
                "total_with_fees": o.total_with_fees,
                "balance_due": o.balance_due,
                "status": o.status,
                "created_at": o.created_at.isoformat() if o.created_at else None,
            }
            for o in orders[:limit]
        ]
        return {
            "orders": formatted,
            "count": len(formatted),
            "total_available": total_count,
            "filters_applied": {"search": search, "status": status},
        }
    except Exception as e:
        logger.error(f"Error listing buy orders: {e}")
        return {"error": str(e), "orders": [], "count": 0}


def run_server():
    """Run the MCP server in stdio mode."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
