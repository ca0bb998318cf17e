"""Helpers shared by the CLI command groups."""

import json
from contextlib import contextmanager
from typing import Optional

import click

from agencydesk.sdk import (
    ProfileNotFoundError,
    RecordNotFoundError,
    StoreError,
    ValidationError,
    open_store,
)
from agencydesk.sdk.buy_order_pdf import PdfFillError
from agencydesk.sdk.taxes import RateTableError, load_rate_config


@contextmanager
def sdk_errors():
    """Turn SDK exceptions into user-facing click errors."""
    try:
        yield
    except ValidationError as e:
        raise click.ClickException("Validation failed:\n  - " + "\n  - ".join(e.errors))
    except (RecordNotFoundError, StoreError, RateTableError, PdfFillError,
            ProfileNotFoundError) as e:
        raise click.ClickException(str(e))


def open_session():
    """Store plus the rate config loaded from it, once per command."""
    with sdk_errors():
        store = open_store()
        rates = load_rate_config(store)
    return store, rates


def echo_json(data) -> None:
    """Print a pydantic model, a list of them, or plain data as JSON."""
    if isinstance(data, list):
        data = [d.model_dump(mode="json") if hasattr(d, "model_dump") else d for d in data]
    elif hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    click.echo(json.dumps(data, indent=2, default=str))


def parse_fraction(value: Optional[float]) -> Optional[float]:
    """Accept 0.12 or 12 for twelve percent. None passes through."""
    if value is None:
        return None
    return value / 100 if value > 1 else value


json_option = click.option("--json", "output_json", is_flag=True, help="Output as JSON")
