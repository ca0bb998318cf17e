"""Insurance policy CLI commands for Agency Desk."""

import click
from rich.console import Console

from agencydesk.sdk import insurance as sdk_insurance
from agencydesk.sdk.schemas import POLICY_STATUSES

from .common import echo_json, json_option, open_session, sdk_errors
from .renderers.tables import render_policies

POLICY_OPTIONS = {
    "holder": "holder_name",
    "carrier": "carrier",
    "policy_number": "policy_number",
    "vin": "vin",
    "year": "year",
    "make": "make",
    "model": "model",
    "address": "address",
    "state": "state",
    "start_date": "start_date",
    "end_date": "end_date",
    "premium": "premium",
    "status": "status",
}


def policy_options(required: bool):
    def decorator(f):
        options = [
            click.option("--holder", required=required, help="Policy holder name"),
            click.option("--carrier", required=required, help="Insurance carrier"),
            click.option("--policy-number"),
            click.option("--vin"),
            click.option("--year"),
            click.option("--make"),
            click.option("--model"),
            click.option("--address"),
            click.option("--state", help="2-letter state code"),
            click.option("--start-date", help="YYYY-MM-DD"),
            click.option("--end-date", help="YYYY-MM-DD"),
            click.option("--premium", type=float),
            click.option("--status", type=click.Choice(POLICY_STATUSES)),
        ]
        for option in reversed(options):
            f = option(f)
        return f
    return decorator


def _collect(kwargs) -> dict:
    return {POLICY_OPTIONS[k]: v for k, v in kwargs.items() if k in POLICY_OPTIONS and v is not None}


@click.group()
def insurance():
    """Track insurance policies.

    Status is one of active, expired, pending or cancelled. Archiving a
    policy sets it to cancelled.
    """
    pass


@insurance.command("add")
@policy_options(required=True)
@json_option
def insurance_add(output_json, **kwargs):
    """Create a policy."""
    store, _ = open_session()
    with sdk_errors():
        policy = sdk_insurance.create_policy(store, _collect(kwargs))

    if output_json:
        echo_json(policy)
    else:
        click.echo(f"Created policy {policy.id} for {policy.holder_name}")


@insurance.command("edit")
@click.argument("policy_id")
@policy_options(required=False)
def insurance_edit(policy_id, **kwargs):
    """Update policy fields (only the options given are changed)."""
    changes = _collect(kwargs)
    if not changes:
        raise click.UsageError("Nothing to change. Pass at least one option.")
    store, _ = open_session()
    with sdk_errors():
        policy = sdk_insurance.update_policy(store, policy_id, changes)
    click.echo(f"Updated policy {policy.id}")


@insurance.command("list")
@click.option("--search", "-s", help="Match holder, carrier, policy number, state or status")
@click.option("--status", type=click.Choice(POLICY_STATUSES))
@json_option
def insurance_list(search, status, output_json):
    """List policies by status, newest first within each status."""
    store, _ = open_session()
    with sdk_errors():
        policies = sdk_insurance.list_policies(store, search=search, status=status)

    if output_json:
        echo_json(policies)
    else:
        render_policies(Console(), policies)


@insurance.command("activate")
@click.argument("policy_id")
def insurance_activate(policy_id):
    """Mark a policy active."""
    store, _ = open_session()
    with sdk_errors():
        policy = sdk_insurance.activate_policy(store, policy_id)
    click.echo(f"Policy {policy.id} is now active")


@insurance.command("archive")
@click.argument("policy_id")
def insurance_archive(policy_id):
    """Archive (cancel) a policy."""
    store, _ = open_session()
    with sdk_errors():
        policy = sdk_insurance.archive_policy(store, policy_id)
    click.echo(f"Policy {policy.id} cancelled")


@insurance.command("delete")
@click.argument("policy_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
def insurance_delete(policy_id, yes):
    """Delete a policy."""
    if not yes:
        click.confirm(f"Delete policy {policy_id}?", abort=True)
    store, _ = open_session()
    if not sdk_insurance.delete_policy(store, policy_id):
        raise click.ClickException(f"Policy not found: {policy_id}")
    click.echo(f"Deleted policy {policy_id}")
