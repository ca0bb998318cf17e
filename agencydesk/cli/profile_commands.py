"""Profile CLI commands for Agency Desk.

Manages agency profile data (profile.yaml) - dealer identity and defaults.
"""

from pathlib import Path

import click
import yaml

from agencydesk.sdk import (
    get_dealer_info,
    get_profile_path,
    load_settings,
    load_profile,
    get_profile_value,
    set_profile_value,
    set_setting,
    validate_profile_key,
)
from agencydesk.sdk.config import coerce_profile_value


@click.group()
def profile():
    """Manage the agency profile (profile.yaml).

    \b
    Profile contains:
    - dealer: name, address, csz, phone printed on buy orders
    - default_jurisdiction, default_fee: buy order defaults
    - default_federal_pct: federal withholding for new paystubs
    - payroll_state_rates: per-state withholding overrides
    - buy_order_template: fillable buy order PDF
    """
    pass


@profile.command("show")
def profile_show():
    """Show the active profile and its location."""
    profile_path = get_profile_path(require_exists=False)

    if load_settings().get("profile"):
        location_label = "custom"
    elif profile_path.exists():
        location_label = "central (default)"
    else:
        location_label = "not created"

    click.echo(f"Profile: {profile_path}")
    click.echo(f"Location: {location_label}")

    dealer = get_dealer_info()
    click.echo()
    click.echo(f"Dealer on buy orders: {dealer['name']}, {dealer['csz']}")

    if not profile_path.exists():
        click.echo()
        click.echo("Profile does not exist yet. Create with:")
        click.echo("  agency-desk profile set dealer.name \"My Dealer LLC\"")
        return

    template = get_profile_value("buy_order_template")
    if template and not Path(template).expanduser().exists():
        click.echo(f"Warning: buy_order_template not found: {template}")

    click.echo()
    click.echo("---")
    click.echo(yaml.dump(load_profile(require_exists=False), default_flow_style=False, sort_keys=False))


@profile.command("get")
@click.argument("key")
def profile_get(key):
    """Print one profile value (KEY like 'dealer.name' or 'dealer').

    Sections such as 'dealer' or 'payroll_state_rates' print as YAML.
    """
    value = get_profile_value(key)
    if value is None:
        raise click.ClickException(f"'{key}' is not set in the profile")

    if isinstance(value, dict):
        click.echo(yaml.dump(value, default_flow_style=False, sort_keys=False).rstrip())
    else:
        click.echo(value)


@profile.command("set")
@click.argument("key")
@click.argument("value")
def profile_set(key, value):
    """Set a profile configuration value.

    KEY is a dot-notation path like 'dealer.name'
    VALUE is the value to set (string or number)

    Examples:
        agency-desk profile set dealer.name "WEST AUTOMOTIVE LLC"
        agency-desk profile set default_fee 47.20
        agency-desk profile set payroll_state_rates.CO 0.044
    """
    is_valid, error_msg = validate_profile_key(key)
    if not is_valid:
        raise click.ClickException(error_msg)

    try:
        parsed_value = coerce_profile_value(key, value)
    except ValueError as e:
        raise click.ClickException(str(e))

    profile_file = set_profile_value(key, parsed_value)
    click.echo(f"Set {key} = {parsed_value}")
    click.echo(f"Saved to: {profile_file}")


@profile.command("use")
@click.argument("profile_path", type=click.Path(exists=True, dir_okay=False))
def profile_use(profile_path):
    """Set the active profile to an external file.

    PROFILE_PATH is a profile.yaml kept somewhere else, such as a config
    repo. settings.json is updated to point at it.
    """
    path = Path(profile_path).expanduser().resolve()

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise click.ClickException(f"Profile must be a YAML dictionary: {path}")

    settings_file = set_setting("profile", str(path))
    click.echo(f"Active profile set to: {path}")
    click.echo(f"Saved to: {settings_file}")
