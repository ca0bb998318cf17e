"""Configuration management for Agency Desk.

Configuration is split into two files:

1. settings.json - Machine-specific settings
   - data_dir: where the document store lives (optional)
   - profile: path to profile.yaml (optional, if not colocated)

2. profile.yaml - Agency configuration
   - dealer: name/address/csz/phone printed on buy orders
   - default_jurisdiction, default_fee: buy order defaults
   - default_federal_pct: federal withholding fraction for new paystubs
   - payroll_state_rates: per-state withholding overrides
   - buy_order_template: path to the fillable buy order PDF

Config directory resolution:
1. AGENCY_DESK_CONFIG_PATH environment variable (if set)
2. ~/.config/agency-desk/ (XDG_CONFIG_HOME fallback)

Data directory resolution:
1. settings.json "data_dir" key
2. XDG_DATA_HOME/agency-desk/ or ~/.local/share/agency-desk/
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml


APP_NAME = "agency-desk"
SETTINGS_FILENAME = "settings.json"
PROFILE_FILENAME = "profile.yaml"

DEFAULT_DEALER = {
    "name": "WEST AUTOMOTIVE LLC",
    "address": "1826 E Platte Ave Suite 224 E",
    "csz": "Colorado Springs, CO 80909",
    "phone": "719-822-6527",
}


class ProfileNotFoundError(Exception):
    """Raised when no profile is found."""
    pass


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. AGENCY_DESK_CONFIG_PATH environment variable
    2. ~/.config/agency-desk/ (XDG_CONFIG_HOME)
    """
    env_path = os.environ.get("AGENCY_DESK_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    """Get the path to settings.json (may not exist yet)."""
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load machine-specific settings from settings.json.

    Returns:
        Settings dictionary (empty dict if file doesn't exist)
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        return json.load(f)


def save_settings(settings: dict) -> Path:
    """Save machine-specific settings to settings.json.

    Returns:
        Path to the saved settings file
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value from settings.json."""
    settings = load_settings()
    return settings.get(key, default)


def set_setting(key: str, value: Any) -> Path:
    """Set a setting value in settings.json."""
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def get_profile_path(require_exists: bool = False) -> Path:
    """Get the path to the profile.yaml file.

    Resolution order:
    1. settings.json "profile" key (if set)
    2. profile.yaml in config directory

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    custom_profile = load_settings().get("profile")
    if custom_profile:
        profile_path = Path(custom_profile)
        if require_exists and not profile_path.exists():
            raise ProfileNotFoundError(
                f"Profile not found at configured path: {profile_path}\n\n"
                f"Update with: agency-desk profile use /path/to/profile.yaml"
            )
        return profile_path

    profile_path = get_config_dir() / PROFILE_FILENAME
    if require_exists and not profile_path.exists():
        raise ProfileNotFoundError(
            f"No profile found at {profile_path}\n\n"
            f"Set values with: agency-desk profile set dealer.name \"My Dealer LLC\""
        )

    return profile_path


def load_profile(require_exists: bool = True) -> dict:
    """Load the agency profile from profile.yaml.

    Returns:
        Profile dictionary (empty dict if not required and not found)

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    profile_path = get_profile_path(require_exists=require_exists)

    if not profile_path.exists():
        return {}

    with open(profile_path, "r") as f:
        return yaml.safe_load(f) or {}


def save_profile(profile: dict, path: Optional[Path] = None) -> Path:
    """Save the agency profile to profile.yaml."""
    if path is None:
        path = get_profile_path(require_exists=False)

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(profile, f, default_flow_style=False, sort_keys=False)

    return path


def get_profile_value(key: str, default: Any = None) -> Any:
    """Get a profile value by dot-notation key (e.g., "dealer.name")."""
    value = load_profile(require_exists=False)

    for part in key.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return default

    return value


def set_profile_value(key: str, value: Any) -> Path:
    """Set a profile value by dot-notation key."""
    profile = load_profile(require_exists=False)

    parts = key.split(".")
    current = profile

    for part in parts[:-1]:
        if part not in current:
            current[part] = {}
        current = current[part]

    current[parts[-1]] = value

    return save_profile(profile)


# Valid top-level keys and their allowed nested patterns
PROFILE_SCHEMA = {
    "dealer": {
        "name": str,
        "address": str,
        "csz": str,
        "phone": str,
    },
    "default_jurisdiction": str,
    "default_fee": float,
    "default_federal_pct": float,
    "buy_order_template": str,
    "payroll_state_rates": dict,  # keys are 2-letter state codes
}


def validate_profile_key(key: str) -> tuple[bool, str]:
    """Validate that a dot-notation key is allowed by the schema.

    Returns:
        Tuple of (is_valid, error_message)
    """
    parts = key.split(".")
    top_level = parts[0]

    if top_level not in PROFILE_SCHEMA:
        valid_keys = ", ".join(PROFILE_SCHEMA.keys())
        return False, f"Unknown top-level key '{top_level}'. Valid keys: {valid_keys}"

    schema_section = PROFILE_SCHEMA[top_level]

    if isinstance(schema_section, dict):
        if len(parts) != 2:
            return False, f"Cannot set entire '{top_level}' section. Specify a sub-key."
        if parts[1] not in schema_section:
            valid_keys = ", ".join(schema_section.keys())
            return False, f"Unknown key '{parts[1]}' under '{top_level}'. Valid keys: {valid_keys}"
        return True, ""

    if schema_section is dict:
        if len(parts) != 2:
            return False, f"'{top_level}' expects exactly one sub-key (e.g., {top_level}.CO)"
        return True, ""

    if len(parts) != 1:
        return False, f"'{top_level}' does not take sub-keys"

    return True, ""


def coerce_profile_value(key: str, raw: str) -> Any:
    """Convert a CLI string into the type the profile schema expects for key."""
    schema_section = PROFILE_SCHEMA.get(key.split(".")[0])
    if schema_section in (float, dict):
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"'{key}' expects a number, got '{raw}'")
    return raw


def get_dealer_info() -> dict:
    """Dealer identity printed on buy orders, profile values over defaults."""
    dealer = dict(DEFAULT_DEALER)
    dealer.update(get_profile_value("dealer", {}) or {})
    return dealer


# =============================================================================
# XDG path helpers
# =============================================================================

def get_data_path() -> Path:
    """Get the data directory path.

    Uses settings.json "data_dir" when set, else XDG_DATA_HOME/agency-desk/.

    Returns:
        Path to the data directory (created if doesn't exist)
    """
    custom = get_setting("data_dir")
    if custom:
        data_path = Path(custom).expanduser()
    else:
        xdg_data_home = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
        data_path = Path(xdg_data_home) / APP_NAME
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path


def get_output_path() -> Path:
    """Directory where generated PDFs and CSV exports are written."""
    path = get_data_path() / "output"
    path.mkdir(parents=True, exist_ok=True)
    return path
