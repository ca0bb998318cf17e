"""Tests for rate tables: validation, YAML import, persisted overrides."""

import pytest

from agencydesk.sdk.store import DocumentStore
from agencydesk.sdk.taxes import (
    CITY_TAX_RATES,
    RateConfig,
    RateTableError,
    load_rate_config,
    load_rates_yaml,
    save_rate_config,
    validate_vehicle_rates,
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep profile lookups away from the real ~/.config."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("AGENCY_DESK_CONFIG_PATH", str(config_dir))
    return config_dir


class TestValidateVehicleRates:

    def test_builtin_table_is_valid(self):
        table = validate_vehicle_rates(CITY_TAX_RATES)
        assert list(table) == list(CITY_TAX_RATES)

    def test_empty_table_rejected(self):
        with pytest.raises(RateTableError):
            validate_vehicle_rates({})

    def test_negative_component_rejected(self):
        with pytest.raises(RateTableError, match="negative"):
            validate_vehicle_rates({"Denver": {"state": -1.0, "city": 5.15}})

    def test_mismatched_components_rejected(self):
        with pytest.raises(RateTableError):
            validate_vehicle_rates({
                "Denver": {"state": 2.9, "city": 5.15},
                "Aurora": {"state": 2.9, "county": 0.25},
            })

    def test_component_order_preserved(self):
        table = validate_vehicle_rates({"X": {"rtd": 1.0, "state": 2.9}})
        assert list(table["X"]) == ["rtd", "state"]


class TestLoadRatesYaml:

    def test_rates_key(self, tmp_path):
        path = tmp_path / "rates.yaml"
        path.write_text(
            "rates:\n"
            "  Denver: {state: 2.9, city: 5.15}\n"
            "  Aurora: {state: 2.9, city: 3.75}\n"
        )
        table = load_rates_yaml(path)
        assert table["Aurora"]["city"] == 3.75

    def test_bare_mapping(self, tmp_path):
        path = tmp_path / "rates.yaml"
        path.write_text("Golden:\n  state: 2.9\n  city: 3.0\n")
        assert load_rates_yaml(path) == {"Golden": {"state": 2.9, "city": 3.0}}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("Denver: {state: [\n")
        with pytest.raises(RateTableError, match="Invalid YAML"):
            load_rates_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rates_yaml(tmp_path / "nope.yaml")


class TestRateConfig:

    def test_with_component_returns_new_config(self):
        base = RateConfig()
        edited = base.with_component("Denver", "city", 6.0)
        assert edited.jurisdiction("Denver")[1]["city"] == 6.0
        assert base.jurisdiction("Denver")[1]["city"] == 5.15

    def test_with_component_unknown_city(self):
        with pytest.raises(RateTableError, match="Unknown city"):
            RateConfig().with_component("Atlantis", "city", 1.0)

    def test_with_component_unknown_key(self):
        with pytest.raises(RateTableError, match="Unknown component"):
            RateConfig().with_component("Denver", "school", 1.0)

    def test_vehicle_rates_is_a_copy(self):
        config = RateConfig()
        table = config.vehicle_rates()
        table["Denver"]["city"] = 99
        assert config.jurisdiction("Denver")[1]["city"] == 5.15

    def test_jurisdiction_resolution(self):
        config = RateConfig()
        assert config.jurisdiction("Aurora")[0] == "Aurora"
        assert config.jurisdiction("Atlantis")[0] == "Denver"
        assert config.jurisdiction(None)[0] == "Denver"


class TestLoadRateConfig:

    def test_defaults_without_store(self):
        config = load_rate_config(None, profile={})
        assert config.source == "defaults"
        assert config.cities == list(CITY_TAX_RATES)
        assert config.state_pct("CO") == pytest.approx(0.044)

    def test_persisted_table_overrides_defaults(self, tmp_path):
        store = DocumentStore(root=tmp_path / "store")
        save_rate_config(store, RateConfig().with_component("Aurora", "city", 4.0))

        config = load_rate_config(store, profile={})
        assert config.source == "settings"
        assert config.jurisdiction("Aurora")[1]["city"] == 4.0

    def test_reload_picks_up_saved_edits(self, tmp_path):
        store = DocumentStore(root=tmp_path / "store")
        config = load_rate_config(store, profile={})
        assert config.source == "defaults"

        save_rate_config(store, config.with_component("Denver", "rtd", 1.5))
        assert config.jurisdiction("Denver")[1]["rtd"] == 1.0

        reloaded = config.reload()
        assert reloaded.jurisdiction("Denver")[1]["rtd"] == 1.5

    def test_invalid_persisted_table(self, tmp_path):
        store = DocumentStore(root=tmp_path / "store")
        store.set("settings", "taxRates", {"rates": {"Denver": {"state": -2}}})
        with pytest.raises(RateTableError):
            load_rate_config(store, profile={})

    def test_profile_overrides(self):
        profile = {
            "default_jurisdiction": "Boulder",
            "payroll_state_rates": {"co": 0.05, "WA": 0.0},
        }
        config = load_rate_config(None, profile=profile)
        assert config.default_jurisdiction == "Boulder"
        assert config.state_pct("CO") == pytest.approx(0.05)
        assert config.state_pct("wa") == 0
        assert config.state_pct("NY") == pytest.approx(0.058)

    def test_profile_rate_must_be_fraction(self):
        with pytest.raises(RateTableError):
            load_rate_config(None, profile={"payroll_state_rates": {"CO": 4.4}})
