"""
Tests for the configuration system.

Validates:
- CoolingConfig Pydantic validation
- Channel flag resolution
- YAML/JSON loading with nested sections
- Solver context construction and redshift updates
"""

import json
import warnings

import pytest
import yaml

from sph_cooling.config import config_from_dict, flatten_config, load_config, save_config
from sph_cooling.core import (
    CoolingChannel,
    CoolingConfig,
    TableLoadError,
    build_context,
)
from sph_cooling.tables import RateTable


class TestCoolingConfigValidation:
    """Test Pydantic validation rules for CoolingConfig."""

    def test_defaults(self):
        config = CoolingConfig()
        assert config.min_gas_temperature == 10.0
        assert config.uv_background == "off"
        assert config.log_t_min == pytest.approx(1.0)
        assert config.log_t_max == 9.0
        assert not config.operator_split

    def test_uv_background_validation(self):
        for mode in ["off", "power_law"]:
            assert CoolingConfig(uv_background=mode).uv_background == mode
        with pytest.raises(ValueError, match="uv_background must be one of"):
            CoolingConfig(uv_background="haardt")

    def test_table_mode_requires_path(self):
        with pytest.raises(ValueError, match="requires uv_table_path"):
            CoolingConfig(uv_background="table")

    def test_metal_lines_require_directory(self):
        with pytest.raises(ValueError, match="requires metal_table_dir"):
            CoolingConfig(channels=["primordial", "metal_lines"], uv_background="power_law")

    def test_metal_lines_without_background_warns(self):
        with pytest.warns(UserWarning, match="ionizing background"):
            CoolingConfig(channels=["metal_lines"], metal_table_dir="tables")

    def test_unknown_channel(self):
        with pytest.raises(ValueError, match="unknown cooling channel"):
            CoolingConfig(channels=["primordial", "neutrinos"])

    def test_shielding_model_validation(self):
        with pytest.raises(ValueError, match="shielding_model must be one of"):
            CoolingConfig(shielding_model="slab")

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValueError):
            CoolingConfig(bh_mass=1.0)

    def test_assignment_validated(self):
        config = CoolingConfig()
        with pytest.raises(ValueError):
            config.gamma = 0.5

    def test_iteration_cap_minimum(self):
        with pytest.raises(ValueError):
            CoolingConfig(max_iterations=5)

    def test_energy_floor(self):
        config = CoolingConfig(min_gas_temperature=100.0)
        y = config.helium_ratio
        mu_neutral = (1.0 + 4.0 * y) / (1.0 + y)
        t_back = config.energy_floor * (config.gamma - 1.0) * mu_neutral * 1.672621e-24 / 1.380649e-16
        assert t_back == pytest.approx(100.0)
        assert CoolingConfig(min_specific_energy=5.0).energy_floor == 5.0

    def test_zero_temperature_floor_uses_default_grid(self):
        assert CoolingConfig(min_gas_temperature=0.0).log_t_min == 1.0

    def test_channel_names(self):
        config = CoolingConfig(channels=["PRIMORDIAL", "low_temperature"])
        assert config.channels == ["primordial", "low_temperature"]
        flags = config.enabled_channels
        assert CoolingChannel.FREE_FREE in flags
        assert CoolingChannel.DUST in flags
        assert CoolingChannel.PHOTOHEATING not in flags


class TestConfigLoading:
    """Test YAML/JSON file loading."""

    def nested(self):
        return {
            'tables': {'uv_background': 'power_law', 'uv_amplitude': 0.5},
            'physics': {'channels': ['primordial', 'photoheating'], 'shielding': 'rahmati',
                        'redshift': 2.0},
            'solver': {'operator_split': True, 'max_iterations': 200},
            'floors': {'min_temperature': 20.0},
            'misc': {'verbose': False},
        }

    def test_flatten(self):
        flat = flatten_config(self.nested())
        assert flat['shielding_model'] == 'rahmati'
        assert flat['min_gas_temperature'] == 20.0
        assert flat['uv_amplitude'] == 0.5

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "cooling.yaml"
        path.write_text(yaml.dump(self.nested()))
        config = load_config(path)
        assert config.uv_background == "power_law"
        assert config.shielding_model == "rahmati"
        assert config.min_gas_temperature == 20.0
        assert config.max_iterations == 200
        assert config.operator_split

    def test_load_json_with_overrides(self, tmp_path):
        path = tmp_path / "cooling.json"
        path.write_text(json.dumps(self.nested()))
        config = load_config(path, redshift=3.0)
        assert config.redshift == 3.0

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config(path, verbose=False).uv_background == "off"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "cooling.toml"
        path.write_text("x = 1")
        with pytest.raises(ValueError, match="Unsupported config file format"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({'physics': {'gamma': 0.9}}))
        with pytest.raises(ValueError, match="Configuration validation failed"):
            load_config(path)

    def test_save_and_load(self, tmp_path):
        original = config_from_dict(self.nested())
        save_config(original, tmp_path / "saved.yaml")
        assert load_config(tmp_path / "saved.yaml") == original

        with open(tmp_path / "saved.yaml") as f:
            assert set(yaml.safe_load(f)) == {'tables', 'physics', 'solver', 'floors', 'misc'}

    def test_save_unsupported(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported output format"):
            save_config(CoolingConfig(), tmp_path / "saved.txt")


class TestCoolingContext:
    """Context construction."""

    def test_build(self):
        ctx = build_context(CoolingConfig(verbose=False))
        assert ctx.has(CoolingChannel.PRIMORDIAL)
        assert not ctx.background_on
        assert ctx.metal_table is None
        assert "compton_cmb" not in dict(ctx.channel_terms.terms)

    def test_private_config_copy(self):
        config = CoolingConfig(verbose=False)
        ctx = build_context(config)
        config.redshift = 5.0
        assert ctx.redshift == 0.0

    def test_shared_rate_table(self):
        table = RateTable(1.0)
        ctx = build_context(CoolingConfig(verbose=False), rate_table=table)
        assert ctx.rate_table is table

    def test_mismatched_rate_table(self):
        with pytest.raises(ValueError, match="rate table starts"):
            build_context(CoolingConfig(verbose=False), rate_table=RateTable(2.0))
        with pytest.raises(ValueError, match="rate table ends"):
            build_context(CoolingConfig(verbose=False), rate_table=RateTable(1.0, 8.0))

    def test_missing_uv_table(self, tmp_path):
        config = CoolingConfig(uv_background="table", uv_table_path=str(tmp_path / "none"), verbose=False)
        with pytest.raises(TableLoadError):
            build_context(config)

    def test_at_redshift(self):
        ctx = build_context(CoolingConfig(uv_background="power_law", redshift=1.0, verbose=False))
        later = ctx.at_redshift(7.0)
        assert later.redshift == 7.0
        assert not later.background_on
        assert ctx.background_on
        assert later.rate_table is ctx.rate_table

    def test_verbose_logging(self, capsys):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            build_context(CoolingConfig(verbose=True))
        assert "[cooling" in capsys.readouterr().out
