"""
Unit tests for the Config Loading Utility.

Tests validate:
- YAML loading and parsing
- Environment variable substitution
- Trends config validation
- Error handling
"""

import pytest
import os
from pathlib import Path

from trendkit.src.utils.config import (
    ConfigLoader,
    ConfigError,
    get_config_loader,
    get_trends_config,
    load_config,
    reset_config_loader,
)


@pytest.fixture(autouse=True)
def fresh_global_loader():
    """Each test starts without a global loader."""
    reset_config_loader()
    yield
    reset_config_loader()


def write_trends(config_dir: Path, body: str) -> None:
    (config_dir / "trends.yaml").write_text(body)


# =============================================================================
# Loading Tests
# =============================================================================

class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigError, match="Config directory not found"):
            ConfigLoader(tmp_path / "missing")

    def test_missing_file(self, temp_config_dir):
        loader = ConfigLoader(temp_config_dir)
        with pytest.raises(ConfigError, match="Config file not found"):
            loader.load("nonexistent")

    def test_load_trends(self, temp_config_dir):
        loader = ConfigLoader(temp_config_dir)
        trends = loader.get_trends_config()

        assert trends['peaks']['period'] == 5
        assert trends['parabolic_sar']['acceleration_factor_max'] == 0.2
        assert trends['directional_movement']['smoothing'] == 'simple_moving_average'

    def test_load_is_cached(self, temp_config_dir):
        loader = ConfigLoader(temp_config_dir)
        first = loader.load("trends")
        assert loader.load("trends") is first

        loader.clear_cache()
        assert loader.load("trends") is not first

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("key: [unclosed")
        loader = ConfigLoader(tmp_path)
        with pytest.raises(ConfigError, match="Invalid YAML"):
            loader.load("broken")

    def test_load_all_skips_invalid(self, temp_config_dir):
        (temp_config_dir / "broken.yaml").write_text("key: [unclosed")
        loader = ConfigLoader(temp_config_dir)
        configs = loader.load_all()

        assert 'trends' in configs
        assert 'broken' not in configs

    def test_unvalidated_config_loads(self, tmp_path):
        (tmp_path / "other.yaml").write_text("anything: 1\n")
        assert ConfigLoader(tmp_path).load("other") == {'anything': 1}


# =============================================================================
# Environment Substitution Tests
# =============================================================================

class TestEnvSubstitution:
    """Tests for ${VAR} / ${VAR:-default} substitution."""

    def test_default_used(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TRENDKIT_TEST_VALUE", raising=False)
        (tmp_path / "other.yaml").write_text("value: ${TRENDKIT_TEST_VALUE:-7}\n")
        assert ConfigLoader(tmp_path).load("other")['value'] == 7

    def test_env_overrides_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRENDKIT_TEST_VALUE", "0.35")
        (tmp_path / "other.yaml").write_text("value: ${TRENDKIT_TEST_VALUE:-7}\n")
        assert ConfigLoader(tmp_path).load("other")['value'] == 0.35

    def test_malformed_number_stays_string(self, tmp_path, monkeypatch):
        """A doubled sign is not a number, so it is left as text."""
        monkeypatch.setenv("TRENDKIT_TEST_VALUE", "--5")
        (tmp_path / "other.yaml").write_text("value: ${TRENDKIT_TEST_VALUE:-7}\n")
        assert ConfigLoader(tmp_path).load("other")['value'] == '--5'

    def test_malformed_period_rejected(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRENDKIT_TEST_VALUE", "--5")
        write_trends(tmp_path, trends_yaml(peak_period="${TRENDKIT_TEST_VALUE:-5}"))
        with pytest.raises(ConfigError, match="Invalid peaks period: --5"):
            ConfigLoader(tmp_path).load("trends")

    def test_quoted_values_coerced(self, tmp_path):
        (tmp_path / "other.yaml").write_text(
            "flag: 'yes'\nperiod: '14'\nstep: '2e-2'\nname: 'long'\nspecial: 'inf'\n"
        )
        config = ConfigLoader(tmp_path).load("other")
        assert config == {
            'flag': True, 'period': 14, 'step': 0.02, 'name': 'long', 'special': 'inf'
        }


# =============================================================================
# Validation Tests
# =============================================================================

TRENDS_TEMPLATE = """
trends:
  peaks:
    period: {peak_period}
  trend_break:
    {trend_break}
  parabolic_sar:
    start_position: {position}
  directional_movement:
    period: 14
    smoothing: {smoothing}
"""


def trends_yaml(peak_period="5", trend_break="max_outliers: 1",
                position="long", smoothing="simple_moving_average") -> str:
    return TRENDS_TEMPLATE.format(
        peak_period=peak_period, trend_break=trend_break,
        position=position, smoothing=smoothing,
    )


class TestTrendsValidation:
    """Tests for trends.yaml validation."""

    def test_valid(self, tmp_path):
        write_trends(tmp_path, trends_yaml())
        assert ConfigLoader(tmp_path).get_trends_config()['peaks']['period'] == 5

    def test_missing_section(self, tmp_path):
        write_trends(tmp_path, "trends:\n  peaks:\n    period: 5\n")
        with pytest.raises(ConfigError, match="Missing required trends config"):
            ConfigLoader(tmp_path).load("trends")

    def test_missing_trends_key(self, tmp_path):
        write_trends(tmp_path, "other: 1\n")
        with pytest.raises(ConfigError, match="Missing 'trends' section"):
            ConfigLoader(tmp_path).load("trends")

    def test_invalid_period(self, tmp_path):
        write_trends(tmp_path, trends_yaml(peak_period="0"))
        with pytest.raises(ConfigError, match="Invalid peaks period"):
            ConfigLoader(tmp_path).load("trends")

    def test_unknown_smoothing(self, tmp_path):
        write_trends(tmp_path, trends_yaml(smoothing="weighted_moving_average"))
        with pytest.raises(ConfigError, match="Invalid directional_movement smoothing"):
            ConfigLoader(tmp_path).load("trends")

    def test_invalid_trend_break(self, tmp_path):
        write_trends(tmp_path, trends_yaml(trend_break="max_outliers: -1"))
        with pytest.raises(ConfigError, match="Invalid trend_break config"):
            ConfigLoader(tmp_path).load("trends")

    def test_unknown_trend_break_key(self, tmp_path):
        write_trends(tmp_path, trends_yaml(trend_break="max_outlier: 1"))
        with pytest.raises(ConfigError, match="Invalid trend_break config"):
            ConfigLoader(tmp_path).load("trends")

    def test_invalid_position(self, tmp_path):
        write_trends(tmp_path, trends_yaml(position="flat"))
        with pytest.raises(ConfigError, match="start_position"):
            ConfigLoader(tmp_path).load("trends")

    def test_volatility_period_needs_two_bars(self, tmp_path):
        body = trends_yaml() + "  volatility_system:\n    period: 1\n"
        write_trends(tmp_path, body)
        with pytest.raises(ConfigError, match="Invalid volatility_system period: 1"):
            ConfigLoader(tmp_path).load("trends")

    def test_volatility_period_two_accepted(self, tmp_path):
        body = trends_yaml() + "  volatility_system:\n    period: 2\n"
        write_trends(tmp_path, body)
        trends = ConfigLoader(tmp_path).get_trends_config()
        assert trends['volatility_system']['period'] == 2

    def test_boolean_period_rejected(self, tmp_path):
        write_trends(tmp_path, trends_yaml(peak_period="true"))
        with pytest.raises(ConfigError, match="Invalid peaks period"):
            ConfigLoader(tmp_path).load("trends")

    def test_boolean_acceleration_factor_rejected(self, tmp_path):
        body = trends_yaml().replace(
            "start_position: long",
            "start_position: long\n    acceleration_factor_step: true",
        )
        write_trends(tmp_path, body)
        with pytest.raises(ConfigError, match="parabolic_sar acceleration_factor_step"):
            ConfigLoader(tmp_path).load("trends")

    def test_skip_validation(self, tmp_path):
        write_trends(tmp_path, trends_yaml(peak_period="0"))
        config = ConfigLoader(tmp_path).load("trends", validate=False)
        assert config['trends']['peaks']['period'] == 0


# =============================================================================
# Global Loader Tests
# =============================================================================

class TestGlobalLoader:
    """Tests for the module-level loader helpers."""

    def test_singleton(self, temp_config_dir):
        loader = get_config_loader(temp_config_dir)
        assert get_config_loader() is loader

    def test_reset(self, temp_config_dir, tmp_path):
        first = get_config_loader(temp_config_dir)
        reset_config_loader()
        assert get_config_loader(tmp_path) is not first

    def test_load_config(self, temp_config_dir):
        get_config_loader(temp_config_dir)
        assert 'trends' in load_config("trends")

    def test_get_trends_config(self, temp_config_dir):
        get_config_loader(temp_config_dir)
        assert get_trends_config()['volatility_system']['period'] == 5

    def test_default_directory_is_project_config(self):
        loader = get_config_loader()
        assert loader.config_dir.name == 'config'
        assert (loader.config_dir / 'trends.yaml').exists()

    def test_project_config_is_valid(self, monkeypatch):
        monkeypatch.delenv("TRENDKIT_PEAK_PERIOD", raising=False)
        trends = get_trends_config()
        assert trends['peaks']['period'] == 5
        assert trends['directional_movement']['smoothing'] == 'smoothed_moving_average'
