import pytest

from liuyao.config import DEFAULT_CONFIG, EngineConfig
from liuyao.errors import ConfigError


def test_defaults():
    assert DEFAULT_CONFIG.timezone == "Asia/Shanghai"
    assert DEFAULT_CONFIG.solar_terms == "table"
    assert DEFAULT_CONFIG.longitude is None
    assert str(DEFAULT_CONFIG.zone) == "Asia/Shanghai"


def test_from_env_reads_liuyao_variables():
    config = EngineConfig.from_env({
        "LIUYAO_TIMEZONE": "Europe/London",
        "LIUYAO_SOLAR_TERMS": "EPHEMERIS",
        "LIUYAO_LONGITUDE": "-0.13",
        "LIUYAO_TIMING_DAYS": "30",
        "LIUYAO_TIMING_MONTHS": "6",
        "UNRELATED": "ignored",
    })
    assert config.timezone == "Europe/London"
    assert config.solar_terms == "ephemeris"
    assert config.longitude == -0.13
    assert config.timing_horizon_days == 30
    assert config.timing_horizon_months == 6


def test_from_env_without_variables_gives_defaults():
    assert EngineConfig.from_env({}) == DEFAULT_CONFIG


@pytest.mark.parametrize("environ", [
    {"LIUYAO_SOLAR_TERMS": "lunar"},
    {"LIUYAO_TIMEZONE": "Mars/Olympus_Mons"},
    {"LIUYAO_LONGITUDE": "east"},
    {"LIUYAO_LONGITUDE": "200"},
    {"LIUYAO_TIMING_DAYS": "0"},
])
def test_invalid_settings_raise_config_error(environ):
    with pytest.raises(ConfigError):
        EngineConfig.from_env(environ)


def test_with_overrides_skips_none():
    config = DEFAULT_CONFIG.with_overrides(timezone=None, longitude=116.4, solar_terms=None)
    assert config.timezone == "Asia/Shanghai"
    assert config.longitude == 116.4
    assert DEFAULT_CONFIG.longitude is None


def test_with_overrides_validates():
    with pytest.raises(ConfigError):
        DEFAULT_CONFIG.with_overrides(solar_terms="guess")
