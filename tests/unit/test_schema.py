import copy
from pathlib import Path

import pytest
import yaml

from county_cases.common.errors import ConfigError
from county_cases.common.schema import validate_settings_config

BASE_SETTINGS = yaml.safe_load(Path("config/settings.yml").read_text(encoding="utf-8"))


def _settings():
    return copy.deepcopy(BASE_SETTINGS)


def test_validate_settings_accepts_repo_config():
    validated = validate_settings_config(_settings())
    assert validated["feed"]["columns"]["region_id"] == 3


def test_validate_settings_rejects_unknown_key_by_default():
    bad = _settings()
    bad["unexpected"] = True
    with pytest.raises(ConfigError):
        validate_settings_config(bad)


def test_validate_settings_allows_unknown_when_enabled():
    okay = _settings()
    okay["extra"] = 1
    validate_settings_config(okay, allow_unknown=True)


def test_validate_settings_rejects_missing_section():
    bad = _settings()
    del bad["store"]
    with pytest.raises(ConfigError, match="store"):
        validate_settings_config(bad)


def test_validate_settings_rejects_duplicate_column_positions():
    bad = _settings()
    bad["feed"]["columns"]["count_b"] = 4
    with pytest.raises(ConfigError, match="distinct"):
        validate_settings_config(bad)


def test_validate_settings_rejects_bad_cron_and_port():
    bad_cron = _settings()
    bad_cron["schedule"]["cron"] = "daily"
    with pytest.raises(ConfigError):
        validate_settings_config(bad_cron)

    bad_port = _settings()
    bad_port["server"]["port"] = 70000
    with pytest.raises(ConfigError):
        validate_settings_config(bad_port)


def test_validate_settings_requires_id_key_field():
    bad = _settings()
    bad["store"]["record_fields"]["id"] = "pk"
    with pytest.raises(ConfigError):
        validate_settings_config(bad)
