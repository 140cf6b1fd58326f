"""Minimal strict schemas for settings validation."""

from __future__ import annotations

from county_cases.common.errors import ConfigError

SECTION_KEYS = {
    "feed": {"url", "columns"},
    "store": {
        "url",
        "api_key",
        "reference_table",
        "reference_column",
        "records_table",
        "record_fields",
        "page_size",
    },
    "reference": {"ttl_hours"},
    "notify": {"webhook_url", "max_length"},
    "schedule": {"cron", "timezone", "misfire_grace_seconds"},
    "http": {"connect_timeout", "read_timeout", "max_attempts"},
    "server": {"host", "port"},
    "logging": {"level"},
}
COLUMN_KEYS = {"date", "region_id", "count_a", "count_b"}
RECORD_FIELD_KEYS = {"id", "date", "region_id", "count_a", "count_b"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def _validate_columns(columns: dict) -> None:
    _assert_required_keys(columns, COLUMN_KEYS, "feed.columns")
    _assert_no_unknown_keys(columns, COLUMN_KEYS, "feed.columns", allow_unknown=False)
    for key, value in columns.items():
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"feed.columns.{key} must be a non-negative integer")
    if len(set(columns.values())) != len(columns):
        raise ConfigError("feed.columns must map to distinct positions")


def validate_settings_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, set(SECTION_KEYS), "settings")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "settings", allow_unknown)

    for section, keys in SECTION_KEYS.items():
        _assert_required_keys(cfg[section], keys, section)
        _assert_no_unknown_keys(cfg[section], keys, section, allow_unknown)

    if not cfg["feed"]["url"]:
        raise ConfigError("feed.url must be set")
    _validate_columns(cfg["feed"]["columns"])

    record_fields = cfg["store"]["record_fields"]
    _assert_required_keys(record_fields, RECORD_FIELD_KEYS, "store.record_fields")
    _assert_no_unknown_keys(record_fields, RECORD_FIELD_KEYS, "store.record_fields", allow_unknown=False)
    if record_fields["id"] != "id":
        raise ConfigError("store.record_fields.id must be 'id' because upserts are keyed on it")

    _assert_positive_number(cfg["store"]["page_size"], "store.page_size")
    _assert_positive_number(cfg["reference"]["ttl_hours"], "reference.ttl_hours")
    _assert_positive_number(cfg["notify"]["max_length"], "notify.max_length")
    _assert_positive_number(cfg["http"]["connect_timeout"], "http.connect_timeout")
    _assert_positive_number(cfg["http"]["read_timeout"], "http.read_timeout")
    _assert_positive_number(cfg["http"]["max_attempts"], "http.max_attempts")
    _assert_positive_number(cfg["schedule"]["misfire_grace_seconds"], "schedule.misfire_grace_seconds")

    if len(str(cfg["schedule"]["cron"]).split()) != 5:
        raise ConfigError("schedule.cron must be a five-field crontab expression")

    port = cfg["server"]["port"]
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError("server.port must be an integer between 1 and 65535")

    if str(cfg["logging"]["level"]).upper() not in LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(sorted(LOG_LEVELS))}")

    return cfg
