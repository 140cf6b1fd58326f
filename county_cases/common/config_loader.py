"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dotenv import find_dotenv, load_dotenv

from county_cases.common.constants import ENV_OVERRIDES
from county_cases.common.errors import ConfigError
from county_cases.common.fs import read_yaml
from county_cases.common.http import RetryConfig, TimeoutConfig
from county_cases.common.models import FeedColumns
from county_cases.common.schema import validate_settings_config

DEFAULT_CONFIG_PATH = Path("config") / "settings.yml"
INT_ENV_KEYS = {("server", "port")}


@dataclass(frozen=True)
class StoreSettings:
    url: str | None
    api_key: str | None
    reference_table: str
    reference_column: str
    records_table: str
    record_fields: dict[str, str]
    page_size: int


@dataclass(frozen=True)
class Settings:
    feed_url: str
    columns: FeedColumns
    store: StoreSettings
    reference_ttl_seconds: float
    webhook_url: str | None
    notify_max_length: int
    cron: str
    timezone: str
    misfire_grace_seconds: int
    timeout: TimeoutConfig
    retry: RetryConfig
    host: str
    port: int
    log_level: str

    def require_store(self) -> StoreSettings:
        missing = []
        if not self.store.url:
            missing.append("store.url (SUPABASE_HOSTNAME)")
        if not self.store.api_key:
            missing.append("store.api_key (SUPABASE_ANON_KEY)")
        if missing:
            raise ConfigError(f"Store connection is not configured: {', '.join(missing)}")
        return self.store


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    return _deep_merge(base, overlay)


def apply_env_overrides(cfg: dict, environ: Mapping[str, str]) -> dict:
    merged = dict(cfg)
    for env_name, (section, key) in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is None or not raw.strip():
            continue
        value: Any = raw.strip()
        if (section, key) in INT_ENV_KEYS:
            try:
                value = int(value)
            except ValueError as exc:
                raise ConfigError(f"{env_name} must be an integer, got {raw!r}") from exc
        merged[section] = {**merged.get(section, {}), key: value}
    return merged


def build_settings(cfg: dict) -> Settings:
    store = cfg["store"]
    http = cfg["http"]
    return Settings(
        feed_url=cfg["feed"]["url"],
        columns=FeedColumns(**cfg["feed"]["columns"]),
        store=StoreSettings(
            url=store["url"] or None,
            api_key=store["api_key"] or None,
            reference_table=store["reference_table"],
            reference_column=store["reference_column"],
            records_table=store["records_table"],
            record_fields=dict(store["record_fields"]),
            page_size=int(store["page_size"]),
        ),
        reference_ttl_seconds=float(cfg["reference"]["ttl_hours"]) * 3600,
        webhook_url=cfg["notify"]["webhook_url"] or None,
        notify_max_length=int(cfg["notify"]["max_length"]),
        cron=str(cfg["schedule"]["cron"]),
        timezone=str(cfg["schedule"]["timezone"]),
        misfire_grace_seconds=int(cfg["schedule"]["misfire_grace_seconds"]),
        timeout=TimeoutConfig(connect=float(http["connect_timeout"]), read=float(http["read_timeout"])),
        retry=RetryConfig(max_attempts=int(http["max_attempts"])),
        host=str(cfg["server"]["host"]),
        port=int(cfg["server"]["port"]),
        log_level=str(cfg["logging"]["level"]).upper(),
    )


def load_settings(
    config_path: Path = DEFAULT_CONFIG_PATH,
    *,
    overlay_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    allow_unknown: bool = False,
) -> Settings:
    if environ is None:
        load_dotenv(dotenv_path=find_dotenv(usecwd=True), override=False)
        environ = os.environ
    cfg = _load_yaml_with_overlay(config_path, overlay_path)
    cfg = apply_env_overrides(cfg, environ)
    return build_settings(validate_settings_config(cfg, allow_unknown=allow_unknown))
