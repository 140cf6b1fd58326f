"""Filesystem helpers."""

from __future__ import annotations

from pathlib import Path


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
