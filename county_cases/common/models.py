"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

RawRow = list[str]

DEFAULT_RECORD_FIELDS = {
    "id": "id",
    "date": "date",
    "region_id": "fips",
    "count_a": "cases",
    "count_b": "deaths",
}


@dataclass(frozen=True)
class ReferenceSet:
    ids: frozenset[int]
    fetched_at: float
    fetched_at_iso: str

    def __contains__(self, region_id: object) -> bool:
        return region_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class IncidentRecord:
    id: int
    date: str
    region_id: int
    count_a: int
    count_b: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_row(self, field_names: dict[str, str] | None = None) -> dict[str, Any]:
        names = field_names or DEFAULT_RECORD_FIELDS
        return {names[key]: value for key, value in self.to_dict().items()}


@dataclass(frozen=True)
class FeedColumns:
    date: int = 0
    region_id: int = 3
    count_a: int = 4
    count_b: int = 5
