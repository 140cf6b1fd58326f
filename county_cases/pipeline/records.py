"""Row-to-record transformation with deterministic primary keys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Container, Sequence

from county_cases.common.errors import RecordParseError
from county_cases.common.models import FeedColumns, IncidentRecord, RawRow
from county_cases.common.time_utils import is_iso_date


@dataclass(frozen=True)
class BuildStats:
    rows_in: int
    dropped: int
    duplicates: int
    rows_out: int


def _is_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


def derive_record_id(date: str, region_field: str) -> int:
    """Natural key: date and region digits concatenated, hyphens removed."""
    return int(f"{date}{region_field}".replace("-", ""), 10)


def _field(row: RawRow, index: int) -> str | None:
    if index >= len(row):
        return None
    return row[index]


def _parse_count(row: RawRow, index: int, row_number: int) -> int:
    value = _field(row, index)
    if value is None:
        raise RecordParseError(f"Row {row_number}: missing count column {index}")
    value = value.strip()
    if not _is_digits(value):
        raise RecordParseError(f"Row {row_number}: non-numeric count {value!r} in column {index}")
    return int(value, 10)


def _region_id(row: RawRow, columns: FeedColumns, refs: Container[int]) -> tuple[str, int] | None:
    region_field = _field(row, columns.region_id)
    if not region_field or not _is_digits(region_field):
        return None
    region_id = int(region_field, 10)
    if region_id not in refs:
        return None
    return region_field, region_id


def build_records_with_stats(
    rows: Sequence[RawRow],
    refs: Container[int],
    columns: FeedColumns = FeedColumns(),
) -> tuple[list[IncidentRecord], BuildStats]:
    by_id: dict[int, IncidentRecord] = {}
    dropped = 0
    duplicates = 0

    for row_number, row in enumerate(rows[1:], start=1):
        region = _region_id(row, columns, refs)
        if region is None:
            dropped += 1
            continue
        region_field, region_id = region

        date = _field(row, columns.date) or ""
        if not is_iso_date(date):
            raise RecordParseError(f"Row {row_number}: invalid date {date!r}")

        record = IncidentRecord(
            id=derive_record_id(date, region_field),
            date=date,
            region_id=region_id,
            count_a=_parse_count(row, columns.count_a, row_number),
            count_b=_parse_count(row, columns.count_b, row_number),
        )
        if record.id in by_id:
            duplicates += 1
        # Later rows win but keep the first-seen position.
        by_id[record.id] = record

    records = list(by_id.values())
    stats = BuildStats(
        rows_in=max(len(rows) - 1, 0),
        dropped=dropped,
        duplicates=duplicates,
        rows_out=len(records),
    )
    return records, stats


def build_records(
    rows: Sequence[RawRow],
    refs: Container[int],
    columns: FeedColumns = FeedColumns(),
) -> list[IncidentRecord]:
    records, _stats = build_records_with_stats(rows, refs, columns)
    return records
