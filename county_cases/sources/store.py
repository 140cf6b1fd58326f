"""Supabase (PostgREST) reference query and record upsert."""

from __future__ import annotations

from typing import Sequence

from county_cases.common.config_loader import StoreSettings
from county_cases.common.http import HttpClient, HttpRequestError, RetryableHttpError
from county_cases.common.models import IncidentRecord


class StoreError(HttpRequestError):
    error_code = "STORE_ERROR"


class RetryableStoreError(StoreError, RetryableHttpError):
    pass


class SupabaseStore:
    def __init__(self, client: HttpClient, settings: StoreSettings) -> None:
        if not settings.url or not settings.api_key:
            raise ValueError("SupabaseStore needs a url and api key")
        self.client = client
        self.settings = settings
        self.base_url = f"{settings.url.rstrip('/')}/rest/v1"

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.settings.api_key or "",
            "Authorization": f"Bearer {self.settings.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/{table}"

    def _parse_ids(self, payload: object) -> list[int]:
        column = self.settings.reference_column
        if not isinstance(payload, list):
            raise StoreError(f"Unexpected reference payload type: {type(payload).__name__}")
        ids = []
        for entry in payload:
            value = entry.get(column) if isinstance(entry, dict) else None
            if value is None:
                continue
            if isinstance(value, bool):
                raise StoreError(f"Non-integer {column} value: {value!r}")
            try:
                ids.append(int(value))
            except (TypeError, ValueError) as exc:
                raise StoreError(f"Non-integer {column} value: {value!r}") from exc
        return ids

    def fetch_reference_ids(self) -> frozenset[int]:
        column = self.settings.reference_column
        page_size = self.settings.page_size
        ids: set[int] = set()
        offset = 0
        while True:
            payload = self.client.get_json(
                self._table_url(self.settings.reference_table),
                params={
                    "select": column,
                    "order": column,
                    "limit": page_size,
                    "offset": offset,
                },
                headers=self._headers(),
            )
            ids.update(self._parse_ids(payload))
            # The server may cap a page below page_size; only an empty page ends the scan.
            if not payload:
                break
            offset += len(payload)
        return frozenset(ids)

    def upsert_records(self, records: Sequence[IncidentRecord]) -> int:
        rows = [record.to_row(self.settings.record_fields) for record in records]
        self.client.post_json(
            self._table_url(self.settings.records_table),
            rows,
            params={"on_conflict": self.settings.record_fields["id"]},
            headers=self._headers({"Prefer": "resolution=merge-duplicates,return=minimal"}),
        )
        return len(rows)
