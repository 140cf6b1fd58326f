from __future__ import annotations

import pytest

from county_cases.common.config_loader import StoreSettings
from county_cases.common.http import HttpClient
from county_cases.common.models import DEFAULT_RECORD_FIELDS, IncidentRecord
from county_cases.sources.store import StoreError, SupabaseStore


def _settings(page_size: int = 2) -> StoreSettings:
    return StoreSettings(
        url="https://project.supabase.co/",
        api_key="anon-key",
        reference_table="us_counties",
        reference_column="fips",
        records_table="us_counties_cases",
        record_fields=dict(DEFAULT_RECORD_FIELDS),
        page_size=page_size,
    )


class RecordingClient(HttpClient):
    def __init__(self, pages=None):
        super().__init__()
        self.pages = list(pages or [])
        self.get_calls = []
        self.post_calls = []

    def get_json(self, url, *, params=None, headers=None, timeout=None):
        self.get_calls.append((url, params, headers))
        return self.pages.pop(0)

    def post_json(self, url, payload, *, params=None, headers=None, timeout=None):
        self.post_calls.append((url, payload, params, headers))
        return None


def test_fetch_reference_ids_pages_until_empty_page():
    client = RecordingClient([[{"fips": 1001}, {"fips": 1003}], [{"fips": 12345}], []])
    store = SupabaseStore(client, _settings(page_size=2))

    ids = store.fetch_reference_ids()

    assert ids == frozenset({1001, 1003, 12345})
    assert [call[1]["offset"] for call in client.get_calls] == [0, 2, 3]
    url, params, headers = client.get_calls[0]
    assert url == "https://project.supabase.co/rest/v1/us_counties"
    assert params["select"] == "fips"
    assert headers["apikey"] == "anon-key"
    assert headers["Authorization"] == "Bearer anon-key"


def test_fetch_reference_ids_rejects_non_integer_values():
    store = SupabaseStore(RecordingClient([[{"fips": "abc"}]]), _settings())
    with pytest.raises(StoreError):
        store.fetch_reference_ids()


def test_fetch_reference_ids_skips_null_values():
    store = SupabaseStore(RecordingClient([[{"fips": None}, {"fips": "01001"}], []]), _settings(page_size=5))
    assert store.fetch_reference_ids() == frozenset({1001})


def test_upsert_records_posts_single_batch_keyed_by_id():
    client = RecordingClient()
    store = SupabaseStore(client, _settings())
    records = [
        IncidentRecord(id=2021010112345, date="2021-01-01", region_id=12345, count_a=10, count_b=2),
        IncidentRecord(id=2021010101001, date="2021-01-01", region_id=1001, count_a=3, count_b=0),
    ]

    assert store.upsert_records(records) == 2

    assert len(client.post_calls) == 1
    url, payload, params, headers = client.post_calls[0]
    assert url == "https://project.supabase.co/rest/v1/us_counties_cases"
    assert params == {"on_conflict": "id"}
    assert headers["Prefer"] == "resolution=merge-duplicates,return=minimal"
    assert payload[1] == {"id": 2021010101001, "date": "2021-01-01", "fips": 1001, "cases": 3, "deaths": 0}


def test_store_requires_credentials():
    settings = _settings()
    with pytest.raises(ValueError):
        SupabaseStore(HttpClient(), StoreSettings(**{**settings.__dict__, "api_key": None}))


class CappedServerClient(HttpClient):
    """Serves a table like PostgREST with a max-rows cap below the requested limit."""

    def __init__(self, ids, max_rows):
        super().__init__()
        self.ids = list(ids)
        self.max_rows = max_rows
        self.offsets = []

    def get_json(self, url, *, params=None, headers=None, timeout=None):
        offset = params["offset"]
        self.offsets.append(offset)
        limit = min(params["limit"], self.max_rows)
        return [{"fips": value} for value in self.ids[offset : offset + limit]]


def test_fetch_reference_ids_survives_server_row_cap():
    client = CappedServerClient(range(1, 3001), max_rows=1000)
    store = SupabaseStore(client, _settings(page_size=5000))

    ids = store.fetch_reference_ids()

    assert len(ids) == 3000
    assert client.offsets == [0, 1000, 2000, 3000]
