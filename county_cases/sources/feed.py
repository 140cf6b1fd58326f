"""CSV snapshot download."""

from __future__ import annotations

from county_cases.common.errors import StageError
from county_cases.common.http import HttpClient


class FeedError(StageError):
    error_code = "FEED_ERROR"


class CsvFeed:
    def __init__(self, client: HttpClient, url: str) -> None:
        self.client = client
        self.url = url

    def fetch_text(self) -> str:
        text = self.client.get_text(self.url)
        if not text.strip():
            raise FeedError(f"Empty snapshot from {self.url}")
        return text
