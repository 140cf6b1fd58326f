"""Wiring of settings into a ready-to-run pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from county_cases.common.config_loader import Settings
from county_cases.common.http import HttpClient
from county_cases.pipeline.ingest import IngestionPipeline
from county_cases.pipeline.reference_cache import ReferenceCache
from county_cases.sources.feed import CsvFeed
from county_cases.sources.notify import WebhookNotifier
from county_cases.sources.store import RetryableStoreError, StoreError, SupabaseStore


@dataclass
class Runtime:
    pipeline: IngestionPipeline
    clients: tuple[HttpClient, ...]

    def close(self) -> None:
        for client in self.clients:
            client.close()


def build_runtime(settings: Settings, logger: logging.Logger, *, notify: bool = True) -> Runtime:
    store_settings = settings.require_store()
    feed_client = HttpClient(timeout=settings.timeout, retry=settings.retry)
    store_client = HttpClient(
        timeout=settings.timeout,
        retry=settings.retry,
        error_class=StoreError,
        retryable_class=RetryableStoreError,
    )

    store = SupabaseStore(store_client, store_settings)
    cache = ReferenceCache(store.fetch_reference_ids, ttl_seconds=settings.reference_ttl_seconds)
    notifier = None
    if notify:
        notifier = WebhookNotifier(feed_client, settings.webhook_url, max_length=settings.notify_max_length)

    pipeline = IngestionPipeline(
        CsvFeed(feed_client, settings.feed_url),
        store,
        notifier,
        cache,
        columns=settings.columns,
        logger=logger,
    )
    return Runtime(pipeline=pipeline, clients=(feed_client, store_client))
