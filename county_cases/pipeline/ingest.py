"""One ingestion run: fetch, parse, reference lookup, load, summary."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from county_cases.common.errors import PipelineError
from county_cases.common.ids import generate_run_id
from county_cases.common.logging import log_event
from county_cases.common.models import FeedColumns, RawRow, ReferenceSet
from county_cases.common.time_utils import format_age
from county_cases.pipeline.csv_parser import data_row_count, parse_csv
from county_cases.pipeline.records import build_records_with_stats
from county_cases.pipeline.reference_cache import ReferenceCache
from county_cases.pipeline.reporter import RunReporter, StepStatus, describe_error
from county_cases.sources.feed import CsvFeed
from county_cases.sources.notify import WebhookNotifier
from county_cases.sources.store import SupabaseStore


@dataclass(frozen=True)
class RunResult:
    run_id: str
    ok: bool
    summary: str
    records_loaded: int
    statuses: tuple[StepStatus, ...]
    notified: bool = False


class _StepFailed(Exception):
    pass


class IngestionPipeline:
    def __init__(
        self,
        feed: CsvFeed,
        store: SupabaseStore,
        notifier: WebhookNotifier | None,
        cache: ReferenceCache,
        *,
        columns: FeedColumns = FeedColumns(),
        logger: logging.Logger | None = None,
    ) -> None:
        self.feed = feed
        self.store = store
        self.notifier = notifier
        self.cache = cache
        self.columns = columns
        self.logger = logger or logging.getLogger(__name__)

    def _fail(self, reporter: RunReporter, run_id: str, step: str, exc: Exception, started: float) -> None:
        error_code = exc.error_code if isinstance(exc, PipelineError) else "UNEXPECTED_ERROR"
        reporter.fail(step, exc)
        log_event(
            self.logger,
            f"{step} failed: {describe_error(exc)}",
            run_id=run_id,
            step=step,
            event="STEP_FAIL",
            status="error",
            error_code=error_code,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def _end(
        self,
        run_id: str,
        step: str,
        started: float,
        *,
        message: str | None = None,
        status: str = "ok",
        **fields,
    ) -> None:
        log_event(
            self.logger,
            message or f"{step} complete",
            run_id=run_id,
            step=step,
            event="STEP_END",
            status=status,
            duration_ms=int((time.monotonic() - started) * 1000),
            **fields,
        )

    def _fetch(self, reporter: RunReporter, run_id: str) -> str:
        started = time.monotonic()
        log_event(self.logger, "fetching snapshot", run_id=run_id, step="fetch", event="STEP_START", source=self.feed.url)
        try:
            text = self.feed.fetch_text()
        except Exception as exc:
            self._fail(reporter, run_id, "fetch", exc, started)
            raise _StepFailed from exc
        reporter.ok("fetch", f"{len(text)} bytes")
        self._end(run_id, "fetch", started)
        return text

    def _parse(self, reporter: RunReporter, run_id: str, text: str) -> list[RawRow]:
        started = time.monotonic()
        log_event(self.logger, "parsing snapshot", run_id=run_id, step="parse", event="STEP_START")
        try:
            rows = parse_csv(text)
        except Exception as exc:
            self._fail(reporter, run_id, "parse", exc, started)
            raise _StepFailed from exc
        row_count = data_row_count(rows)
        reporter.ok("parse", f"{row_count} rows")
        self._end(run_id, "parse", started, rows_out=row_count)
        return rows

    def _reference(self, reporter: RunReporter, run_id: str) -> ReferenceSet:
        started = time.monotonic()
        log_event(self.logger, "loading reference set", run_id=run_id, step="reference", event="STEP_START")
        lookup = self.cache.get()
        if not lookup.available:
            error = lookup.error or RuntimeError("reference set unavailable")
            self._fail(reporter, run_id, "reference", error, started)
            raise _StepFailed from lookup.error
        refs = lookup.require()
        if lookup.stale:
            age = self.cache.age_seconds() or 0.0
            reporter.warn(
                "reference",
                f"refresh failed, using {len(refs)} cached ids from {format_age(age)} ago ({describe_error(lookup.error)})",
            )
            self._end(
                run_id,
                "reference",
                started,
                message="reference refresh failed, serving stale set",
                status="stale",
                rows_out=len(refs),
                error_code=getattr(lookup.error, "error_code", "UNEXPECTED_ERROR"),
            )
            return refs
        reporter.ok("reference", f"{len(refs)} ids")
        self._end(run_id, "reference", started, rows_out=len(refs))
        return refs

    def _load(self, reporter: RunReporter, run_id: str, rows: list[RawRow], refs: ReferenceSet) -> int:
        started = time.monotonic()
        log_event(self.logger, "loading records", run_id=run_id, step="load", event="STEP_START")
        try:
            records, stats = build_records_with_stats(rows, refs, self.columns)
            loaded = self.store.upsert_records(records) if records else 0
        except Exception as exc:
            self._fail(reporter, run_id, "load", exc, started)
            raise _StepFailed from exc
        reporter.ok("load", f"{loaded} records")
        self._end(
            run_id,
            "load",
            started,
            rows_in=stats.rows_in,
            rows_out=stats.rows_out,
        )
        self.logger.debug(
            "load stats: dropped=%d duplicates=%d",
            stats.dropped,
            stats.duplicates,
            extra={"run_id": run_id, "step": "load"},
        )
        return loaded

    def _notify(self, run_id: str, summary: str) -> bool:
        log_event(self.logger, summary, run_id=run_id, event="SUMMARY", status="ok")
        if self.notifier is None:
            return False
        try:
            sent = self.notifier.send(summary)
        except Exception as exc:
            log_event(
                self.logger,
                f"notification failed: {describe_error(exc)}",
                run_id=run_id,
                event="NOTIFY_FAIL",
                status="error",
                error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
            )
            return False
        return sent

    def run(self, run_id: str | None = None) -> RunResult:
        run_id = run_id or generate_run_id()
        reporter = RunReporter()
        reporter.ok("start", run_id)
        log_event(self.logger, "run starting", run_id=run_id, step="start", event="RUN_START", status="ok")

        loaded = 0
        try:
            text = self._fetch(reporter, run_id)
            rows = self._parse(reporter, run_id, text)
            refs = self._reference(reporter, run_id)
            loaded = self._load(reporter, run_id, rows, refs)
        except _StepFailed:
            pass

        statuses = reporter.statuses
        ok = not reporter.has_failures
        summary = reporter.render()
        notified = self._notify(run_id, summary)
        log_event(
            self.logger,
            "run finished",
            run_id=run_id,
            event="RUN_END",
            status="ok" if ok else "error",
            rows_out=loaded,
        )
        return RunResult(
            run_id=run_id,
            ok=ok,
            summary=summary,
            records_loaded=loaded,
            statuses=statuses,
            notified=notified,
        )
