"""Process-wide cache of valid region identifiers with a time-to-live."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from county_cases.common.constants import REFERENCE_TTL_SECONDS
from county_cases.common.errors import ReferenceUnavailableError
from county_cases.common.models import ReferenceSet
from county_cases.common.time_utils import utc_timestamp_iso

logger = logging.getLogger(__name__)

ReferenceLoader = Callable[[], Iterable[int]]


@dataclass(frozen=True)
class ReferenceLookup:
    refs: ReferenceSet | None
    error: Exception | None = None
    refreshed: bool = False

    @property
    def available(self) -> bool:
        return self.refs is not None

    @property
    def stale(self) -> bool:
        return self.refs is not None and self.error is not None

    def require(self) -> ReferenceSet:
        if self.refs is None:
            raise ReferenceUnavailableError("No reference set has been loaded") from self.error
        return self.refs


class ReferenceCache:
    """Holds the current ReferenceSet and refreshes it once the TTL has elapsed.

    The set is swapped as a whole under a lock, so readers only ever see a
    complete set and callers arriving during a refresh wait for its result
    rather than issuing a second query.
    """

    def __init__(
        self,
        loader: ReferenceLoader,
        *,
        ttl_seconds: float = REFERENCE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._refs: ReferenceSet | None = None
        self._attempts = 0
        self._last_lookup: ReferenceLookup | None = None
        self._lock = threading.Lock()

    def _is_fresh(self, refs: ReferenceSet | None) -> bool:
        return refs is not None and self.clock() - refs.fetched_at < self.ttl_seconds

    def get(self) -> ReferenceLookup:
        seen_attempts = self._attempts
        refs = self._refs
        if self._is_fresh(refs):
            return ReferenceLookup(refs=refs)

        with self._lock:
            # An attempt finished while this caller waited: share its outcome.
            last = self._last_lookup
            if self._attempts != seen_attempts and last is not None:
                return ReferenceLookup(refs=last.refs, error=last.error)
            refs = self._refs
            if self._is_fresh(refs):
                return ReferenceLookup(refs=refs)
            lookup = self._refresh(refs)
            self._attempts += 1
            self._last_lookup = lookup
            return lookup

    def _refresh(self, previous: ReferenceSet | None) -> ReferenceLookup:
        try:
            ids = frozenset(self.loader())
        except Exception as exc:
            logger.warning("reference refresh failed: %s", exc)
            return ReferenceLookup(refs=previous, error=exc)
        fresh = ReferenceSet(ids=ids, fetched_at=self.clock(), fetched_at_iso=utc_timestamp_iso())
        self._refs = fresh
        logger.info("reference set refreshed with %d ids", len(ids))
        return ReferenceLookup(refs=fresh, refreshed=True)

    def age_seconds(self) -> float | None:
        refs = self._refs
        if refs is None:
            return None
        return self.clock() - refs.fetched_at

    def invalidate(self) -> None:
        with self._lock:
            self._refs = None
            self._last_lookup = None
