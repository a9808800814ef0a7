"""
Multi-page review aggregation.

A collector serves one page per call; ReviewAggregator keeps asking for pages
until the requested count is met, the store runs dry, or too many requests in
a row fail or bring nothing new. The loop is the same for both stores:
collectors differ only in their cursor type, page ceiling and pacing delay.
"""

import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from ..config import MAX_CONSECUTIVE_FAILURES
from ..errors import UpstreamFetchError
from ..models import AggregationRequest, AggregationResult, PageEvent, ReviewRecord
from ..utils.logger import get_logger

logger = get_logger("aggregator")


@dataclass(frozen=True)
class AggregatorSettings:
    max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES
    sleep: Callable[[float], None] = time.sleep

    def build(self, collector) -> "ReviewAggregator":
        return ReviewAggregator(collector, max_consecutive_failures=self.max_consecutive_failures,
                                sleep=self.sleep)


class ReviewAggregator:
    def __init__(self, collector, max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES,
                 sleep: Callable[[float], None] = time.sleep,
                 on_event: Optional[Callable[[AggregationRequest, PageEvent], None]] = None):
        if max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures must be at least 1")
        self.collector = collector
        self.max_consecutive_failures = max_consecutive_failures
        self.sleep = sleep
        self.on_event = on_event or log_event

    def aggregate(self, request: AggregationRequest) -> AggregationResult:
        if request.target_count <= self.collector.page_ceiling:
            result = self._single_page(request)
        else:
            result = self._paginate(request)
        logger.info(
            f"[{request.app_id}] Completed: {len(result.records)}/{request.target_count} reviews "
            f"in {len(result.events)} request(s) (exhausted={result.exhausted}, partial={result.partial})"
        )
        return result

    def _single_page(self, request: AggregationRequest) -> AggregationResult:
        target = request.target_count
        cursor = self.collector.initial_cursor()
        started = time.monotonic()
        try:
            page = self.collector.fetch_page(request, cursor, target)
        except UpstreamFetchError as e:
            self.on_event(request, PageEvent(1, cursor.describe(), target, error=e.message,
                                             elapsed=time.monotonic() - started))
            raise

        fresh = _dedupe(page.records, set())
        event = PageEvent(1, cursor.describe(), target, received=len(page.records),
                          duplicates=len(page.records) - len(fresh), elapsed=time.monotonic() - started)
        self.on_event(request, event)

        records = tuple(fresh[:target])
        exhausted = (not page.records or page.next_cursor is None
                     or len(page.records) < page.page_size)
        return AggregationResult(records=records, reached_target=len(records) >= target,
                                 exhausted=exhausted, events=(event,))

    def _paginate(self, request: AggregationRequest) -> AggregationResult:
        target = request.target_count
        ceiling = self.collector.page_ceiling
        cursor = self.collector.initial_cursor()

        records: List[ReviewRecord] = []
        seen: Set[str] = set()
        events: List[PageEvent] = []
        reached_target = exhausted = False
        error = None
        failures = 0

        while True:
            if events:
                self.sleep(self.collector.page_delay)

            attempt = len(events) + 1
            requested = min(target - len(records), ceiling)
            started = time.monotonic()
            try:
                page = self.collector.fetch_page(request, cursor, requested)
            except UpstreamFetchError as e:
                failures += 1
                event = PageEvent(attempt, cursor.describe(), requested, error=e.message,
                                  elapsed=time.monotonic() - started)
                events.append(event)
                self.on_event(request, event)
                if e.retryable and failures < self.max_consecutive_failures:
                    cursor = cursor.after_failure()
                    continue
                reason = (f"gave up after {failures} consecutive failed page requests"
                          if e.retryable else "upstream rejected the request")
                if not records:
                    raise UpstreamFetchError(f"Failed to fetch reviews for {request.app_id}: "
                                             f"{reason}: {e.message}", retryable=e.retryable) from e
                error = f"Partial result, {reason}: {e.message}"
                break

            fresh = _dedupe(page.records, seen)
            event = PageEvent(attempt, cursor.describe(), requested, received=len(page.records),
                              duplicates=len(page.records) - len(fresh),
                              elapsed=time.monotonic() - started)
            events.append(event)
            self.on_event(request, event)

            if not page.records:
                exhausted = True
                break

            if fresh:
                failures = 0
                records.extend(fresh)
                if len(records) >= target:
                    # Trailing excess of the last page goes, earlier records stay
                    del records[target:]
                    reached_target = True
                    break
            else:
                # Only already-seen reviews: no progress, counts towards the cap
                failures += 1
                if failures >= self.max_consecutive_failures:
                    error = (f"Partial result, gave up after {failures} consecutive page requests "
                             f"without new reviews")
                    break
            if len(page.records) < page.page_size or page.next_cursor is None:
                exhausted = True
                break
            cursor = page.next_cursor

        return AggregationResult(records=tuple(records), reached_target=reached_target,
                                 exhausted=exhausted, partial=error is not None,
                                 error=error, events=tuple(events))


def aggregate(request: AggregationRequest, collector, **kwargs) -> AggregationResult:
    return ReviewAggregator(collector, **kwargs).aggregate(request)


def log_event(request: AggregationRequest, event: PageEvent) -> None:
    if event.ok:
        logger.info(
            f"[{request.app_id}] Request {event.attempt} ({event.cursor}): "
            f"{event.received}/{event.requested} reviews in {event.elapsed:.2f}s"
            + (f", {event.duplicates} duplicate(s) dropped" if event.duplicates else "")
        )
    else:
        logger.warning(f"[{request.app_id}] Request {event.attempt} ({event.cursor}) failed: {event.error}")


def _dedupe(page_records: List[ReviewRecord], seen: Set[str]) -> List[ReviewRecord]:
    out = []
    for r in page_records:
        if r.id in seen:
            continue
        seen.add(r.id)
        out.append(r)
    return out
