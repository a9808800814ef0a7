"""
test_review_service.py — Unit tests for the multi-page review aggregator
-------------------------------------------------------------------------
All tests are fully offline — collectors are fakes, sleeping is recorded.

Test coverage:
  1.  250 token-paged reviews → 2 requests of 200 then 50
  2.  30 page-numbered reviews → single request, no pacing delay
  3.  120 page-numbered reviews → pages 1, 2, 3
  4.  Source smaller than target → everything available, exhausted
  5.  Missing continuation token ends the run
  6.  Empty page ends the run
  7.  Overshooting last page drops its trailing records
  8.  Single-page path equals a direct fetch truncated to the target
  9.  Token failure retries the same cursor; page failure moves on
  10. Consecutive-failure cap → partial result, or total failure
  11. Non-retryable failure stops immediately
  12. Duplicate ids across pages are dropped; pages with nothing new count towards the cap
  13. One event per page attempt, pacing delay between requests
"""

import unittest

from fakes import FakeAppStoreCollector, FakePlayCollector, play_review
from storefront_reviews.errors import UpstreamFetchError
from storefront_reviews.models import AggregationRequest, Page, TokenCursor
from storefront_reviews.services.review_service import ReviewAggregator, aggregate


def _ids(result):
    return [r.id for r in result.records]


class _Sleeper:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


class TestPagination(unittest.TestCase):

    def _run(self, collector, target, **kwargs):
        self.sleeper = _Sleeper()
        req = AggregationRequest(app_id="com.example", target_count=target, sort="newest")
        return ReviewAggregator(collector, sleep=self.sleeper, **kwargs).aggregate(req)

    def test_play_250_fetches_200_then_50(self):
        collector = FakePlayCollector(total=1000)
        result = self._run(collector, 250)
        self.assertEqual([count for _, count in collector.calls], [200, 50])
        self.assertEqual(_ids(result), [f"r{i}" for i in range(250)])
        self.assertTrue(result.reached_target)
        self.assertFalse(result.exhausted)
        self.assertFalse(result.partial)

    def test_appstore_30_uses_single_request(self):
        collector = FakeAppStoreCollector(total=500)
        result = self._run(collector, 30)
        self.assertEqual(collector.calls, [(1, 30)])
        self.assertEqual(_ids(result), [f"r{i}" for i in range(30)])
        self.assertEqual(self.sleeper.delays, [])
        self.assertTrue(result.reached_target)

    def test_appstore_120_walks_pages_1_2_3(self):
        collector = FakeAppStoreCollector(total=500, page_delay=1.0)
        result = self._run(collector, 120)
        self.assertEqual(collector.calls, [(1, 50), (2, 50), (3, 20)])
        self.assertEqual(len(result.records), 120)
        self.assertEqual(self.sleeper.delays, [1.0, 1.0])

    def test_source_smaller_than_target(self):
        collector = FakeAppStoreCollector(total=75)
        result = self._run(collector, 120)
        self.assertEqual(collector.calls, [(1, 50), (2, 50)])
        self.assertEqual(len(result.records), 75)
        self.assertTrue(result.exhausted)
        self.assertFalse(result.reached_target)

    def test_missing_token_ends_run(self):
        collector = FakePlayCollector(total=400)
        result = self._run(collector, 1000)
        self.assertEqual(len(collector.calls), 2)
        self.assertEqual(len(result.records), 400)
        self.assertTrue(result.exhausted)

    def test_empty_page_ends_run(self):
        collector = FakeAppStoreCollector(total=100)
        result = self._run(collector, 120)
        self.assertEqual(collector.calls, [(1, 50), (2, 50), (3, 20)])
        self.assertEqual(len(result.records), 100)
        self.assertTrue(result.exhausted)
        self.assertEqual(result.events[-1].received, 0)

    def test_overshoot_drops_trailing_records(self):
        collector = FakeAppStoreCollector(total=500)
        result = self._run(collector, 70)
        # Page 2 returns r50..r99; only r50..r69 are kept
        self.assertEqual(_ids(result), [f"r{i}" for i in range(70)])
        self.assertTrue(result.reached_target)

    def test_single_page_matches_direct_fetch(self):
        req = AggregationRequest(app_id="com.example", target_count=37)
        source = FakePlayCollector(total=300)
        direct = source.fetch_page(req, source.initial_cursor(), 37)
        result = aggregate(req, FakePlayCollector(total=300), sleep=_Sleeper())
        self.assertEqual(list(result.records), direct.records[:37])

    def test_target_below_one_rejected(self):
        with self.assertRaises(ValueError):
            AggregationRequest(app_id="com.example", target_count=0)


class TestFailures(unittest.TestCase):

    def _run(self, collector, target, **kwargs):
        req = AggregationRequest(app_id="com.example", target_count=target)
        return ReviewAggregator(collector, sleep=lambda s: None, **kwargs).aggregate(req)

    def test_token_failure_retries_same_cursor(self):
        collector = FakePlayCollector(total=1000, failures=[False, True, False])
        result = self._run(collector, 250)
        self.assertEqual([cursor for cursor, _ in collector.calls], [None, 200, 200])
        self.assertEqual(_ids(result), [f"r{i}" for i in range(250)])
        self.assertFalse(result.partial)
        self.assertEqual([e.ok for e in result.events], [True, False, True])

    def test_page_failure_moves_to_next_page(self):
        collector = FakeAppStoreCollector(total=500, failures=[False, True])
        result = self._run(collector, 120)
        self.assertEqual([page for page, _ in collector.calls], [1, 2, 3, 4])
        expected = [f"r{i}" for i in list(range(0, 50)) + list(range(100, 170))]
        self.assertEqual(_ids(result), expected)
        self.assertTrue(result.reached_target)

    def test_failure_cap_returns_partial_result(self):
        collector = FakePlayCollector(total=1000, failures=[False, True, True, True, True])
        result = self._run(collector, 500, max_consecutive_failures=3)
        self.assertEqual(len(collector.calls), 4)
        self.assertEqual(len(result.records), 200)
        self.assertTrue(result.partial)
        self.assertFalse(result.reached_target)
        self.assertFalse(result.exhausted)
        self.assertIn("3 consecutive", result.error)

    def test_failures_interrupted_by_success_do_not_accumulate(self):
        collector = FakePlayCollector(total=1000, failures=[True, True, False, True, True, False])
        result = self._run(collector, 500, max_consecutive_failures=3)
        self.assertEqual(len(result.records), 500)
        self.assertFalse(result.partial)

    def test_total_failure_raises(self):
        collector = FakePlayCollector(total=1000, failures=[True] * 10)
        with self.assertRaises(UpstreamFetchError) as ctx:
            self._run(collector, 500, max_consecutive_failures=3)
        self.assertEqual(len(collector.calls), 3)
        self.assertTrue(ctx.exception.retryable)

    def test_non_retryable_failure_stops_immediately(self):
        collector = FakeAppStoreCollector(total=500, failures=[UpstreamFetchError("unknown app", retryable=False)])
        with self.assertRaises(UpstreamFetchError) as ctx:
            self._run(collector, 120)
        self.assertEqual(len(collector.calls), 1)
        self.assertFalse(ctx.exception.retryable)

    def test_non_retryable_after_progress_is_partial(self):
        collector = FakeAppStoreCollector(total=500, failures=[False, UpstreamFetchError("gone", retryable=False)])
        result = self._run(collector, 120)
        self.assertEqual(len(result.records), 50)
        self.assertTrue(result.partial)

    def test_single_page_failure_propagates(self):
        collector = FakeAppStoreCollector(total=500, failures=[True])
        with self.assertRaises(UpstreamFetchError):
            self._run(collector, 30)
        self.assertEqual(len(collector.calls), 1)

    def test_cap_must_be_positive(self):
        with self.assertRaises(ValueError):
            ReviewAggregator(FakePlayCollector(total=1), max_consecutive_failures=0)


class _OverlappingCollector(FakeAppStoreCollector):
    """Second page repeats the last ten reviews of the first, like a feed shifting under new posts."""

    def fetch_page(self, request, cursor, count):
        self.calls.append((cursor.number, count))
        start = (cursor.number - 1) * 50 - (10 if cursor.number > 1 else 0)
        return Page(records=[play_review(i) for i in range(start, start + 50)],
                    next_cursor=cursor.next(), page_size=50)


class _RepeatingCollector(FakePlayCollector):
    """Hands out a fresh token every time but serves the first page over and over."""

    def fetch_page(self, request, cursor, count):
        self.calls.append((cursor.value, count))
        self._maybe_fail()
        return Page(records=[play_review(i) for i in range(200)],
                    next_cursor=TokenCursor(len(self.calls)), page_size=200)


class TestEventsAndDedup(unittest.TestCase):

    def test_pages_without_new_reviews_hit_the_cap(self):
        collector = _RepeatingCollector(total=0)
        req = AggregationRequest(app_id="com.example", target_count=500)
        result = ReviewAggregator(collector, sleep=lambda s: None,
                                  max_consecutive_failures=3).aggregate(req)
        self.assertEqual(len(collector.calls), 4)
        self.assertEqual(_ids(result), [f"r{i}" for i in range(200)])
        self.assertTrue(result.partial)
        self.assertFalse(result.exhausted)
        self.assertIn("without new reviews", result.error)
        self.assertEqual([e.duplicates for e in result.events], [0, 200, 200, 200])

    def test_stale_page_and_fetch_failure_count_together(self):
        collector = _RepeatingCollector(total=0, failures=[None, None, True])
        req = AggregationRequest(app_id="com.example", target_count=500)
        result = ReviewAggregator(collector, sleep=lambda s: None,
                                  max_consecutive_failures=3).aggregate(req)
        self.assertEqual(len(collector.calls), 4)
        self.assertTrue(result.partial)

    def test_duplicates_dropped_and_counted(self):
        collector = _OverlappingCollector(total=0)
        req = AggregationRequest(app_id="310633997", target_count=120)
        result = ReviewAggregator(collector, sleep=lambda s: None).aggregate(req)
        ids = _ids(result)
        self.assertEqual(len(ids), 120)
        self.assertEqual(len(set(ids)), 120)
        self.assertEqual(result.events[1].duplicates, 10)

    def test_on_event_called_per_attempt(self):
        seen = []
        collector = FakePlayCollector(total=1000, failures=[False, True])
        req = AggregationRequest(app_id="com.example", target_count=450)
        result = ReviewAggregator(collector, sleep=lambda s: None,
                                  on_event=lambda r, e: seen.append(e)).aggregate(req)
        self.assertEqual(len(seen), 4)
        self.assertEqual(tuple(seen), result.events)
        self.assertEqual([e.requested for e in seen], [200, 200, 200, 50])

    def test_delay_between_requests_uses_collector_pacing(self):
        sleeper = _Sleeper()
        collector = FakePlayCollector(total=1000, page_delay=0.5)
        req = AggregationRequest(app_id="com.example", target_count=450)
        ReviewAggregator(collector, sleep=sleeper).aggregate(req)
        self.assertEqual(sleeper.delays, [0.5, 0.5])


if __name__ == "__main__":
    unittest.main()
