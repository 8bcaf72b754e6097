'''
Pacing Dashboard Backend Test Suite

Test Modules:
-------------
- test_parsing.py: month labels, currency cells, calendar helpers
- test_resilience.py: retry with linear backoff, per-attempt timeout
- test_pacing.py: time completion, N-1 rule, projections, trend, multi-month
- test_funnel.py: monotonic clamp, conversion caps, snapshot fallback, activity
- test_partner_feed.py: partner item mapping, day fan-out, retries
- test_billing.py: billing ledger buckets and malformed rows
- test_board.py: creation timestamps, per-day counts, activity items
- test_goals_and_breakdown.py: goal grid import, client breakdown replace
- test_financials.py: yearly overview, partner concentration
- test_sync.py: flow dispatch and failure isolation
- test_repository.py: chunked upserts, partial monthly_goals writes
- test_database.py: pool creation under concurrent first use
- test_clients.py: partner feed, board and Sheets adapters
- test_api.py: routes, error mapping, sync status codes

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
