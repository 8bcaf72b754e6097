"""
Pacing Dashboard Backend Package.

FastAPI service layer for the business metrics dashboard. Reconciles the
ad-operations partner feed, the billing and goals spreadsheets and the
work-management boards into PostgreSQL, and serves month-to-date pacing,
sales funnel, activity and financial overview reads on top of them.

Subpackages:
    - api: FastAPI route handlers
    - clients: Source adapters (partner feed, Google Sheets, boards)
    - core: Configuration, database, clock, errors and retry policy
    - models: Pydantic schemas and enums
    - services: Pacing engine, funnel aggregation and reconciliation flows
    - sql: Parameterized SQL queries and table DDL
"""

__version__ = "1.0.0"
