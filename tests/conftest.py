"""
Pytest configuration and shared fixtures.
"""
from datetime import date, datetime

import pytest

from spending_analytics.models import Budget, Transaction


# Sunday, 18 October 2026
NOW = datetime(2026, 10, 18, 12, 0)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time so windows are deterministic."""
    return NOW


@pytest.fixture
def make_txn():
    """Factory for transactions: make_txn(amount, merchant, "2026-10-01", category)."""
    def _make(amount: float, merchant: str, day, category: str = "Other") -> Transaction:
        if isinstance(day, str):
            day = date.fromisoformat(day)
        return Transaction(amount=amount, merchant=merchant, category=category, transaction_date=day)
    return _make


@pytest.fixture
def make_budget():
    """Factory for budgets: make_budget("Food", 6_000_000, "2026-10")."""
    def _make(category: str, amount: float, month: str) -> Budget:
        return Budget(category=category, amount=amount, month=month)
    return _make


@pytest.fixture
def netflix(make_txn):
    """Four monthly payments with intervals 31, 28 and 31 days."""
    return [
        make_txn(260_000, "Netflix", "2026-06-14", "Entertainment"),
        make_txn(260_000, "NETFLIX", "2026-07-15", "Entertainment"),
        make_txn(260_000, "Netflix", "2026-08-12", "Entertainment"),
        make_txn(260_000, "Netflix", "2026-09-12", "Entertainment"),
    ]
