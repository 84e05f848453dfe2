"""Tests for recurring payment detection."""
from datetime import date

import pytest

from spending_analytics.intelligence.merchant_grouper import MerchantGrouper
from spending_analytics.intelligence.preprocessor import preprocess_transactions
from spending_analytics.intelligence.recurring_detector import (
    RecurringDetector,
    classify_frequency,
    detect_recurring_expenses,
    rank_patterns,
    recency_factor,
    weighted_average_interval,
)


class TestRecurringDetector:
    """Test cases for RecurringDetector class."""

    def test_detect_monthly_subscription(self, now, netflix):
        """Should detect a monthly subscription with high confidence."""
        patterns = detect_recurring_expenses(netflix, now)

        assert len(patterns) == 1
        netflix_pattern = patterns[0]
        assert netflix_pattern.merchant == "Netflix"
        assert netflix_pattern.category == "Entertainment"
        assert netflix_pattern.frequency == "monthly"
        assert netflix_pattern.interval_days == 30
        assert netflix_pattern.average_amount == 260_000
        assert netflix_pattern.confidence == 98
        assert netflix_pattern.last_date == date(2026, 9, 12)
        assert netflix_pattern.next_expected_date == date(2026, 10, 12)
        assert netflix_pattern.missed_payment is False
        assert netflix_pattern.total_spent_this_year == 1_040_000

    def test_first_of_month_payments(self, make_txn):
        """Payments on the 1st of four consecutive months, checked within the grace period."""
        transactions = [
            make_txn(260_000, "Netflix", day)
            for day in ["2026-01-01", "2026-02-01", "2026-03-01", "2026-04-01"]
        ]
        patterns = detect_recurring_expenses(transactions, date(2026, 4, 5))

        assert len(patterns) == 1
        assert patterns[0].frequency == "monthly"
        assert patterns[0].interval_days == 30
        assert patterns[0].confidence >= 90
        assert patterns[0].next_expected_date == date(2026, 5, 1)
        assert patterns[0].missed_payment is False

    def test_detect_weekly_subscription(self, now, make_txn):
        """Should detect weekly recurring transactions."""
        transactions = [
            make_txn(50_000, "Gym Pass", day, "Health")
            for day in ["2026-09-24", "2026-10-01", "2026-10-08", "2026-10-15"]
        ]
        patterns = detect_recurring_expenses(transactions, now)

        assert len(patterns) == 1
        assert patterns[0].frequency == "weekly"
        assert patterns[0].interval_days == 7
        assert patterns[0].confidence == 100
        assert patterns[0].next_expected_date == date(2026, 10, 22)

    def test_three_payments_are_not_enough(self, now, netflix):
        """Clusters need at least four transactions."""
        assert detect_recurring_expenses(netflix[1:], now) == []

    def test_ignore_irregular_spending(self, now, make_txn):
        """Irregular intervals and amounts score below the confidence floor."""
        transactions = [
            make_txn(50_000, "Corner Market", "2026-09-01", "Food"),
            make_txn(300_000, "Corner Market", "2026-09-03", "Food"),
            make_txn(120_000, "Corner Market", "2026-09-20", "Food"),
            make_txn(20_000, "Corner Market", "2026-10-15", "Food"),
        ]
        detector = RecurringDetector()
        data = preprocess_transactions(transactions, now)
        cluster = detector.grouper.group(data.by_period.all)[0]

        pattern = detector.analyze_cluster(cluster, data.boundaries.today)
        assert pattern.confidence < 65
        assert detector.detect(data) == []

    def test_missed_payment(self, now, make_txn):
        """A payment overdue beyond the grace period is flagged."""
        transactions = [
            make_txn(500_000, "Electric Co", day, "Bills")
            for day in ["2026-05-20", "2026-06-20", "2026-07-20", "2026-08-20"]
        ]
        patterns = detect_recurring_expenses(transactions, now)

        assert len(patterns) == 1
        assert patterns[0].next_expected_date == date(2026, 9, 20)
        assert patterns[0].missed_payment is True

    def test_confidence_is_bounded(self, now, make_txn):
        detector = RecurringDetector(min_confidence=0)
        transactions = [
            make_txn(amount, "Random Shop", day)
            for amount, day in [(1, "2025-01-01"), (900_000, "2025-01-02"), (5, "2025-06-30"), (70, "2025-07-01")]
        ]
        patterns = detector.detect(preprocess_transactions(transactions, now))

        assert len(patterns) == 1
        assert 0 <= patterns[0].confidence <= 100
        assert patterns[0].total_spent_this_year == 0

    def test_near_ties_rank_by_spend(self, now, netflix, make_txn):
        """Confidences within ten points are ordered by spend this year."""
        gym = [
            make_txn(50_000, "Gym Pass", day, "Health")
            for day in ["2026-09-24", "2026-10-01", "2026-10-08", "2026-10-15"]
        ]
        patterns = detect_recurring_expenses(gym + netflix, now)

        assert [p.merchant for p in patterns] == ["Netflix", "Gym Pass"]
        assert patterns[0].confidence < patterns[1].confidence

    def test_empty_transactions(self, now):
        assert detect_recurring_expenses([], now) == []

    def test_single_transaction_cluster_has_no_pattern(self, now, make_txn):
        data = preprocess_transactions([make_txn(10, "Once", "2026-10-01")], now)
        cluster = MerchantGrouper(min_transactions=1).group(data.by_period.all)[0]

        assert RecurringDetector().analyze_cluster(cluster, data.boundaries.today) is None


class TestIntervalStatistics:

    def test_weighted_average_favors_recent_intervals(self):
        assert weighted_average_interval([10, 10, 30, 30, 30]) == pytest.approx(22)

    def test_weighted_average_with_few_intervals(self):
        assert weighted_average_interval([31, 28, 31]) == pytest.approx(30)
        assert weighted_average_interval([7]) == pytest.approx(7)

    @pytest.mark.parametrize("interval,expected", [
        (7, "weekly"),
        (9, "weekly"),
        (9.5, "biweekly"),
        (16, "biweekly"),
        (30, "monthly"),
        (35, "monthly"),
        (36, "quarterly"),
        (365, "quarterly"),
    ])
    def test_classify_frequency(self, interval, expected):
        assert classify_frequency(interval) == expected

    def test_recency_factor(self):
        assert recency_factor(10, 30) == 100
        assert recency_factor(60, 30) == 100
        assert recency_factor(90, 30) == pytest.approx(80)
        assert recency_factor(1000, 30) == 20
        assert recency_factor(5, 0) == 20

    def test_rank_patterns_by_confidence(self, now, netflix):
        pattern = detect_recurring_expenses(netflix, now)[0]
        low = pattern.model_copy(update={"merchant": "Low", "confidence": 70, "total_spent_this_year": 9e9})

        assert [p.merchant for p in rank_patterns([low, pattern])] == ["Netflix", "Low"]
