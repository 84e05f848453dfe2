"""Recurring payment detector using interval, amount and recency statistics."""
from datetime import date, datetime
from functools import cmp_to_key
from typing import Iterable, List, Optional, Union
import logging

from dateutil.relativedelta import relativedelta

from spending_analytics.config import (
    CONFIDENCE_TIE_MARGIN,
    FREQUENCY_BUCKETS,
    GRACE_PERIOD_DAYS,
    MIN_CONFIDENCE,
    RECENT_INTERVAL_COUNT,
    RECENT_INTERVAL_WEIGHT,
)
from spending_analytics.intelligence.merchant_grouper import MerchantGrouper
from spending_analytics.intelligence.preprocessor import preprocess_transactions
from spending_analytics.intelligence.stats import consistency, mean
from spending_analytics.models import (
    MerchantCluster,
    PreprocessedData,
    RecurringPattern,
    Transaction,
)


logger = logging.getLogger(__name__)

# Canonical period per frequency, so projections land on calendar dates
FREQUENCY_PERIODS = {
    "weekly": relativedelta(weeks=1),
    "biweekly": relativedelta(weeks=2),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
}


class RecurringDetector:
    """Detect recurring payments (subscriptions, bills) from merchant clusters."""

    def __init__(
        self,
        grouper: Optional[MerchantGrouper] = None,
        min_confidence: int = MIN_CONFIDENCE
    ):
        """Initialize the detector.

        Args:
            grouper: MerchantGrouper used to cluster transactions
            min_confidence: Patterns scoring below this are dropped
        """
        self.grouper = grouper or MerchantGrouper()
        self.min_confidence = min_confidence

    def detect(self, data: PreprocessedData) -> List[RecurringPattern]:
        """Detect recurring patterns in a preprocessed snapshot.

        Returns:
            Patterns ranked by confidence, near-ties by spend this year
        """
        today = data.boundaries.today
        clusters = self.grouper.group(data.by_period.all)

        recurring = []
        for cluster in clusters:
            pattern = self.analyze_cluster(cluster, today)
            if pattern and pattern.confidence >= self.min_confidence:
                recurring.append(pattern)

        logger.debug(f"{len(recurring)} of {len(clusters)} merchant clusters are recurring")
        return rank_patterns(recurring)

    def analyze_cluster(
        self,
        cluster: MerchantCluster,
        today: date
    ) -> Optional[RecurringPattern]:
        """Score a merchant cluster as a recurring payment.

        Args:
            cluster: Merchant cluster
            today: Reference date for recency and missed-payment checks

        Returns:
            RecurringPattern (regardless of confidence), or None without intervals
        """
        members = sorted(cluster.transactions, key=lambda t: t.transaction_date)
        dates = [t.transaction_date for t in members]
        amounts = [t.amount for t in members]

        intervals = [(dates[i] - dates[i - 1]).days for i in range(1, len(dates))]
        if not intervals:
            return None

        avg_interval = weighted_average_interval(intervals)
        interval_consistency = consistency(intervals, avg_interval, default=0.0)

        avg_amount = mean(amounts)
        amount_consistency = consistency(amounts, avg_amount, default=100.0)

        last_date = dates[-1]
        days_since_last = (today - last_date).days
        recency = recency_factor(days_since_last, avg_interval)

        confidence = round(
            interval_consistency * 0.5
            + amount_consistency * 0.3
            + recency * 0.2
        )
        confidence = min(100, max(0, confidence))

        frequency = classify_frequency(avg_interval)
        next_expected = last_date + FREQUENCY_PERIODS[frequency]
        missed_payment = (today - next_expected).days > GRACE_PERIOD_DAYS[frequency]

        total_this_year = sum(t.amount for t in members if t.transaction_date.year == today.year)

        return RecurringPattern(
            merchant=cluster.representative_name,
            category=cluster.category,
            average_amount=round(avg_amount, 2),
            frequency=frequency,
            interval_days=round(avg_interval),
            last_date=last_date,
            next_expected_date=next_expected,
            confidence=confidence,
            transactions=members,
            total_spent_this_year=total_this_year,
            missed_payment=missed_payment,
        )


def weighted_average_interval(intervals: List[int]) -> float:
    """Average interval weighting the most recent gaps at 60%."""
    split = len(intervals) - min(RECENT_INTERVAL_COUNT, len(intervals))
    recent_avg = mean(intervals[split:])
    older = intervals[:split]
    older_avg = mean(older) if older else recent_avg
    return recent_avg * RECENT_INTERVAL_WEIGHT + older_avg * (1 - RECENT_INTERVAL_WEIGHT)


def recency_factor(days_since_last: int, avg_interval: float) -> float:
    """100 while within two intervals of the last payment, decaying to 20."""
    expected_gap = avg_interval * 2
    if days_since_last <= expected_gap:
        return 100.0
    if avg_interval <= 0:
        return 20.0
    return max(20.0, 100 - (days_since_last - expected_gap) / avg_interval * 20)


def classify_frequency(avg_interval: float) -> str:
    """Map an average interval in days to a frequency bucket."""
    for max_days, frequency in FREQUENCY_BUCKETS:
        if avg_interval <= max_days:
            return frequency
    return "quarterly"


def _compare_patterns(a: RecurringPattern, b: RecurringPattern) -> int:
    if abs(a.confidence - b.confidence) > CONFIDENCE_TIE_MARGIN:
        return b.confidence - a.confidence
    if a.total_spent_this_year == b.total_spent_this_year:
        return 0
    return -1 if a.total_spent_this_year > b.total_spent_this_year else 1


def rank_patterns(patterns: List[RecurringPattern]) -> List[RecurringPattern]:
    """Sort by confidence; confidences within the tie margin go by spend."""
    return sorted(patterns, key=cmp_to_key(_compare_patterns))


def detect_recurring_expenses(
    transactions: Iterable[Transaction],
    now: Union[date, datetime]
) -> List[RecurringPattern]:
    """Preprocess transactions and detect recurring payments."""
    return RecurringDetector().detect(preprocess_transactions(transactions, now))
