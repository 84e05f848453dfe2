"""Spending anomaly detection: daily spikes, weekly velocity, outlier transactions."""
from typing import List

from spending_analytics.config import (
    MAX_UNUSUAL_TRANSACTIONS,
    MIN_DAYS_FOR_SPIKE,
    SPENDING_SPIKE_MULTIPLIER,
    UNUSUAL_SPENDING_MULTIPLIER,
    VELOCITY_CHANGE_THRESHOLD,
)
from spending_analytics.intelligence.stats import mean, percent_change
from spending_analytics.models import Insight, PreprocessedData


class AnomalyDetector:
    """Detect unusual spending using simple multiples of the average."""

    def __init__(
        self,
        spike_multiplier: float = SPENDING_SPIKE_MULTIPLIER,
        min_days_for_spike: int = MIN_DAYS_FOR_SPIKE,
        velocity_threshold: float = VELOCITY_CHANGE_THRESHOLD,
        unusual_multiplier: float = UNUSUAL_SPENDING_MULTIPLIER,
        max_unusual: int = MAX_UNUSUAL_TRANSACTIONS
    ):
        """Initialize with detection thresholds.

        Args:
            spike_multiplier: Max day must exceed this x the daily average
            min_days_for_spike: Days with spending required before checking spikes
            velocity_threshold: % change of last 7 vs previous 7 days to report
            unusual_multiplier: Transaction must exceed this x the overall average
            max_unusual: Maximum outlier transactions reported
        """
        self.spike_multiplier = spike_multiplier
        self.min_days_for_spike = min_days_for_spike
        self.velocity_threshold = velocity_threshold
        self.unusual_multiplier = unusual_multiplier
        self.max_unusual = max_unusual

    def spending_spike(self, data: PreprocessedData) -> List[Insight]:
        """Flag a day in the last 30 days far above the daily average."""
        daily_amounts = list(data.daily_totals.values())
        if len(daily_amounts) < self.min_days_for_spike:
            return []

        avg_daily = mean(daily_amounts)
        max_daily = max(daily_amounts)
        if avg_daily <= 0 or max_daily <= avg_daily * self.spike_multiplier:
            return []

        return [Insight(
            kind="alert",
            title="Unusual spending spike detected",
            description=f"One day was {(max_daily / avg_daily - 1) * 100:.0f}% above your daily average",
            value=max_daily,
        )]

    def spending_velocity(self, data: PreprocessedData) -> List[Insight]:
        """Compare the last 7 days against the 7 days before."""
        last_7 = data.totals.last_7_days
        change = percent_change(last_7, data.totals.prev_7_days)
        if change is None or abs(change) <= self.velocity_threshold:
            return []

        accelerating = change > 0
        return [Insight(
            kind="alert" if accelerating else "tip",
            title=f"Spending is {'accelerating' if accelerating else 'slowing down'}",
            description=f"{abs(change):.0f}% {'more' if accelerating else 'less'} than last week",
            value=last_7,
            change=change,
        )]

    def unusual_transactions(self, data: PreprocessedData) -> List[Insight]:
        """Largest transactions well above the overall average transaction."""
        transactions = data.by_period.all
        if not transactions:
            return []

        avg_amount = data.totals.all / len(transactions)
        if avg_amount <= 0:
            return []

        unusual = [t for t in transactions if t.amount > avg_amount * self.unusual_multiplier]
        unusual.sort(key=lambda t: t.amount, reverse=True)

        return [
            Insight(
                kind="alert",
                category=t.category,
                title=f"Large {t.category} expense at {t.merchant}",
                description=f"{t.amount / avg_amount:.1f}x your average expense",
                value=t.amount,
            )
            for t in unusual[:self.max_unusual]
        ]
