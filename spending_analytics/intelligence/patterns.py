"""Behavioral spending patterns over the last 30 days."""
from datetime import timedelta
from typing import List, Optional

from spending_analytics.config import (
    CATEGORY_TIPS,
    DAY_MULTIPLIER_THRESHOLD,
    DAY_NAMES,
    DEFAULT_CATEGORY_TIP,
    MIN_STREAK_DAYS,
    TOP_CATEGORY_CONCENTRATION,
    WEEKEND_WEEKDAY_DIFF,
)
from spending_analytics.intelligence.stats import percent_change
from spending_analytics.models import Insight, PreprocessedData, SpendingPattern


def weekend_weekday_patterns(data: PreprocessedData) -> List[Insight]:
    """Compare per-transaction weekend and weekday spend per category."""
    results = []

    for category, weekend in data.weekend_by_category.items():
        weekday = data.weekday_by_category.get(category)
        if weekday is None or weekend.count == 0 or weekday.count == 0:
            continue

        weekend_avg = weekend.total / weekend.count
        weekday_avg = weekday.total / weekday.count
        diff = percent_change(weekend_avg, weekday_avg)
        if diff is None:
            continue

        if diff > WEEKEND_WEEKDAY_DIFF:
            results.append(Insight(
                kind="pattern",
                category=category,
                title=f"You spend more on {category} on weekends",
                description=f"{diff:.0f}% higher average per transaction",
                value=weekend_avg,
            ))
        elif diff < -WEEKEND_WEEKDAY_DIFF:
            results.append(Insight(
                kind="pattern",
                category=category,
                title=f"You spend more on {category} on weekdays",
                description=f"{abs(diff):.0f}% higher average per transaction",
                value=weekday_avg,
            ))

    return results


def top_category_tip(data: PreprocessedData) -> List[Insight]:
    """Suggest a tip when one category dominates last-30-day spending."""
    totals = data.category_totals.last_30_days
    grand_total = sum(totals.values())
    if not totals or grand_total <= 0:
        return []

    # Ties keep the first category seen
    category, amount = max(totals.items(), key=lambda item: item[1])
    percentage = amount / grand_total * 100
    if percentage <= TOP_CATEGORY_CONCENTRATION:
        return []

    return [Insight(
        kind="tip",
        category=category,
        title=f"{category} is {percentage:.0f}% of spending",
        description=CATEGORY_TIPS.get(category, DEFAULT_CATEGORY_TIP),
        value=amount,
    )]


def no_spend_streak(data: PreprocessedData) -> List[Insight]:
    """Count zero-spend days walking back from yesterday.

    Today is still in progress and is not counted. The walk stops at the
    edge of the 30-day window the daily totals cover.
    """
    if data.meta.count == 0:
        return []

    bounds = data.boundaries
    streak = 0
    day = bounds.today - timedelta(days=1)
    while day > bounds.last_30_days and data.daily_totals.get(day, 0) == 0:
        streak += 1
        day -= timedelta(days=1)

    if streak < MIN_STREAK_DAYS:
        return []

    return [Insight(
        kind="pattern",
        title=f"{streak} day no-spend streak!",
        description="Great job! Keep the streak going for bigger savings.",
        value=float(streak),
    )]


def analyze_day_of_week(data: PreprocessedData) -> Optional[SpendingPattern]:
    """Biggest vs smallest average spending weekday in the last 30 days."""
    totals = data.day_of_week.totals
    counts = data.day_of_week.counts
    averages = [totals[i] / counts[i] if counts[i] > 0 else 0.0 for i in range(7)]

    positive = [a for a in averages if a > 0]
    if not positive:
        return None

    max_avg = max(averages)
    min_avg = min(positive)
    if max_avg <= min_avg * DAY_MULTIPLIER_THRESHOLD:
        return None

    max_day = DAY_NAMES[averages.index(max_avg)]
    min_day = DAY_NAMES[averages.index(min_avg)]
    multiplier = max_avg / min_avg
    return SpendingPattern(
        title=f"{max_day} is your biggest spending day",
        description=f"You spend {multiplier:.1f}x more on {max_day}s than {min_day}s",
        day=max_day,
        multiplier=multiplier,
        averages=averages,
    )
