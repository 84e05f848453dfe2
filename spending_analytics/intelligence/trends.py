"""Month-over-month category trends and merchant rankings."""
from typing import List

from spending_analytics.config import (
    NEW_CATEGORY_MIN_AMOUNT,
    SIGNIFICANT_MOM_CHANGE,
    STABLE_THRESHOLD,
)
from spending_analytics.intelligence.stats import percent_change
from spending_analytics.models import (
    CategoryTrend,
    Insight,
    MerchantInsight,
    PreprocessedData,
)


def month_over_month_trends(data: PreprocessedData) -> List[Insight]:
    """Flag categories whose spend moved more than the threshold vs last month."""
    results = []
    this_month = data.category_totals.this_month
    last_month = data.category_totals.last_month

    for category, amount in this_month.items():
        change = percent_change(amount, last_month.get(category, 0))
        if change is None or abs(change) <= SIGNIFICANT_MOM_CHANGE:
            continue

        direction = "increased" if change > 0 else "decreased"
        results.append(Insight(
            kind="trend",
            category=category,
            title=f"{category} {direction}",
            description=f"{abs(change):.0f}% {'more' if change > 0 else 'less'} than last month",
            value=amount,
            change=change,
        ))

    return results


def new_categories(data: PreprocessedData) -> List[Insight]:
    """Flag categories with significant spend this month and none last month."""
    results = []
    last_month = data.category_totals.last_month

    for category, amount in data.category_totals.this_month.items():
        if last_month.get(category, 0) == 0 and amount >= NEW_CATEGORY_MIN_AMOUNT:
            results.append(Insight(
                kind="alert",
                category=category,
                title=f"New spending in {category}",
                description="This is a new category for you this month",
                value=amount,
            ))

    return results


def analyze_category_trends(data: PreprocessedData) -> List[CategoryTrend]:
    """Every category's this-month vs last-month movement.

    Returns:
        Trends sorted by absolute change, largest first
    """
    this_month = data.category_totals.this_month
    last_month = data.category_totals.last_month

    trends = []
    for category in dict.fromkeys([*this_month, *last_month]):
        current = this_month.get(category, 0)
        previous = last_month.get(category, 0)
        if current == 0 and previous == 0:
            continue

        change = percent_change(current, previous) or 0.0
        if abs(change) > STABLE_THRESHOLD:
            trend = "up" if change > 0 else "down"
        else:
            trend = "stable"

        trends.append(CategoryTrend(
            category=category,
            current_month=current,
            previous_month=previous,
            change_percent=change,
            trend=trend,
        ))

    return sorted(trends, key=lambda t: abs(t.change_percent), reverse=True)


def merchant_insights(data: PreprocessedData, top_n: int = 10) -> List[MerchantInsight]:
    """Top merchants by total spend, from the snapshot's merchant map."""
    grand_total = data.totals.all

    insights = []
    for merchant in data.merchant_map.values():
        months_span = max(
            1,
            (merchant.last_date.year - merchant.first_date.year) * 12
            + merchant.last_date.month - merchant.first_date.month + 1
        )
        insights.append(MerchantInsight(
            merchant=merchant.merchant,
            category=merchant.category,
            total_spent=merchant.total,
            transaction_count=merchant.count,
            average_amount=merchant.total / merchant.count,
            first_transaction=merchant.first_date,
            last_transaction=merchant.last_date,
            monthly_average=merchant.total / months_span,
            percent_of_total=merchant.total / grand_total * 100 if grand_total > 0 else 0,
        ))

    insights.sort(key=lambda m: m.total_spent, reverse=True)
    return insights[:top_n]
