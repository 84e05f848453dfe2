"""Single-pass aggregation of transactions into time-bucketed totals."""
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, Union

from spending_analytics.config import LAST_7_DAYS, LAST_14_DAYS, LAST_30_DAYS
from spending_analytics.intelligence.merchant_grouper import normalize_merchant
from spending_analytics.models import (
    CategoryAggregate,
    CategoryTotals,
    DayOfWeekTotals,
    MerchantAggregate,
    PeriodTotals,
    PeriodTransactions,
    PreprocessedData,
    SnapshotMeta,
    TimeBoundaries,
    Transaction,
)


def as_datetime(now: Union[date, datetime]) -> datetime:
    """Promote a reference date to a datetime at midnight."""
    if isinstance(now, datetime):
        return now
    return datetime.combine(now, time.min)


def create_boundaries(now: Union[date, datetime]) -> TimeBoundaries:
    """Compute the period boundaries relative to a reference instant."""
    now = as_datetime(now)
    today = now.date()
    start_of_this_month = today.replace(day=1)
    end_of_last_month = start_of_this_month - timedelta(days=1)

    return TimeBoundaries(
        now=now,
        today=today,
        start_of_this_month=start_of_this_month,
        start_of_last_month=end_of_last_month.replace(day=1),
        end_of_last_month=end_of_last_month,
        last_30_days=today - timedelta(days=LAST_30_DAYS),
        last_14_days=today - timedelta(days=LAST_14_DAYS),
        last_7_days=today - timedelta(days=LAST_7_DAYS),
    )


def day_of_week_index(day: date) -> int:
    """Day index with Sunday as 0."""
    return (day.weekday() + 1) % 7


def _add(totals: Dict[str, float], key: str, amount: float) -> None:
    totals[key] = totals.get(key, 0) + amount


def preprocess_transactions(
    transactions: Iterable[Transaction],
    now: Union[date, datetime]
) -> PreprocessedData:
    """Aggregate transactions into a preprocessed snapshot.

    Every downstream detector reads from the result, so each transaction is
    visited exactly once here.

    Args:
        transactions: Transactions in a stable order (chronological)
        now: Reference instant for all "this month" / "last N days" windows

    Returns:
        PreprocessedData snapshot
    """
    transactions = list(transactions)
    bounds = create_boundaries(now)

    by_period = PeriodTransactions(all=transactions)
    category_totals = CategoryTotals()
    totals = PeriodTotals()
    daily_totals: Dict[date, float] = {}
    day_of_week = DayOfWeekTotals()
    weekend_by_category: Dict[str, CategoryAggregate] = {}
    weekday_by_category: Dict[str, CategoryAggregate] = {}
    merchant_map: Dict[str, MerchantAggregate] = {}
    earliest = latest = None

    for txn in transactions:
        day = txn.transaction_date
        amount = txn.amount
        category = txn.category

        if latest is None or day > latest:
            latest = day
        if earliest is None or day < earliest:
            earliest = day

        totals.all += amount

        if day >= bounds.start_of_this_month:
            by_period.this_month.append(txn)
            totals.this_month += amount
            _add(category_totals.this_month, category, amount)

        if bounds.start_of_last_month <= day <= bounds.end_of_last_month:
            by_period.last_month.append(txn)
            totals.last_month += amount
            _add(category_totals.last_month, category, amount)

        if day > bounds.last_30_days:
            by_period.last_30_days.append(txn)
            totals.last_30_days += amount
            _add(category_totals.last_30_days, category, amount)
            daily_totals[day] = daily_totals.get(day, 0) + amount

            weekday = day_of_week_index(day)
            day_of_week.totals[weekday] += amount
            day_of_week.counts[weekday] += 1

            split = weekend_by_category if weekday in (0, 6) else weekday_by_category
            aggregate = split.setdefault(category, CategoryAggregate())
            aggregate.total += amount
            aggregate.count += 1

        if day > bounds.last_7_days:
            by_period.last_7_days.append(txn)
            totals.last_7_days += amount
        elif day > bounds.last_14_days:
            by_period.prev_7_days.append(txn)
            totals.prev_7_days += amount

        key = normalize_merchant(txn.merchant)
        merchant = merchant_map.get(key)
        if merchant is None:
            merchant = merchant_map[key] = MerchantAggregate(
                merchant=txn.merchant,
                category=category,
                first_date=day,
                last_date=day
            )
        merchant.total += amount
        merchant.count += 1
        merchant.transactions.append(txn)
        merchant.first_date = min(merchant.first_date, day)
        merchant.last_date = max(merchant.last_date, day)

    return PreprocessedData(
        boundaries=bounds,
        by_period=by_period,
        category_totals=category_totals,
        daily_totals=daily_totals,
        day_of_week=day_of_week,
        weekend_by_category=weekend_by_category,
        weekday_by_category=weekday_by_category,
        merchant_map=merchant_map,
        totals=totals,
        meta=SnapshotMeta(
            count=len(transactions),
            earliest_date=earliest,
            latest_date=latest
        ),
    )


def generate_cache_key(transactions: Iterable[Transaction]) -> str:
    """Cache key from record count and date range."""
    dates = [t.transaction_date for t in transactions]
    if not dates:
        return "empty"
    return f"{len(dates)}-{max(dates).isoformat()}-{min(dates).isoformat()}"
