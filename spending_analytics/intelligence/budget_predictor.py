"""Month-end budget projections and budget alerts."""
import calendar
import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Union

from spending_analytics.config import (
    BUDGET_RECOMMENDATION_MIN_SPEND,
    BUDGET_WARNING_PERCENTAGE,
    SPIKE_VS_LAST_MONTH_RATIO,
    SUGGESTED_BUDGET_MULTIPLIER,
)
from spending_analytics.intelligence.preprocessor import preprocess_transactions
from spending_analytics.models import (
    AlertAction,
    Budget,
    BudgetAlert,
    BudgetPrediction,
    PreprocessedData,
    Transaction,
)


logger = logging.getLogger(__name__)

STATUS_ORDER = {"exceeded": 0, "danger": 1, "warning": 2, "safe": 3}


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def month_days(month: str, today: date) -> Dict[str, int]:
    """Days in, passed and remaining for a "YYYY-MM" month as seen from today."""
    year, month_num = (int(part) for part in month.split("-")[:2])
    days_in_month = calendar.monthrange(year, month_num)[1]
    start = date(year, month_num, 1)
    end = date(year, month_num, days_in_month)

    if today < start:
        days_passed = 0
    elif today > end:
        days_passed = days_in_month
    else:
        days_passed = today.day

    return {
        "days_in_month": days_in_month,
        "days_passed": days_passed,
        "days_remaining": days_in_month - days_passed,
    }


class BudgetPredictor:
    """Project month-end spending per budget and derive alerts.

    Projections are a linear extrapolation of the month-to-date daily
    average: the spend rate is assumed to stay constant for the rest of the
    month. This is a known simplification, not a forecast.
    """

    def __init__(
        self,
        warning_percentage: float = BUDGET_WARNING_PERCENTAGE,
        spike_ratio: float = SPIKE_VS_LAST_MONTH_RATIO,
        recommendation_min_spend: float = BUDGET_RECOMMENDATION_MIN_SPEND
    ):
        self.warning_percentage = warning_percentage
        self.spike_ratio = spike_ratio
        self.recommendation_min_spend = recommendation_min_spend

    def predict(
        self,
        data: PreprocessedData,
        budgets: Iterable[Budget]
    ) -> List[BudgetPrediction]:
        """Calculate one prediction per budget.

        Args:
            data: Preprocessed snapshot
            budgets: Budget targets

        Returns:
            Predictions sorted worst-first (exceeded, danger, warning, safe)
        """
        predictions = []
        spending_by_month: Dict[str, Dict[str, float]] = {}

        for budget in budgets:
            try:
                if budget.month not in spending_by_month:
                    spending_by_month[budget.month] = self._month_spending(data, budget.month)
                current_spent = spending_by_month[budget.month].get(budget.category, 0)
                predictions.append(self._predict_budget(budget, current_spent, data.boundaries.today))
            except Exception as e:
                logger.warning(f"Failed to predict budget for {budget.category} ({budget.month}): {e}")

        return sorted(predictions, key=lambda p: STATUS_ORDER[p.status])

    def _month_spending(self, data: PreprocessedData, month: str) -> Dict[str, float]:
        """Category totals for a month, from the snapshot where possible."""
        bounds = data.boundaries
        if month == month_key(bounds.start_of_this_month):
            return data.category_totals.this_month
        if month == month_key(bounds.start_of_last_month):
            return data.category_totals.last_month

        totals: Dict[str, float] = {}
        for txn in data.by_period.all:
            if month_key(txn.transaction_date) == month:
                totals[txn.category] = totals.get(txn.category, 0) + txn.amount
        return totals

    def _predict_budget(
        self,
        budget: Budget,
        current_spent: float,
        today: date
    ) -> BudgetPrediction:
        days = month_days(budget.month, today)
        days_passed = days["days_passed"]
        days_remaining = days["days_remaining"]

        daily_average = current_spent / days_passed if days_passed > 0 else 0
        predicted_spent = daily_average * days["days_in_month"]
        predicted_overage = max(0, predicted_spent - budget.amount)
        percentage_used = current_spent / budget.amount * 100 if budget.amount > 0 else 0

        # Negative once over budget; that is the signal, not an error
        remaining_budget = budget.amount - current_spent
        recommended_daily_limit = remaining_budget / days_remaining if days_remaining > 0 else 0

        if current_spent >= budget.amount:
            status = "exceeded"
            message = f"Exceeded by {current_spent - budget.amount:,.0f}"
        elif predicted_spent >= budget.amount:
            status = "danger"
            message = f"On track to exceed by {predicted_overage:,.0f}"
        elif percentage_used >= self.warning_percentage:
            status = "warning"
            message = f"{percentage_used:.0f}% used - stay under {recommended_daily_limit:,.0f}/day"
        else:
            status = "safe"
            message = f"{remaining_budget:,.0f} remaining"

        return BudgetPrediction(
            category=budget.category,
            budget=budget.amount,
            current_spent=current_spent,
            predicted_spent=predicted_spent,
            predicted_overage=predicted_overage,
            percentage_used=percentage_used,
            days_remaining=days_remaining,
            daily_average=daily_average,
            recommended_daily_limit=recommended_daily_limit,
            status=status,
            message=message,
        )

    def generate_alerts(
        self,
        data: PreprocessedData,
        budgets: List[Budget],
        predictions: List[BudgetPrediction]
    ) -> List[BudgetAlert]:
        """Derive alerts from predictions and month-over-month spending.

        Each alert source is evaluated independently; a failing source is
        logged and skipped.
        """
        budgeted = list(dict.fromkeys(b.category for b in budgets))
        sources = [
            ("predictions", lambda: self._prediction_alerts(predictions)),
            ("spikes", lambda: self._spike_alerts(data, budgeted)),
            ("recommendations", lambda: self._recommendation_alerts(data, budgeted)),
        ]

        alerts = []
        for name, source in sources:
            try:
                alerts.extend(source())
            except Exception as e:
                logger.warning(f"Budget alert source '{name}' failed: {e}")
        return alerts

    def _prediction_alerts(self, predictions: List[BudgetPrediction]) -> List[BudgetAlert]:
        alerts = []
        for pred in predictions:
            if pred.status == "danger" and pred.predicted_overage > 0:
                alerts.append(BudgetAlert(
                    id=f"prediction-{pred.category}",
                    category=pred.category,
                    kind="prediction",
                    severity="warning",
                    title=f"{pred.category} budget at risk",
                    message=(
                        f"At your current pace, you'll exceed your budget by "
                        f"{pred.predicted_overage:,.0f}. "
                        f"Stay under {pred.recommended_daily_limit:,.0f}/day."
                    ),
                    action=AlertAction(label="Daily limit", value=pred.recommended_daily_limit),
                ))

            if pred.status == "exceeded":
                alerts.append(BudgetAlert(
                    id=f"exceeded-{pred.category}",
                    category=pred.category,
                    kind="exceeded",
                    severity="critical",
                    title=f"{pred.category} budget exceeded",
                    message=f"You've spent {pred.current_spent:,.0f} of your {pred.budget:,.0f} budget.",
                    action=AlertAction(
                        label="Increase budget",
                        value=pred.current_spent * SUGGESTED_BUDGET_MULTIPLIER
                    ),
                ))
        return alerts

    def _spike_alerts(self, data: PreprocessedData, budgeted: List[str]) -> List[BudgetAlert]:
        alerts = []
        this_month = data.category_totals.this_month
        last_month = data.category_totals.last_month

        for category in budgeted:
            current = this_month.get(category, 0)
            previous = last_month.get(category, 0)
            if previous > 0 and current > previous * self.spike_ratio:
                increase = (current - previous) / previous * 100
                alerts.append(BudgetAlert(
                    id=f"threshold-{category}",
                    category=category,
                    kind="threshold",
                    severity="warning",
                    title=f"{category} spending spike",
                    message=(
                        f"You're spending {increase:.0f}% more on {category} than last month "
                        f"({current - previous:,.0f} increase)."
                    ),
                ))
        return alerts

    def _recommendation_alerts(self, data: PreprocessedData, budgeted: List[str]) -> List[BudgetAlert]:
        alerts = []
        for category, spent in data.category_totals.this_month.items():
            if category in budgeted or spent <= self.recommendation_min_spend:
                continue
            alerts.append(BudgetAlert(
                id=f"recommendation-{category}",
                category=category,
                kind="recommendation",
                severity="info",
                title=f"Set a {category} budget",
                message=(
                    f"You've spent {spent:,.0f} on {category} this month. "
                    f"Set a budget to track your spending."
                ),
                action=AlertAction(label="Set budget", value=spent * SUGGESTED_BUDGET_MULTIPLIER),
            ))
        return alerts


def calculate_budget_predictions(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    now: Union[date, datetime]
) -> List[BudgetPrediction]:
    """Preprocess transactions and project every budget."""
    return BudgetPredictor().predict(preprocess_transactions(transactions, now), budgets)


def generate_budget_alerts(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    now: Union[date, datetime],
    predictions: Optional[List[BudgetPrediction]] = None
) -> List[BudgetAlert]:
    """Preprocess transactions and derive budget alerts."""
    budgets = list(budgets)
    predictor = BudgetPredictor()
    data = preprocess_transactions(transactions, now)
    if predictions is None:
        predictions = predictor.predict(data, budgets)
    return predictor.generate_alerts(data, budgets, predictions)
