"""Budget suggestions and savings opportunities from recent spending history."""
import math
from typing import Dict, Iterable, List

from dateutil.relativedelta import relativedelta

from spending_analytics.config import (
    BUDGET_ADJUSTMENT_RATIO,
    RECOMMENDATION_BUFFERS,
    RECOMMENDATION_LOOKBACK_MONTHS,
    RECOMMENDATION_ROUNDING,
    SAVINGS_UNDERSPEND_RATIO,
    STABLE_THRESHOLD,
)
from spending_analytics.intelligence.budget_predictor import month_key
from spending_analytics.intelligence.stats import percent_change
from spending_analytics.models import (
    Budget,
    BudgetAdjustment,
    BudgetRecommendation,
    CategorySpending,
    PreprocessedData,
    SavingsOpportunity,
)


class BudgetRecommender:
    """Suggest budget amounts from the last few months of spending."""

    def __init__(
        self,
        lookback_months: int = RECOMMENDATION_LOOKBACK_MONTHS,
        adjustment_ratio: float = BUDGET_ADJUSTMENT_RATIO
    ):
        self.lookback_months = lookback_months
        self.adjustment_ratio = adjustment_ratio

    def _recent_spending(self, data: PreprocessedData) -> Dict[str, List[float]]:
        """Amounts per category within the lookback window."""
        cutoff = data.boundaries.today - relativedelta(months=self.lookback_months)
        amounts: Dict[str, List[float]] = {}
        for txn in data.by_period.all:
            if txn.transaction_date >= cutoff:
                amounts.setdefault(txn.category, []).append(txn.amount)
        return amounts

    def savings_opportunities(
        self,
        data: PreprocessedData,
        budgets: Iterable[Budget]
    ) -> List[SavingsOpportunity]:
        """Find budgets that are consistently larger than actual spending.

        Returns:
            Opportunities sorted by annualized savings, largest first
        """
        recent = self._recent_spending(data)
        # Latest budget wins when a category has several months
        latest = {b.category: b for b in budgets}

        opportunities = []
        for category, budget in latest.items():
            amounts = recent.get(category)
            if not amounts:
                continue

            average_monthly = sum(amounts) / self.lookback_months
            if average_monthly < budget.amount * SAVINGS_UNDERSPEND_RATIO:
                potential_savings = (budget.amount - average_monthly) * 12
                opportunities.append(SavingsOpportunity(
                    category=category,
                    current_average=average_monthly,
                    potential_savings=potential_savings,
                    recommendation=(
                        f"You typically spend {average_monthly:,.0f}/month on {category}. "
                        f"Consider reducing your budget to {average_monthly * 1.1:,.0f} "
                        f"and save {potential_savings:,.0f}/year."
                    ),
                ))

        return sorted(opportunities, key=lambda o: o.potential_savings, reverse=True)

    def recommend(
        self,
        data: PreprocessedData,
        budgets: Iterable[Budget] = ()
    ) -> List[BudgetRecommendation]:
        """Suggest a budget for every category spent on recently.

        The suggestion is the monthly average plus a buffer that grows with
        the current-month trend, rounded up to a clean amount.

        Returns:
            Recommendations sorted by suggested amount, largest first
        """
        recent = self._recent_spending(data)
        if not recent:
            return []

        current_month = month_key(data.boundaries.today)
        existing = {b.category: b for b in budgets if b.month == current_month}
        this_month = data.category_totals.this_month

        recommendations = []
        for category, amounts in recent.items():
            average = sum(amounts) / self.lookback_months
            current = this_month.get(category, 0)

            change = percent_change(current, average)
            if change is None:
                change = 0.0
            if change > STABLE_THRESHOLD:
                trend = "increasing"
            elif change < -STABLE_THRESHOLD:
                trend = "decreasing"
            else:
                trend = "stable"

            suggested = math.ceil(average * RECOMMENDATION_BUFFERS[trend])
            suggested = math.ceil(suggested / RECOMMENDATION_ROUNDING) * RECOMMENDATION_ROUNDING

            if len(amounts) >= 3 * self.lookback_months:
                confidence = "high"
            elif len(amounts) < 3:
                confidence = "low"
            else:
                confidence = "medium"

            reasoning = (
                f"Based on your last {self.lookback_months} months, you spend an average of "
                f"{average:,.0f} on {category}."
            )
            if trend == "increasing":
                reasoning += f" Your spending is increasing by {abs(change):.0f}%, so we recommend a higher budget."
            elif trend == "decreasing":
                reasoning += f" Your spending is decreasing by {abs(change):.0f}%, so a lower budget may work."
            else:
                reasoning += " Your spending is stable, so this budget should work well."

            budget = existing.get(category)
            if budget and budget.amount > 0 and current > budget.amount:
                reasoning += f" You're currently {(current / budget.amount - 1) * 100:.0f}% over budget this month."

            recommendations.append(BudgetRecommendation(
                category=category,
                suggested_amount=suggested,
                current_amount=budget.amount if budget else None,
                reasoning=reasoning,
                confidence=confidence,
                trend=trend,
                percent_change=change,
            ))

        return sorted(recommendations, key=lambda r: r.suggested_amount, reverse=True)

    def spending_patterns(
        self,
        data: PreprocessedData,
        budgets: Iterable[Budget] = ()
    ) -> List[CategorySpending]:
        """Monthly average against this month's spend, per recent category."""
        recent = self._recent_spending(data)
        current_month = month_key(data.boundaries.today)
        existing = {b.category: b for b in budgets if b.month == current_month}
        this_month = data.category_totals.this_month

        patterns = []
        for category, amounts in recent.items():
            current = this_month.get(category, 0)
            budget = existing.get(category)
            patterns.append(CategorySpending(
                category=category,
                monthly_average=sum(amounts) / self.lookback_months,
                current_month_spending=current,
                is_over_budget=budget is not None and current > budget.amount,
            ))

        return sorted(patterns, key=lambda p: p.monthly_average, reverse=True)

    def needs_adjustment(self, data: PreprocessedData, budgets: Iterable[Budget]) -> BudgetAdjustment:
        """Flag current-month budgets that are nearly or fully spent."""
        current_month = month_key(data.boundaries.today)
        existing = {b.category: b for b in budgets if b.month == current_month}

        categories = [
            category
            for category, spent in data.category_totals.this_month.items()
            if category in existing and spent > existing[category].amount * self.adjustment_ratio
        ]
        if not categories:
            return BudgetAdjustment(
                needs_adjustment=False,
                reason="Your spending is within budget limits.",
            )

        noun = "category" if len(categories) == 1 else "categories"
        return BudgetAdjustment(
            needs_adjustment=True,
            categories=categories,
            reason=f"You're approaching or exceeding your budget in {len(categories)} {noun}.",
        )
