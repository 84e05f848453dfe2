"""Analytics service - main orchestration layer."""
import logging
import time
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from spending_analytics.config import CACHE_TTL_SECONDS
from spending_analytics.ingestion.csv_parser import CSVParser
from spending_analytics.intelligence.budget_predictor import BudgetPredictor
from spending_analytics.intelligence.budget_recommender import BudgetRecommender
from spending_analytics.intelligence.insight_generator import InsightGenerator
from spending_analytics.intelligence.patterns import analyze_day_of_week
from spending_analytics.intelligence.preprocessor import (
    as_datetime,
    generate_cache_key,
    preprocess_transactions,
)
from spending_analytics.intelligence.recurring_detector import RecurringDetector
from spending_analytics.intelligence.trends import analyze_category_trends, merchant_insights
from spending_analytics.models import (
    Budget,
    BudgetAdjustment,
    BudgetAlert,
    BudgetPrediction,
    BudgetRecommendation,
    CategorySpending,
    CategoryTrend,
    Insight,
    MerchantInsight,
    PreprocessedData,
    RecurringPattern,
    SavingsOpportunity,
    Transaction,
)


logger = logging.getLogger(__name__)

Now = Optional[Union[date, datetime]]


class AnalyticsService:
    """Main service for spending analytics.

    Every call takes the transaction history as input and returns plain
    records; nothing is stored. The reference time comes from the injected
    clock unless a call passes `now` explicitly.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        cache_ttl: float = CACHE_TTL_SECONDS
    ):
        """Initialize the analytics service.

        Args:
            clock: Returns the current time (default: datetime.now)
            cache_ttl: Seconds a preprocessed snapshot stays cached (0 disables)
        """
        self.clock = clock or datetime.now
        self.cache_ttl = cache_ttl
        self._cache: Dict[Tuple[Tuple[Transaction, ...], date], Tuple[float, PreprocessedData]] = {}

        self.recurring_detector = RecurringDetector()
        self.budget_predictor = BudgetPredictor()
        self.budget_recommender = BudgetRecommender()
        self.insight_generator = InsightGenerator()
        self.parser = CSVParser()

    def close(self):
        """Drop cached snapshots."""
        self.clear_cache()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # === Loading ===

    def load_transactions(self, file_path: Path) -> List[Transaction]:
        """Load transactions from a CSV/Excel file."""
        logger.info(f"Loading transactions: {file_path}")
        return self.parser.parse(file_path)

    def load_budgets(self, file_path: Path) -> List[Budget]:
        """Load budgets from a CSV/Excel file."""
        logger.info(f"Loading budgets: {file_path}")
        return self.parser.parse_budgets(file_path)

    # === Preprocessing ===

    def preprocess(self, transactions: Sequence[Transaction], now: Now = None) -> PreprocessedData:
        """Preprocess transactions, reusing a recent snapshot when possible.

        The cache is keyed by the transactions themselves plus the reference
        date, so only an identical history can share a snapshot.
        """
        now = as_datetime(now) if now is not None else self.clock()
        key = (tuple(transactions), now.date())

        if self.cache_ttl > 0:
            cached = self._cache.get(key)
            if cached and time.monotonic() - cached[0] < self.cache_ttl:
                logger.debug(f"Preprocessing cache hit: {generate_cache_key(transactions)}")
                return cached[1]

        data = preprocess_transactions(transactions, now)
        if self.cache_ttl > 0:
            self._evict_expired()
            self._cache[key] = (time.monotonic(), data)
        return data

    def clear_cache(self) -> None:
        self._cache.clear()

    def _evict_expired(self) -> None:
        cutoff = time.monotonic() - self.cache_ttl
        for key in [k for k, (stamp, _) in self._cache.items() if stamp < cutoff]:
            del self._cache[key]

    # === Analytics ===

    def detect_recurring(self, transactions: Sequence[Transaction], now: Now = None) -> List[RecurringPattern]:
        """Detect recurring payments."""
        return self.recurring_detector.detect(self.preprocess(transactions, now))

    def predict_budgets(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget],
        now: Now = None
    ) -> List[BudgetPrediction]:
        """Project month-end spending for each budget."""
        return self.budget_predictor.predict(self.preprocess(transactions, now), budgets)

    def budget_alerts(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget],
        now: Now = None
    ) -> List[BudgetAlert]:
        """Derive budget alerts (predictions are computed internally)."""
        data = self.preprocess(transactions, now)
        predictions = self.budget_predictor.predict(data, budgets)
        return self.budget_predictor.generate_alerts(data, list(budgets), predictions)

    def generate_insights(self, transactions: Sequence[Transaction], now: Now = None) -> List[Insight]:
        """Run the insight detector battery."""
        return self.insight_generator.generate(self.preprocess(transactions, now))

    def merchant_insights(
        self,
        transactions: Sequence[Transaction],
        top_n: int = 10,
        now: Now = None
    ) -> List[MerchantInsight]:
        """Top merchants by total spend."""
        return merchant_insights(self.preprocess(transactions, now), top_n=top_n)

    def category_trends(self, transactions: Sequence[Transaction], now: Now = None) -> List[CategoryTrend]:
        """Month-over-month movement for every category."""
        return analyze_category_trends(self.preprocess(transactions, now))

    def savings_opportunities(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget],
        now: Now = None
    ) -> List[SavingsOpportunity]:
        """Budgets consistently larger than actual spending."""
        return self.budget_recommender.savings_opportunities(self.preprocess(transactions, now), budgets)

    def recommend_budgets(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget] = (),
        now: Now = None
    ) -> List[BudgetRecommendation]:
        """Suggested budget per category from recent history."""
        return self.budget_recommender.recommend(self.preprocess(transactions, now), budgets)

    def spending_patterns(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget] = (),
        now: Now = None
    ) -> List[CategorySpending]:
        return self.budget_recommender.spending_patterns(self.preprocess(transactions, now), budgets)

    def needs_budget_adjustment(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget],
        now: Now = None
    ) -> BudgetAdjustment:
        """Whether any current-month budget is more than 90% spent."""
        return self.budget_recommender.needs_adjustment(self.preprocess(transactions, now), budgets)

    def analyze(
        self,
        transactions: Sequence[Transaction],
        budgets: Sequence[Budget] = (),
        now: Now = None
    ) -> Dict[str, Any]:
        """Run the full analysis over one snapshot.

        Returns:
            Dict of serializable results keyed by analysis name
        """
        budgets = list(budgets)
        data = self.preprocess(transactions, now)
        logger.info(f"Analyzing {data.meta.count} transactions and {len(budgets)} budgets")

        recurring = self.recurring_detector.detect(data)
        logger.info(f"Found {len(recurring)} recurring patterns")

        predictions = self.budget_predictor.predict(data, budgets)
        alerts = self.budget_predictor.generate_alerts(data, budgets, predictions)
        logger.info(f"Generated {len(predictions)} budget predictions and {len(alerts)} alerts")

        insights = self.insight_generator.generate(data)
        logger.info(f"Generated {len(insights)} insights")

        day_pattern = analyze_day_of_week(data)

        return {
            "summary": self.summarize(data),
            "recurring_patterns": [p.model_dump(mode="json") for p in recurring],
            "budget_predictions": [p.model_dump(mode="json") for p in predictions],
            "budget_alerts": [a.model_dump(mode="json") for a in alerts],
            "insights": [i.model_dump(mode="json") for i in insights],
            "day_of_week_pattern": day_pattern.model_dump(mode="json") if day_pattern else None,
        }

    def summarize(self, data: PreprocessedData) -> Dict[str, Any]:
        """Headline totals of a snapshot."""
        return {
            "total_transactions": data.meta.count,
            "earliest_date": data.meta.earliest_date.isoformat() if data.meta.earliest_date else None,
            "latest_date": data.meta.latest_date.isoformat() if data.meta.latest_date else None,
            "totals": data.totals.model_dump(),
            "category_breakdown": dict(sorted(
                data.category_totals.this_month.items(),
                key=lambda item: item[1],
                reverse=True
            )),
        }
