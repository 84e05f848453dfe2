"""Insight orchestrator running the fixed battery of detectors."""
import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Tuple, Union

from spending_analytics.intelligence.anomaly_detector import AnomalyDetector
from spending_analytics.intelligence.patterns import (
    no_spend_streak,
    top_category_tip,
    weekend_weekday_patterns,
)
from spending_analytics.intelligence.preprocessor import preprocess_transactions
from spending_analytics.intelligence.trends import month_over_month_trends, new_categories
from spending_analytics.models import Insight, PreprocessedData, Transaction


logger = logging.getLogger(__name__)

Detector = Callable[[PreprocessedData], List[Insight]]


class InsightGenerator:
    """Generate behavioral insights from a preprocessed snapshot.

    Detector outputs are concatenated in registration order. They are not
    re-ranked by severity.
    """

    def __init__(self, anomaly_detector: Optional[AnomalyDetector] = None):
        self.anomaly_detector = anomaly_detector or AnomalyDetector()
        self.detectors: List[Tuple[str, Detector]] = [
            ("month_over_month_trends", month_over_month_trends),
            ("new_categories", new_categories),
            ("weekend_weekday_patterns", weekend_weekday_patterns),
            ("top_category_tip", top_category_tip),
            ("spending_spike", self.anomaly_detector.spending_spike),
            ("spending_velocity", self.anomaly_detector.spending_velocity),
            ("no_spend_streak", no_spend_streak),
            ("unusual_transactions", self.anomaly_detector.unusual_transactions),
        ]

    def generate(self, data: PreprocessedData) -> List[Insight]:
        """Run every detector; a failing detector is logged and skipped.

        Args:
            data: Preprocessed snapshot

        Returns:
            Insights in detector order
        """
        results: List[Insight] = []
        for name, detector in self.detectors:
            try:
                results.extend(detector(data))
            except Exception as e:
                logger.warning(f"Insight detector '{name}' failed: {e}")
        return results


def generate_insights(
    transactions: Iterable[Transaction],
    now: Union[date, datetime]
) -> List[Insight]:
    """Preprocess transactions and generate insights."""
    return InsightGenerator().generate(preprocess_transactions(transactions, now))
