"""Merchant name normalization and fuzzy grouping."""
import logging
import re
from typing import Dict, Iterable, List

from spending_analytics.config import MERCHANT_SIMILARITY, MIN_TRANSACTIONS
from spending_analytics.intelligence.stats import similarity
from spending_analytics.models import MerchantCluster, Transaction


logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def normalize_merchant(name: str) -> str:
    """Canonical merchant key: lowercase, alphanumerics and single spaces only."""
    cleaned = _NON_ALPHANUMERIC.sub("", name.lower().strip())
    return _WHITESPACE.sub(" ", cleaned).strip()


class MerchantGrouper:
    """Cluster transactions that belong to the same real-world payee.

    Transactions are assigned to the first existing cluster (in creation
    order) whose key is similar enough, so the result depends on input
    order. Callers pass transactions chronologically.
    """

    def __init__(
        self,
        similarity_threshold: float = MERCHANT_SIMILARITY,
        min_transactions: int = MIN_TRANSACTIONS
    ):
        """Initialize the grouper.

        Args:
            similarity_threshold: Minimum name similarity to join a cluster
            min_transactions: Clusters smaller than this are discarded
        """
        self.similarity_threshold = similarity_threshold
        self.min_transactions = min_transactions

    def group(self, transactions: Iterable[Transaction]) -> List[MerchantCluster]:
        """Group transactions into merchant clusters.

        Args:
            transactions: Transactions in a stable (chronological) order

        Returns:
            Clusters with at least min_transactions members, in creation order
        """
        clusters: List[MerchantCluster] = []
        # Cluster keys never change, so a key that already found its
        # first match will find the same one again.
        placed: Dict[str, int] = {}

        for txn in transactions:
            key = normalize_merchant(txn.merchant)
            index = placed.get(key)
            if index is None:
                index = self._find_cluster(clusters, key)
                if index is None:
                    clusters.append(MerchantCluster(
                        key=key,
                        representative_name=txn.merchant,
                        category=txn.category
                    ))
                    index = len(clusters) - 1
                placed[key] = index
            clusters[index].transactions.append(txn)

        retained = [c for c in clusters if len(c.transactions) >= self.min_transactions]
        logger.debug(f"Formed {len(clusters)} merchant clusters, retained {len(retained)}")
        return retained

    def _find_cluster(self, clusters: List[MerchantCluster], key: str):
        for i, cluster in enumerate(clusters):
            if similarity(key, cluster.key) >= self.similarity_threshold:
                return i
        return None
