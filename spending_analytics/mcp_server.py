#!/usr/bin/env python3
"""MCP Server for Spending Analytics - exposes analysis of transaction files as tools."""
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastmcp import FastMCP

# Initialize MCP server
mcp = FastMCP(
    name="spending-analytics",
    instructions="""You can analyze a user's spending from a CSV or Excel transaction export.

Use these tools to help the user understand their finances:
- analyze_spending: Everything at once (summary, recurring, budgets, insights)
- get_recurring: Detected subscriptions and recurring payments
- get_budget_status: Month-end predictions and alerts for each budget
- get_insights: Trends, patterns, spikes and tips
- get_top_merchants: Merchants ranked by total spend
- recommend_budgets: Suggested monthly budget per category

Every tool takes the path of a transaction file; budget tools also take a budget file
with category, amount and month (YYYY-MM) columns."""
)

# Lazy-load the analytics service to avoid import cost at startup
_service = None


def get_service():
    """Get or create the analytics service instance."""
    global _service
    if _service is None:
        from spending_analytics.api.analytics_service import AnalyticsService
        _service = AnalyticsService()
        _service.__enter__()
    return _service


def _parse_now(now: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(now) if now else None


@mcp.tool()
def analyze_spending(file_path: str, budgets_path: Optional[str] = None, now: Optional[str] = None) -> dict:
    """Run the full analysis over a transaction file.

    Args:
        file_path: CSV or Excel file of expenses
        budgets_path: Optional budget file
        now: Reference date as YYYY-MM-DD (default: today)
    """
    service = get_service()
    transactions = service.load_transactions(Path(file_path))
    budgets = service.load_budgets(Path(budgets_path)) if budgets_path else []
    return service.analyze(transactions, budgets, now=_parse_now(now))


@mcp.tool()
def get_recurring(file_path: str, now: Optional[str] = None) -> list:
    """Get detected recurring payments, most confident first.

    Returns merchant, average amount, frequency, next expected date,
    confidence (0-100) and whether a payment looks missed.
    """
    service = get_service()
    transactions = service.load_transactions(Path(file_path))
    patterns = service.detect_recurring(transactions, now=_parse_now(now))
    return [p.model_dump(mode="json") for p in patterns]


@mcp.tool()
def get_budget_status(file_path: str, budgets_path: str, now: Optional[str] = None) -> dict:
    """Get budget predictions and alerts, most urgent first."""
    service = get_service()
    transactions = service.load_transactions(Path(file_path))
    budgets = service.load_budgets(Path(budgets_path))
    reference = _parse_now(now)
    return {
        "predictions": [
            p.model_dump(mode="json") for p in service.predict_budgets(transactions, budgets, now=reference)
        ],
        "alerts": [
            a.model_dump(mode="json") for a in service.budget_alerts(transactions, budgets, now=reference)
        ],
    }


@mcp.tool()
def get_insights(file_path: str, now: Optional[str] = None) -> list:
    """Get spending insights: trends, weekend patterns, spikes, streaks and tips."""
    service = get_service()
    transactions = service.load_transactions(Path(file_path))
    return [i.model_dump(mode="json") for i in service.generate_insights(transactions, now=_parse_now(now))]


@mcp.tool()
def get_top_merchants(file_path: str, limit: int = 10, now: Optional[str] = None) -> list:
    """Get top merchants by total spend.

    Args:
        file_path: CSV or Excel file of expenses
        limit: Max merchants to return (default 10)
        now: Reference date as YYYY-MM-DD (default: today)
    """
    service = get_service()
    transactions = service.load_transactions(Path(file_path))
    merchants = service.merchant_insights(transactions, top_n=limit, now=_parse_now(now))
    return [m.model_dump(mode="json") for m in merchants]


@mcp.tool()
def recommend_budgets(file_path: str, budgets_path: Optional[str] = None, now: Optional[str] = None) -> list:
    """Suggest a monthly budget per category from the last few months of spending."""
    service = get_service()
    transactions = service.load_transactions(Path(file_path))
    budgets = service.load_budgets(Path(budgets_path)) if budgets_path else []
    recommendations = service.recommend_budgets(transactions, budgets, now=_parse_now(now))
    return [r.model_dump(mode="json") for r in recommendations]


if __name__ == "__main__":
    mcp.run()
