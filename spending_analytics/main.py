#!/usr/bin/env python3
"""Spending Analytics CLI - recurring payments, budget forecasts and insights."""
import argparse
import json
import sys
import logging
from datetime import datetime
from pathlib import Path

from spending_analytics.api.analytics_service import AnalyticsService
from spending_analytics.config import LOG_DATE_FORMAT, LOG_FORMAT


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _load(service: AnalyticsService, args):
    """Load transactions and optional budgets, None if a file is missing."""
    file_path = Path(args.file)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return None

    budgets = []
    if getattr(args, "budgets", None):
        budgets_path = Path(args.budgets)
        if not budgets_path.exists():
            print(f"Error: File not found: {budgets_path}")
            return None
        budgets = service.load_budgets(budgets_path)

    return service.load_transactions(file_path), budgets


def cmd_analyze(args):
    """Run every analysis and print the result."""
    with AnalyticsService() as service:
        loaded = _load(service, args)
        if loaded is None:
            return 1
        transactions, budgets = loaded

        result = service.analyze(transactions, budgets, now=args.now)
        if args.json:
            print(json.dumps(result, indent=2))
            return 0

        summary = result["summary"]
        print("=" * 50)
        print("SPENDING SUMMARY")
        print("=" * 50)
        print(f"\nTotal transactions: {summary['total_transactions']}")
        print(f"This month:         {summary['totals']['this_month']:,.0f}")
        print(f"Last month:         {summary['totals']['last_month']:,.0f}")
        print(f"Last 30 days:       {summary['totals']['last_30_days']:,.0f}")

        print(f"\nRecurring patterns: {len(result['recurring_patterns'])}")
        for p in result["recurring_patterns"][:10]:
            print(f"  - {p['merchant']}: {p['average_amount']:,.0f} {p['frequency']} ({p['confidence']}%)")

        print(f"\nBudget alerts: {len(result['budget_alerts'])}")
        for a in result["budget_alerts"]:
            print(f"  [{a['severity']}] {a['title']}")

        print(f"\nInsights: {len(result['insights'])}")
        for i in result["insights"]:
            print(f"  [{i['kind']}] {i['title']}")

    return 0


def cmd_recurring(args):
    """List recurring payments."""
    with AnalyticsService() as service:
        loaded = _load(service, args)
        if loaded is None:
            return 1
        transactions, _ = loaded

        patterns = service.detect_recurring(transactions, now=args.now)
        if args.json:
            print(json.dumps([p.model_dump(mode="json") for p in patterns], indent=2))
            return 0

        if not patterns:
            print("No recurring payments found.")
            return 0

        print(f"{'Merchant':<30} {'Frequency':<10} {'Amount':>12} {'Conf':>5}  Next due")
        print("-" * 75)
        for p in patterns:
            print(f"{p.merchant[:30]:<30} {p.frequency:<10} {p.average_amount:>12,.0f} "
                  f"{p.confidence:>4}%  {p.next_expected_date.isoformat()}")

    return 0


def cmd_budgets(args):
    """Show budget predictions and alerts."""
    with AnalyticsService() as service:
        loaded = _load(service, args)
        if loaded is None:
            return 1
        transactions, budgets = loaded

        predictions = service.predict_budgets(transactions, budgets, now=args.now)
        alerts = service.budget_alerts(transactions, budgets, now=args.now)
        if args.json:
            print(json.dumps({
                "predictions": [p.model_dump(mode="json") for p in predictions],
                "alerts": [a.model_dump(mode="json") for a in alerts],
            }, indent=2))
            return 0

        for p in predictions:
            print(f"{p.category}: {p.current_spent:,.0f} / {p.budget:,.0f} "
                  f"-> predicted {p.predicted_spent:,.0f} [{p.status}]")
            print(f"  {p.message}")

        if alerts:
            print("\nAlerts:")
            for a in alerts:
                print(f"  [{a.severity}] {a.title}: {a.message}")

    return 0


def cmd_insights(args):
    """Show spending insights."""
    with AnalyticsService() as service:
        loaded = _load(service, args)
        if loaded is None:
            return 1
        transactions, _ = loaded

        insights = service.generate_insights(transactions, now=args.now)
        if args.json:
            print(json.dumps([i.model_dump(mode="json") for i in insights], indent=2))
            return 0

        if not insights:
            print("No insights yet.")
        for i in insights:
            print(f"[{i.kind}] {i.title}")
            print(f"  {i.description}")

    return 0


def cmd_merchants(args):
    """Show top merchants by spend."""
    with AnalyticsService() as service:
        loaded = _load(service, args)
        if loaded is None:
            return 1
        transactions, _ = loaded

        merchants = service.merchant_insights(transactions, top_n=args.limit, now=args.now)
        if args.json:
            print(json.dumps([m.model_dump(mode="json") for m in merchants], indent=2))
            return 0

        for m in merchants:
            print(f"{m.merchant[:30]:<30} {m.total_spent:>12,.0f} ({m.transaction_count} txns)")

    return 0


def _parse_now(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date: {value} (expected YYYY-MM-DD)")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Spending Analytics - recurring payments, budget forecasts and insights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  spending-analytics analyze transactions.csv --budgets budgets.csv
  spending-analytics recurring transactions.csv
  spending-analytics budgets transactions.csv --budgets budgets.csv --now 2026-10-18
  spending-analytics insights transactions.csv --json
  spending-analytics merchants transactions.csv -n 5
"""
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("file", help="CSV or Excel transaction file")
    common.add_argument("--now", type=_parse_now, default=None,
                        help="Reference date (default: now)")
    common.add_argument("--json", action="store_true", help="Print JSON output")

    analyze_parser = subparsers.add_parser("analyze", parents=[common], help="Run every analysis")
    analyze_parser.add_argument("--budgets", help="CSV or Excel budget file")
    analyze_parser.set_defaults(func=cmd_analyze)

    recurring_parser = subparsers.add_parser("recurring", parents=[common], help="Detect recurring payments")
    recurring_parser.set_defaults(func=cmd_recurring)

    budgets_parser = subparsers.add_parser("budgets", parents=[common], help="Budget predictions and alerts")
    budgets_parser.add_argument("--budgets", required=True, help="CSV or Excel budget file")
    budgets_parser.set_defaults(func=cmd_budgets)

    insights_parser = subparsers.add_parser("insights", parents=[common], help="Spending insights")
    insights_parser.set_defaults(func=cmd_insights)

    merchants_parser = subparsers.add_parser("merchants", parents=[common], help="Top merchants by spend")
    merchants_parser.add_argument("-n", "--limit", type=int, default=10, help="Max results")
    merchants_parser.set_defaults(func=cmd_merchants)

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
