"""Configuration settings for the spending analytics engine."""
from typing import Dict

DEFAULT_CATEGORY = "Other"

# Logging
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# Preprocessed snapshot cache
CACHE_TTL_SECONDS = 300

# Time windows (days before now)
LAST_30_DAYS = 30
LAST_14_DAYS = 14
LAST_7_DAYS = 7

# Trend detection
SIGNIFICANT_MOM_CHANGE = 25  # % month-over-month change to report
NEW_CATEGORY_MIN_AMOUNT = 100000  # minimum spend to report a new category
STABLE_THRESHOLD = 10  # % change considered stable

# Pattern detection
WEEKEND_WEEKDAY_DIFF = 30  # % difference in per-observation average
TOP_CATEGORY_CONCENTRATION = 40  # % of last-30-day spend
DAY_MULTIPLIER_THRESHOLD = 1.5  # max/min day-of-week average

# Alert detection
SPENDING_SPIKE_MULTIPLIER = 2.5  # x daily average
VELOCITY_CHANGE_THRESHOLD = 30  # % week-over-week
MIN_DAYS_FOR_SPIKE = 7

# Streaks
MIN_STREAK_DAYS = 7

# Unusual spending
UNUSUAL_SPENDING_MULTIPLIER = 2  # x average transaction
MAX_UNUSUAL_TRANSACTIONS = 3

# Recurring detection
MERCHANT_SIMILARITY = 0.8
MIN_TRANSACTIONS = 4
MIN_CONFIDENCE = 65
RECENT_INTERVAL_COUNT = 3
RECENT_INTERVAL_WEIGHT = 0.6
CONFIDENCE_TIE_MARGIN = 10
FREQUENCY_BUCKETS = [  # (max average interval in days, frequency)
    (9, "weekly"),
    (16, "biweekly"),
    (35, "monthly"),
]
GRACE_PERIOD_DAYS = {
    "weekly": 3,
    "biweekly": 5,
    "monthly": 7,
    "quarterly": 7,
}

# Budget predictions and alerts
BUDGET_WARNING_PERCENTAGE = 80
SPIKE_VS_LAST_MONTH_RATIO = 1.4
BUDGET_RECOMMENDATION_MIN_SPEND = 500000
SUGGESTED_BUDGET_MULTIPLIER = 1.2

# Budget recommendations
RECOMMENDATION_LOOKBACK_MONTHS = 3
RECOMMENDATION_BUFFERS = {
    "increasing": 1.25,
    "stable": 1.15,
    "decreasing": 1.10,
}
RECOMMENDATION_ROUNDING = 50000
SAVINGS_UNDERSPEND_RATIO = 0.7
BUDGET_ADJUSTMENT_RATIO = 0.9  # share of a budget that calls for adjustment

# Category-specific spending tips
CATEGORY_TIPS: Dict[str, str] = {
    "Food": "Try meal prepping to reduce dining out costs",
    "Transport": "Consider carpooling or public transit alternatives",
    "Shopping": "Create a wishlist and wait 48 hours before purchasing",
    "Entertainment": "Look for free events or use subscription services more",
    "Bills": "Review recurring subscriptions and cancel unused ones",
    "Health": "Check if your insurance covers more services",
    "Other": "Categorize expenses better to track spending patterns",
}
DEFAULT_CATEGORY_TIP = "Consider setting a budget for this category"

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
