"""CSV and Excel loader for transaction and budget files."""
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from spending_analytics.models import Budget, Transaction


logger = logging.getLogger(__name__)

# Common column name variations
DATE_COLUMNS = ["transaction_date", "date", "transaction date", "trans date", "posted date", "posting date"]
AMOUNT_COLUMNS = ["amount", "trans_amt", "transaction amount", "debit/credit", "value"]
MERCHANT_COLUMNS = ["merchant", "payee", "description", "payee_name", "vendor", "name"]
CATEGORY_COLUMNS = ["category", "category_name", "type"]
MONTH_COLUMNS = ["month", "period"]

HEADER_HINTS = ["date", "amount", "merchant", "payee", "description", "category"]


class CSVParser:
    """Load transaction and budget files with column auto-detection.

    Bank exports usually record expenses as negative amounts next to
    positive income. When a file has any negative amount, negative rows are
    kept as expenses (made positive) and positive rows are dropped. A file
    with no negative amounts is taken to be an expense log as-is.
    """

    def __init__(self, column_mapping: Optional[Dict[str, str]] = None):
        """Initialize parser with optional custom column mapping.

        Args:
            column_mapping: Custom mapping of {output_field: input_column}
        """
        self.column_mapping = column_mapping

    def parse(self, file_path: Path) -> List[Transaction]:
        """Parse a CSV or Excel file into transactions.

        Args:
            file_path: Path to the file

        Returns:
            Transactions sorted chronologically (stable for equal dates)
        """
        df = self._clean_dataframe(self._read_file(file_path))
        if df.empty:
            return []

        mapping = self._get_column_mapping(df, {
            "date": DATE_COLUMNS,
            "amount": AMOUNT_COLUMNS,
            "merchant": MERCHANT_COLUMNS,
            "category": CATEGORY_COLUMNS,
        })

        rows = [self._row_to_record(row, mapping) for _, row in df.iterrows()]
        rows = [r for r in rows if r is not None]

        has_negative = any(r["amount"] < 0 for r in rows)
        transactions = []
        for record in rows:
            amount = record["amount"]
            if has_negative:
                if amount >= 0:
                    continue
                amount = -amount
            try:
                transactions.append(Transaction(
                    amount=amount,
                    merchant=record["merchant"],
                    category=record["category"],
                    transaction_date=record["date"],
                ))
            except ValidationError as e:
                logger.debug(f"Skipping invalid row {record}: {e}")

        skipped = len(df) - len(transactions)
        logger.info(f"Parsed {len(transactions)} transactions from {file_path} ({skipped} rows skipped)")
        return sorted(transactions, key=lambda t: t.transaction_date)

    def parse_budgets(self, file_path: Path) -> List[Budget]:
        """Parse a budget file with category, amount and month columns."""
        df = self._clean_dataframe(self._read_file(file_path))
        if df.empty:
            return []

        mapping = self._get_column_mapping(df, {
            "category": CATEGORY_COLUMNS,
            "amount": AMOUNT_COLUMNS,
            "month": MONTH_COLUMNS,
        })

        budgets = []
        for _, row in df.iterrows():
            category = row.get(mapping.get("category", ""))
            amount = self._normalize_amount(row.get(mapping.get("amount", "")))
            month = row.get(mapping.get("month", ""))
            if pd.isna(category) or amount is None or pd.isna(month):
                continue
            if isinstance(month, pd.Timestamp):
                month = month.date()
            try:
                budgets.append(Budget(category=str(category).strip(), amount=amount, month=month))
            except ValidationError as e:
                logger.debug(f"Skipping invalid budget row: {e}")
        return budgets

    def _read_file(self, file_path: Path, nrows: Optional[int] = None) -> pd.DataFrame:
        """Read CSV or Excel file into DataFrame."""
        path = Path(file_path)

        if path.suffix.lower() in [".xlsx", ".xls"]:
            return pd.read_excel(path, nrows=nrows)
        return self._read_csv_with_header_detection(path, nrows)

    def _read_csv_with_header_detection(
        self,
        path: Path,
        nrows: Optional[int] = None
    ) -> pd.DataFrame:
        """Read CSV, skipping preamble lines above the real header row."""
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            lines = f.readlines()

        # pandas skips blank lines, so only non-blank lines count
        pandas_row = 0
        header_row = 0
        for line in lines[:20]:
            lower = line.lower().strip()
            if not lower:
                continue
            if "," in lower and any(col in lower for col in HEADER_HINTS):
                header_row = pandas_row
                break
            pandas_row += 1

        return pd.read_csv(path, header=header_row, nrows=nrows)

    def _clean_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalize headers and drop fully empty rows."""
        df.columns = [str(c).strip() for c in df.columns]
        return df.dropna(how="all")

    def _get_column_mapping(
        self,
        df: pd.DataFrame,
        candidates: Dict[str, List[str]]
    ) -> Dict[str, str]:
        """Match each output field to the first known column variation present."""
        if self.column_mapping:
            return self.column_mapping

        columns_lower = {str(c).lower(): c for c in df.columns}
        mapping: Dict[str, str] = {}
        for field, names in candidates.items():
            used = set(mapping.values())
            for name in names:
                if name in columns_lower and columns_lower[name] not in used:
                    mapping[field] = columns_lower[name]
                    break
        return mapping

    def _row_to_record(
        self,
        row: pd.Series,
        mapping: Dict[str, str]
    ) -> Optional[Dict[str, Any]]:
        """Convert a DataFrame row to a raw record, None if unusable."""
        date_val = row.get(mapping.get("date", ""))
        amount_val = row.get(mapping.get("amount", ""))
        merchant_val = row.get(mapping.get("merchant", ""))
        category_val = row.get(mapping.get("category", ""))

        if date_val is None or amount_val is None:
            return None
        if pd.isna(date_val) or pd.isna(amount_val):
            return None

        day = self._normalize_date(date_val)
        amount = self._normalize_amount(amount_val)
        if day is None or amount is None:
            return None

        merchant = "UNKNOWN"
        if merchant_val is not None and not pd.isna(merchant_val) and str(merchant_val).strip():
            merchant = str(merchant_val).strip()

        category = None
        if category_val is not None and not pd.isna(category_val):
            category = str(category_val).strip() or None

        return {"date": day, "amount": amount, "merchant": merchant, "category": category}

    def _normalize_date(self, date_val: Any) -> Optional[date]:
        """Normalize various date formats to a calendar date."""
        if isinstance(date_val, (datetime, pd.Timestamp)):
            return date_val.date()

        date_str = str(date_val).strip()
        formats = [
            "%Y-%m-%d",      # ISO
            "%m/%d/%Y",      # US
            "%m/%d/%y",      # US short year
            "%d-%b-%Y",      # 15-Jan-2024
            "%d/%m/%Y",      # European
            "%Y/%m/%d",      # Alternative ISO
        ]
        for fmt in formats:
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue

        try:
            return pd.to_datetime(date_str).date()
        except (ValueError, TypeError):
            return None

    def _normalize_amount(self, amount_val: Any) -> Optional[float]:
        """Normalize currency strings and accounting negatives to float."""
        if amount_val is None or pd.isna(amount_val):
            return None
        if isinstance(amount_val, (int, float)):
            return float(amount_val)

        amount_str = re.sub(r"[$,₫€£\s]", "", str(amount_val).strip())
        if amount_str.startswith("(") and amount_str.endswith(")"):
            amount_str = "-" + amount_str[1:-1]

        try:
            return float(amount_str)
        except ValueError:
            return None
