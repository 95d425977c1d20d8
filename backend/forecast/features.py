# backend/forecast/features.py
"""
Turn a flat list of transactions into per-month, per-category aggregates.

A transaction is any mapping with:
  - "date": ISO string, datetime/date, or epoch milliseconds
  - "type": "cost" (anything else counts as revenue)
  - "category": optional, defaults to "Other"
  - "amount": coerced to a non-negative float, 0 when missing or non-numeric
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd
import structlog

from forecast.date_utils import month_key
from forecast.errors import MalformedTransaction

logger = structlog.get_logger()

DEFAULT_CATEGORY = "Other"


@dataclass
class CategoryAmounts:
    cost: float = 0.0
    revenue: float = 0.0


@dataclass
class MonthBucket:
    cost: float = 0.0
    revenue: float = 0.0
    categories: Dict[str, CategoryAmounts] = field(default_factory=dict)


@dataclass
class FeatureSet:
    """Monthly aggregate plus the categories seen, in first-seen order."""

    monthly: Dict[str, MonthBucket]
    categories: List[str]

    @property
    def months(self) -> List[str]:
        # YYYY-MM sorts chronologically
        return sorted(self.monthly)

    def cost_series(self) -> List[float]:
        return [self.monthly[m].cost for m in self.months]

    def revenue_series(self) -> List[float]:
        return [self.monthly[m].revenue for m in self.months]

    def category_series(self, category: str, kind: str = "cost") -> List[float]:
        values = []
        for m in self.months:
            amounts = self.monthly[m].categories.get(category)
            values.append(getattr(amounts, kind) if amounts is not None else 0.0)
        return values


def parse_transaction_date(value: Any) -> datetime:
    """Parse a transaction date into a naive local datetime."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedTransaction(f"missing date: {value!r}")

    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            ts = pd.to_datetime(value, unit="ms", utc=True, errors="coerce")
        elif isinstance(value, (datetime, date, str)):
            ts = pd.to_datetime(value, errors="coerce")
        else:
            raise MalformedTransaction(f"unsupported date type: {type(value).__name__}")
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedTransaction(f"invalid date: {value!r}") from e

    if pd.isna(ts):
        raise MalformedTransaction(f"invalid date: {value!r}")

    dt = ts.to_pydatetime()
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def coerce_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return abs(amount)


def extract_features(transactions: Iterable[Mapping[str, Any]]) -> FeatureSet:
    """
    Group transactions by month and category.

    Returns a fresh FeatureSet; the input records are not modified.
    Records with unparseable dates are skipped with a warning.
    """
    monthly: Dict[str, MonthBucket] = {}
    categories: Dict[str, None] = {}
    skipped = 0
    total = 0

    for tx in transactions:
        total += 1
        try:
            dt = parse_transaction_date(tx.get("date"))
        except MalformedTransaction as e:
            skipped += 1
            logger.warning("Skipping transaction", reason=str(e))
            continue

        key = month_key(dt.year, dt.month)
        category = str(tx.get("category") or DEFAULT_CATEGORY)
        amount = coerce_amount(tx.get("amount"))

        categories.setdefault(category, None)
        bucket = monthly.setdefault(key, MonthBucket())
        cat_bucket = bucket.categories.setdefault(category, CategoryAmounts())

        if tx.get("type") == "cost":
            bucket.cost += amount
            cat_bucket.cost += amount
        else:
            bucket.revenue += amount
            cat_bucket.revenue += amount

    logger.debug(
        "Features extracted",
        transactions=total,
        skipped=skipped,
        months=len(monthly),
        categories=list(categories),
    )
    return FeatureSet(monthly=monthly, categories=list(categories))
