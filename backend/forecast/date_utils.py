from datetime import datetime
from typing import List

MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def add_months(year: int, month: int, n: int):
    """
    Add n months to given (year, month)
    Returns new (year, month)
    """
    new_month = month + n
    new_year = year + (new_month - 1) // 12
    new_month = ((new_month - 1) % 12) + 1
    return new_year, new_month


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def upcoming_month_labels(now: datetime, periods: int = 3) -> List[str]:
    """Labels like "Nov 2026" for the `periods` months following `now`."""
    labels = []
    for i in range(1, periods + 1):
        year, month = add_months(now.year, now.month, i)
        labels.append(f"{MONTH_ABBR[month - 1]} {year}")
    return labels
