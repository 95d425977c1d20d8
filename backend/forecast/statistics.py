# backend/forecast/statistics.py
import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import structlog

from forecast.features import FeatureSet

logger = structlog.get_logger()

INCREASING = "increasing"
DECREASING = "decreasing"
STABLE = "stable"


@dataclass
class CategoryTotals:
    cost: float = 0.0
    revenue: float = 0.0
    count: int = 0  # months in which the category appears

    @property
    def avg_cost(self) -> float:
        return self.cost / (self.count or 1)

    @property
    def avg_revenue(self) -> float:
        return self.revenue / (self.count or 1)


@dataclass
class Statistics:
    total_cost: float
    total_revenue: float
    avg_monthly_cost: float
    avg_monthly_revenue: float
    trend: str
    top_categories: List[str]
    category_totals: Dict[str, CategoryTotals] = field(default_factory=dict)
    months: List[str] = field(default_factory=list)
    num_months: int = 1


def classify_trend(values: Sequence[float], tolerance: float = 0.1) -> str:
    """
    Compare the two halves of the last (up to) three values.

    The first half takes ceil(n/2) values. A second-half mean more than
    `tolerance` above the first is "increasing", more than `tolerance`
    below is "decreasing".
    """
    recent = list(values)[-3:]
    if len(recent) < 2:
        return STABLE

    split = math.ceil(len(recent) / 2)
    first, second = recent[:split], recent[split:]
    first_avg = sum(first) / len(first)
    second_avg = sum(second) / len(second)

    if second_avg > first_avg * (1 + tolerance):
        return INCREASING
    if second_avg < first_avg * (1 - tolerance):
        return DECREASING
    return STABLE


def category_trend(features: FeatureSet, category: str) -> str:
    return classify_trend(features.category_series(category, "cost"))


def compute_statistics(features: FeatureSet) -> Statistics:
    months = features.months
    category_totals = {cat: CategoryTotals() for cat in features.categories}

    total_cost = 0.0
    total_revenue = 0.0
    for m in months:
        bucket = features.monthly[m]
        total_cost += bucket.cost
        total_revenue += bucket.revenue
        for cat, amounts in bucket.categories.items():
            totals = category_totals.setdefault(cat, CategoryTotals())
            totals.cost += amounts.cost
            totals.revenue += amounts.revenue
            totals.count += 1

    num_months = max(1, len(months))

    # sorted() is stable, so equal totals keep first-seen order
    ranked = sorted(
        ((cat, t) for cat, t in category_totals.items() if t.cost > 0),
        key=lambda item: item[1].cost,
        reverse=True,
    )
    top_categories = [cat for cat, _ in ranked[:3]]

    stats = Statistics(
        total_cost=total_cost,
        total_revenue=total_revenue,
        avg_monthly_cost=total_cost / num_months,
        avg_monthly_revenue=total_revenue / num_months,
        trend=classify_trend(features.cost_series()),
        top_categories=top_categories,
        category_totals=category_totals,
        months=months,
        num_months=num_months,
    )
    logger.debug(
        "Statistics calculated",
        total_cost=stats.total_cost,
        total_revenue=stats.total_revenue,
        num_months=num_months,
        trend=stats.trend,
    )
    return stats
