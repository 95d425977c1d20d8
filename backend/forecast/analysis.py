# backend/forecast/analysis.py
"""
Financial analysis pipeline.

transactions -> features -> statistics + regression + smoothing -> report

The regression model is tried first for the totals; if it is skipped or
fails, exponential smoothing takes over, and a flat historical average
covers the case where both come back all zeros.
"""

import threading
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from forecast.date_utils import upcoming_month_labels
from forecast.errors import AnalysisCancelled, ModelUnavailable, NoDataError
from forecast.features import FeatureSet, extract_features
from forecast.regression import MonthlyForecast, RegressionForecaster
from forecast.report import (
    AnalysisReport,
    CategoryInsight,
    Metadata,
    Predictions,
    Summary,
)
from forecast.smoothing import predict_with_smoothing
from forecast.statistics import (
    DECREASING,
    INCREASING,
    Statistics,
    category_trend,
    compute_statistics,
)

logger = structlog.get_logger()

PERIODS = 3

ForecastStrategy = Callable[[], Optional[List[float]]]


def first_non_degenerate(strategies: Sequence[ForecastStrategy], periods: int = PERIODS) -> List[float]:
    """Return the first strategy result containing a non-zero value,
    or zeros when none does."""
    for strategy in strategies:
        result = strategy()
        if result is not None and any(v != 0 for v in result):
            return list(result)
    return [0.0] * periods


def flat(value: float, periods: int = PERIODS) -> ForecastStrategy:
    return lambda: [value] * periods if value > 0 else None


def recommendation_for(category: str, trend: str, avg_cost: float, avg_revenue: float) -> str:
    if trend == INCREASING and avg_cost > 0:
        return f"{category} spending is increasing. Consider setting a budget limit."
    if trend == DECREASING and avg_cost > 0:
        return f"Good job! {category} spending is decreasing."
    if avg_cost > avg_revenue and avg_revenue > 0:
        return f"{category} costs exceed revenue. Review expenses."
    return f"{category} spending is stable."


class FinanceAnalyzer:
    def __init__(
        self,
        regression: Optional[RegressionForecaster] = None,
        alpha: float = 0.3,
        currency: str = "₼",
        use_regression: bool = True,
    ):
        self.regression = regression or RegressionForecaster()
        self.alpha = alpha
        self.currency = currency
        self.use_regression = use_regression

    # --------- Steps ----------
    def _regression_forecast(self, features: FeatureSet,
                             cancel_event: Optional[threading.Event]) -> Optional[List[MonthlyForecast]]:
        if not self.use_regression:
            return None
        try:
            return self.regression.forecast(features, cancel_event=cancel_event)
        except AnalysisCancelled:
            raise
        except ModelUnavailable as e:
            logger.info("Regression model unavailable, using statistical forecast", reason=str(e))
        except Exception as e:
            logger.warning("Regression prediction failed, using statistical fallback", error=repr(e))
        return None

    def _smooth(self, values: Sequence[float], fallback: float) -> List[float]:
        return predict_with_smoothing(values, PERIODS, self.alpha, fallback)

    def _category_predictions(self, features: FeatureSet, stats: Statistics):
        costs: Dict[str, List[float]] = {}
        revenue: Dict[str, List[float]] = {}
        for cat in features.categories:
            totals = stats.category_totals[cat]
            costs[cat] = self._smooth(features.category_series(cat, "cost"), totals.avg_cost)
            revenue_values = features.category_series(cat, "revenue")
            if any(v > 0 for v in revenue_values):
                revenue[cat] = self._smooth(revenue_values, totals.avg_revenue)
        return costs, revenue

    def _category_breakdown(self, features: FeatureSet, stats: Statistics) -> Dict[str, CategoryInsight]:
        breakdown = {}
        for cat in features.categories:
            totals = stats.category_totals[cat]
            trend = category_trend(features, cat)
            breakdown[cat] = CategoryInsight(
                current_average=totals.avg_cost or totals.avg_revenue,
                predicted_trend=trend,
                recommendation=recommendation_for(cat, trend, totals.avg_cost, totals.avg_revenue),
            )
        return breakdown

    def _insights(self, stats: Statistics) -> List[str]:
        insights = []
        if stats.trend == INCREASING:
            insights.append("Your overall spending has been increasing recently. Consider reviewing your expenses.")
        elif stats.trend == DECREASING:
            insights.append("Great job! Your spending has been decreasing. Keep up the good financial habits.")
        else:
            insights.append("Your spending patterns are relatively stable.")

        if stats.top_categories:
            insights.append(f"Your top spending categories are: {', '.join(stats.top_categories)}.")

        avg_net = stats.avg_monthly_revenue - stats.avg_monthly_cost
        if avg_net > 0:
            insights.append(
                f"You typically save about {avg_net:.0f} {self.currency} per month. Consider increasing savings."
            )
        elif avg_net < 0:
            insights.append(
                f"You typically spend {abs(avg_net):.0f} {self.currency} more than you earn. Review your budget."
            )

        if stats.num_months < 3:
            insights.append(
                f"Note: Analysis based on {stats.num_months} month(s) of data. "
                "Predictions improve with more history."
            )
        return insights

    # ---------- Main analysis ----------
    def analyze(
        self,
        transactions: Iterable[Mapping[str, Any]],
        now: Optional[datetime] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisReport:
        transactions = list(transactions or [])
        if not transactions:
            raise NoDataError("No transactions available for analysis. Please add some transactions first.")

        now = now or datetime.now().astimezone()
        logger.info("Starting analysis", transactions=len(transactions))

        features = extract_features(transactions)
        if not features.monthly:
            raise NoDataError("No valid transaction data found. Please add some transactions first.")

        stats = compute_statistics(features)
        ml_predictions = self._regression_forecast(features, cancel_event)
        category_costs, category_revenue = self._category_predictions(features, stats)

        use_ml = ml_predictions is not None and any(
            p.cost > 0 or p.revenue > 0 for p in ml_predictions
        )
        if use_ml:
            cost_primary = lambda: [p.cost for p in ml_predictions]
            revenue_primary = lambda: [p.revenue for p in ml_predictions]
        else:
            cost_primary = lambda: self._smooth(features.cost_series(), stats.avg_monthly_cost)
            revenue_primary = lambda: self._smooth(features.revenue_series(), stats.avg_monthly_revenue)

        total_cost = first_non_degenerate([cost_primary, flat(stats.avg_monthly_cost)])
        total_revenue = first_non_degenerate([revenue_primary, flat(stats.avg_monthly_revenue)])
        net_balance = [rev - cost for rev, cost in zip(total_revenue, total_cost)]

        report = AnalysisReport(
            summary=Summary(
                top_spending_categories=stats.top_categories,
                average_monthly_spending=stats.avg_monthly_cost,
                average_monthly_revenue=stats.avg_monthly_revenue,
                spending_trend=stats.trend,
                total_historical_cost=stats.total_cost,
                total_historical_revenue=stats.total_revenue,
            ),
            predictions=Predictions(
                months=upcoming_month_labels(now, PERIODS),
                costs=category_costs,
                revenue=category_revenue or None,
                total_cost=total_cost,
                total_revenue=total_revenue,
                net_balance=net_balance,
            ),
            insights=self._insights(stats),
            category_breakdown=self._category_breakdown(features, stats),
            metadata=Metadata(
                analyzed_at=now,
                transaction_count=len(transactions),
                months_analyzed=stats.num_months,
                model_type="neural-network" if use_ml else "statistical",
            ),
        )
        logger.info(
            "Analysis complete",
            months=stats.num_months,
            model_type=report.metadata.model_type,
            total_cost=total_cost,
        )
        return report


def analyze_finances(transactions: Iterable[Mapping[str, Any]], **kwargs) -> AnalysisReport:
    return FinanceAnalyzer().analyze(transactions, **kwargs)
