import copy
import threading
from datetime import datetime

import pytest

from forecast.analysis import FinanceAnalyzer, first_non_degenerate, recommendation_for
from forecast.errors import AnalysisCancelled, ModelUnavailable, NoDataError
from forecast.regression import MonthlyForecast, RegressionForecaster, TorchRegressionBackend

NOW = datetime(2026, 11, 5, 9, 30)


class StubRegression:
    def __init__(self, predictions=None, error=None):
        self.predictions = predictions
        self.error = error

    def forecast(self, features, cancel_event=None):
        if self.error is not None:
            raise self.error
        return self.predictions


def statistical_analyzer():
    return FinanceAnalyzer(use_regression=False)


def test_empty_transactions_raise_no_data():
    with pytest.raises(NoDataError):
        statistical_analyzer().analyze([])


def test_all_unparseable_dates_raise_no_data():
    txs = [{"date": "someday", "type": "cost", "amount": 10}] * 3
    with pytest.raises(NoDataError):
        statistical_analyzer().analyze(txs)


def test_transaction_count_matches_input(make_transactions):
    txs = make_transactions(costs={"Markets": [100, 120]}) + [
        {"date": "bad", "type": "cost", "amount": 5},
    ]
    report = statistical_analyzer().analyze(txs, now=NOW)
    assert report.metadata.transaction_count == len(txs)
    assert report.metadata.months_analyzed == 2


def test_markets_category_forecast(make_transactions):
    txs = make_transactions(costs={"Markets": [100, 120, 110, 130]})
    report = FinanceAnalyzer(
        regression=RegressionForecaster(TorchRegressionBackend(epochs=10))
    ).analyze(txs, now=NOW)

    markets = report.predictions.costs["Markets"]
    assert len(markets) == 3
    assert all(0 < v < 300 for v in markets)
    assert report.predictions.revenue is None
    # 4 months give a single training window, so smoothing is used
    assert report.metadata.model_type == "statistical"


def test_regression_output_used_when_positive(make_transactions):
    ml = [MonthlyForecast(cost=150, revenue=900)] * 3
    analyzer = FinanceAnalyzer(regression=StubRegression(ml))
    txs = make_transactions(
        costs={"Markets": [100, 120, 110, 130, 140]},
        revenues={"Salary": [1000] * 5},
    )
    report = analyzer.analyze(txs, now=NOW)

    assert report.metadata.model_type == "neural-network"
    assert report.predictions.total_cost == [150, 150, 150]
    assert report.predictions.total_revenue == [900, 900, 900]
    assert report.predictions.net_balance == [750, 750, 750]


def test_zero_cost_prediction_replaced_by_average(make_transactions):
    ml = [MonthlyForecast(cost=0, revenue=500)] * 3
    analyzer = FinanceAnalyzer(regression=StubRegression(ml))
    txs = make_transactions(
        costs={"Markets": [100, 200, 300, 400, 500]},
        revenues={"Salary": [1000] * 5},
    )
    report = analyzer.analyze(txs, now=NOW)

    assert report.predictions.total_cost == [300, 300, 300]
    assert report.predictions.total_revenue == [500, 500, 500]


def test_all_zero_regression_falls_back_to_smoothing(make_transactions):
    ml = [MonthlyForecast(cost=0, revenue=0)] * 3
    report = FinanceAnalyzer(regression=StubRegression(ml)).analyze(
        make_transactions(costs={"Markets": [100, 200]}), now=NOW
    )
    assert report.metadata.model_type == "statistical"
    assert report.predictions.total_cost == pytest.approx([160, 190, 220])


@pytest.mark.parametrize("error", [ModelUnavailable("short history"), RuntimeError("nan")])
def test_regression_failure_degrades_to_statistical(make_transactions, error):
    analyzer = FinanceAnalyzer(regression=StubRegression(error=error))
    report = analyzer.analyze(make_transactions(costs={"Markets": [100, 200]}), now=NOW)

    assert report.metadata.model_type == "statistical"
    assert all(v > 0 for v in report.predictions.total_cost)


def test_cancellation_propagates(make_transactions):
    cancel = threading.Event()
    cancel.set()
    analyzer = FinanceAnalyzer(regression=RegressionForecaster(TorchRegressionBackend()))
    txs = make_transactions(costs={"Markets": [100, 120, 110, 130, 140, 150]})

    with pytest.raises(AnalysisCancelled):
        analyzer.analyze(txs, now=NOW, cancel_event=cancel)


def test_month_labels_follow_now(make_transactions):
    report = statistical_analyzer().analyze(make_transactions(costs={"Markets": [10]}), now=NOW)
    assert report.predictions.months == ["Dec 2026", "Jan 2027", "Feb 2027"]
    assert report.metadata.analyzed_at == NOW


def test_insights_order(make_transactions):
    txs = make_transactions(
        costs={"Markets": [100, 100, 100, 200, 220], "Fuel": [50] * 5},
        revenues={"Salary": [1000] * 5},
    )
    insights = statistical_analyzer().analyze(txs, now=NOW).insights

    assert insights[0].startswith("Your overall spending has been increasing")
    assert insights[1] == "Your top spending categories are: Markets, Fuel."
    assert insights[2] == "You typically save about 806 ₼ per month. Consider increasing savings."
    assert len(insights) == 3


def test_insights_overspend_and_short_history(make_transactions):
    txs = make_transactions(costs={"Rent": [900]}, revenues={"Salary": [600]})
    insights = FinanceAnalyzer(use_regression=False, currency="$").analyze(txs, now=NOW).insights

    assert insights[0] == "Your spending patterns are relatively stable."
    assert insights[2] == "You typically spend 300 $ more than you earn. Review your budget."
    assert insights[3].startswith("Note: Analysis based on 1 month(s) of data.")


def test_category_breakdown(make_transactions):
    txs = make_transactions(
        costs={"Markets": [100, 100, 100, 200, 220], "Fuel": [90, 80, 40, 40, 10]},
        revenues={"Salary": [1000] * 5},
    )
    breakdown = statistical_analyzer().analyze(txs, now=NOW).category_breakdown

    assert breakdown["Markets"].predicted_trend == "increasing"
    assert "Consider setting a budget limit" in breakdown["Markets"].recommendation
    assert breakdown["Fuel"].recommendation == "Good job! Fuel spending is decreasing."
    assert breakdown["Salary"].current_average == 1000
    assert breakdown["Salary"].recommendation == "Salary spending is stable."


def test_recommendation_precedence():
    assert recommendation_for("Cafe", "stable", 200, 100) == "Cafe costs exceed revenue. Review expenses."
    assert recommendation_for("Cafe", "stable", 200, 0) == "Cafe spending is stable."
    assert recommendation_for("Cafe", "increasing", 0, 50) == "Cafe spending is stable."


def test_first_non_degenerate_order():
    calls = []

    def strategy(result):
        def run():
            calls.append(result)
            return result
        return run

    assert first_non_degenerate([strategy(None), strategy([0, 0, 0]), strategy([1, 2, 3]),
                                 strategy([9, 9, 9])]) == [1, 2, 3]
    assert calls == [None, [0, 0, 0], [1, 2, 3]]
    assert first_non_degenerate([strategy([0, 0, 0])]) == [0.0, 0.0, 0.0]


def test_report_json_uses_camel_case(make_transactions):
    report = statistical_analyzer().analyze(make_transactions(costs={"Markets": [100, 120]}), now=NOW)
    data = report.to_json_dict()

    assert set(data) == {"summary", "predictions", "insights", "categoryBreakdown", "metadata"}
    assert data["metadata"]["modelType"] == "statistical"
    assert "analyzedAt" in data["metadata"]
    assert "totalCost" in data["predictions"]
    assert "revenue" not in data["predictions"]
    assert data["summary"]["topSpendingCategories"] == ["Markets"]


def test_input_not_mutated_and_fresh_reports(make_transactions):
    txs = make_transactions(costs={"Markets": [100, 120, 130]})
    snapshot = copy.deepcopy(txs)
    analyzer = statistical_analyzer()

    first = analyzer.analyze(txs, now=NOW)
    second = analyzer.analyze(txs, now=NOW)

    assert txs == snapshot
    assert first == second
    assert first is not second
