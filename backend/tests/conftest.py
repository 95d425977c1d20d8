"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.routes import get_analyzer, get_report_cache
from app.main import app
from app.utils.report_cache import ReportCache
from forecast.analysis import FinanceAnalyzer
from forecast.date_utils import add_months
from forecast.regression import RegressionForecaster, TorchRegressionBackend


def monthly_transactions(costs=None, revenues=None, start=(2026, 1)):
    """
    Build one transaction per (category, month) from series like
    {"Markets": [100, 120]}. Zero amounts are left out.
    """
    txs = []
    for tx_type, series in (("cost", costs or {}), ("revenue", revenues or {})):
        for category, amounts in series.items():
            for i, amount in enumerate(amounts):
                if not amount:
                    continue
                year, month = add_months(start[0], start[1], i)
                txs.append({
                    "date": f"{year:04d}-{month:02d}-15T12:00:00",
                    "type": tx_type,
                    "category": category,
                    "amount": amount,
                })
    return txs


@pytest.fixture
def make_transactions():
    return monthly_transactions


@pytest.fixture
def report_cache():
    return ReportCache()


@pytest.fixture
async def client(report_cache):
    """Async test client for the FastAPI app."""
    app.dependency_overrides[get_report_cache] = lambda: report_cache
    app.dependency_overrides[get_analyzer] = lambda: FinanceAnalyzer(
        regression=RegressionForecaster(TorchRegressionBackend(epochs=5))
    )
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
