from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response

from app.core import config
from app.schemas.analysis import AnalyzeRequest, CachedReportResponse
from app.utils.report_cache import ReportCache, is_recent
from forecast.analysis import FinanceAnalyzer
from forecast.errors import NoDataError
from forecast.regression import RegressionForecaster, TorchRegressionBackend
from forecast.report import AnalysisReport

logger = structlog.get_logger()

router = APIRouter()


def get_analyzer() -> FinanceAnalyzer:
    backend = TorchRegressionBackend(
        epochs=config.NN_EPOCHS, lr=config.NN_LEARNING_RATE, seed=config.NN_SEED
    )
    return FinanceAnalyzer(
        regression=RegressionForecaster(backend),
        alpha=config.SMOOTHING_ALPHA,
        currency=config.CURRENCY,
    )


@lru_cache
def get_report_cache() -> ReportCache:
    return ReportCache(config.REPORT_CACHE_PATH, max_age_hours=config.REPORT_MAX_AGE_HOURS)


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/analysis", response_model=AnalysisReport, response_model_exclude_none=True)
def analyze(
    req: AnalyzeRequest,
    analyzer: FinanceAnalyzer = Depends(get_analyzer),
    cache: ReportCache = Depends(get_report_cache),
):
    """
    Analyse the given transactions, store the report as the latest
    analysis and return it.
    """
    try:
        report = analyzer.analyze([t.model_dump() for t in req.transactions])
    except NoDataError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if not cache.set(config.REPORT_CACHE_KEY, report):
        logger.warning("Report not cached", key=config.REPORT_CACHE_KEY)
    return report


@router.get("/analysis", response_model=CachedReportResponse, response_model_exclude_none=True)
def latest_analysis(cache: ReportCache = Depends(get_report_cache)):
    report = cache.get(config.REPORT_CACHE_KEY)
    if report is None:
        raise HTTPException(status_code=404, detail="No analysis available yet.")
    return CachedReportResponse(
        recent=is_recent(report, max_age_hours=cache.max_age_hours),
        report=report,
    )


@router.delete("/analysis", status_code=204)
def clear_analysis(cache: ReportCache = Depends(get_report_cache)):
    if not cache.clear(config.REPORT_CACHE_KEY):
        raise HTTPException(status_code=500, detail="Failed to clear stored analysis.")
    return Response(status_code=204)
