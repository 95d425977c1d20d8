class ForecastError(Exception):
    """Base class for forecasting errors."""


class NoDataError(ForecastError):
    """Raised when there is nothing to analyse."""


class ModelUnavailable(ForecastError):
    """Regression model was skipped or failed; callers fall back to smoothing."""


class MalformedTransaction(ForecastError):
    """A single transaction could not be used (e.g. unparseable date)."""


class AnalysisCancelled(ForecastError):
    """The caller cancelled an in-flight analysis."""
