# backend/forecast/regression.py
"""
Feed-forward regression forecaster for monthly (cost, revenue).

Training examples are sliding windows over the monthly aggregate (see
forecast.dataset). The numeric backend is pluggable: anything with
`fit(X, y, cancel_event=None) -> model` and `predict(model, window) ->
(cost, revenue)` works. The default backend uses PyTorch.
"""

import math
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Tuple

import numpy as np
import structlog
import torch
import torch.nn as nn
from torch.utils.data import DataLoader

from forecast.dataset import SCALE, WindowDataset, build_windows, last_window
from forecast.errors import AnalysisCancelled, ModelUnavailable
from forecast.features import FeatureSet
from forecast.model import FeedForwardRegressor

logger = structlog.get_logger()

MIN_MONTHS = 3
MIN_EXAMPLES = 2
MAX_WINDOW = 3
HORIZON = 3

_INIT_LOCK = threading.Lock()


@dataclass
class MonthlyForecast:
    cost: float
    revenue: float


class RegressionBackend(Protocol):
    def fit(self, X: np.ndarray, y: np.ndarray,
            cancel_event: Optional[threading.Event] = None) -> Any: ...

    def predict(self, model: Any, window: np.ndarray) -> Tuple[float, float]: ...


class TorchRegressionBackend:
    def __init__(self, hidden_dims=(16, 8), epochs=100, lr=0.01, batch_size=32, seed=42):
        self.hidden_dims = tuple(hidden_dims)
        self.epochs = epochs
        self.lr = lr
        self.batch_size = batch_size
        self.seed = seed

    def fit(self, X, y, cancel_event=None):
        dataset = WindowDataset(X, y)

        # torch's default CPU generator is process-wide; only weight init
        # touches it, and only while holding the lock
        with _INIT_LOCK, torch.random.fork_rng(devices=[]):
            torch.manual_seed(self.seed)
            model = FeedForwardRegressor(input_dim=X.shape[1], hidden_dims=self.hidden_dims)

        generator = torch.Generator().manual_seed(self.seed)
        loader = DataLoader(dataset, batch_size=self.batch_size, shuffle=True, generator=generator)
        loss_fn = nn.MSELoss()
        optimizer = torch.optim.Adam(model.parameters(), lr=self.lr)

        model.train()
        total_loss = 0.0
        for epoch in range(self.epochs):
            if cancel_event is not None and cancel_event.is_set():
                raise AnalysisCancelled(f"Training cancelled at epoch {epoch}")

            total_loss = 0.0
            for xb, yb in loader:
                optimizer.zero_grad()
                loss = loss_fn(model(xb), yb)
                loss.backward()
                optimizer.step()
                total_loss += loss.item()

            if not math.isfinite(total_loss):
                raise ModelUnavailable(f"Training diverged at epoch {epoch + 1}")

        model.eval()
        logger.debug("Regressor trained", samples=len(dataset), epochs=self.epochs,
                     final_loss=total_loss / max(len(loader), 1))
        return model

    def predict(self, model, window):
        with torch.inference_mode():
            X = torch.as_tensor(window, dtype=torch.float32).unsqueeze(0)
            out = model(X).squeeze(0)
            cost, revenue = float(out[0]), float(out[1])
        return cost, revenue


class FittedRegressor:
    """A trained model plus its window size. Use as a context manager to
    release the model when done."""

    def __init__(self, backend: RegressionBackend, model: Any, window_size: int):
        self.backend = backend
        self.model = model
        self.window_size = window_size

    def predict_step(self, window: np.ndarray) -> Tuple[float, float]:
        if self.model is None:
            raise ModelUnavailable("Model already released")
        return self.backend.predict(self.model, window)

    def release(self):
        self.model = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


class RegressionForecaster:
    def __init__(self, backend: Optional[RegressionBackend] = None, horizon: int = HORIZON):
        self.backend = backend or TorchRegressionBackend()
        self.horizon = horizon

    def train(self, features: FeatureSet,
              cancel_event: Optional[threading.Event] = None) -> Optional[FittedRegressor]:
        n_months = len(features.monthly)
        if n_months < MIN_MONTHS:
            logger.info("Not enough months for regression model", months=n_months)
            return None

        window_size = min(MAX_WINDOW, n_months - 1)
        X, y = build_windows(features, window_size)
        if len(X) < MIN_EXAMPLES:
            logger.info("Not enough training samples", samples=len(X))
            return None

        logger.info("Training regression model", samples=len(X), window=window_size)
        model = self.backend.fit(X, y, cancel_event=cancel_event)
        return FittedRegressor(self.backend, model, window_size)

    def predict_forward(self, fitted: Optional[FittedRegressor],
                        features: FeatureSet) -> Optional[List[MonthlyForecast]]:
        """Roll the last window forward `horizon` months, feeding each
        prediction back in as the newest month."""
        if fitted is None or len(features.monthly) < fitted.window_size:
            return None

        window = last_window(features, fitted.window_size)
        predictions = []
        for _ in range(self.horizon):
            cost, revenue = fitted.predict_step(window)
            cost = max(0.0, cost * SCALE)
            revenue = max(0.0, revenue * SCALE)
            predictions.append(MonthlyForecast(cost=cost, revenue=revenue))

            window = np.concatenate(
                [window[2:], np.array([cost / SCALE, revenue / SCALE], dtype=np.float32)]
            )

        logger.debug("Regression predictions", predictions=predictions)
        return predictions

    def forecast(self, features: FeatureSet,
                 cancel_event: Optional[threading.Event] = None) -> List[MonthlyForecast]:
        """
        Train then predict. Raises ModelUnavailable when history is too
        short or the backend fails; AnalysisCancelled passes through.
        """
        try:
            fitted = self.train(features, cancel_event=cancel_event)
            if fitted is None:
                raise ModelUnavailable("Insufficient history for regression")
            with fitted:
                predictions = self.predict_forward(fitted, features)
        except (RuntimeError, ValueError, ArithmeticError) as e:
            raise ModelUnavailable(str(e)) from e

        if predictions is None:
            raise ModelUnavailable("Regression produced no predictions")
        return predictions
