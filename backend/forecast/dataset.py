# backend/forecast/dataset.py
from typing import Tuple

import numpy as np
import torch
from torch.utils.data import Dataset

from forecast.features import FeatureSet

SCALE = 1000.0


def month_vector(features: FeatureSet, month: str) -> list:
    bucket = features.monthly[month]
    return [bucket.cost / SCALE, bucket.revenue / SCALE]


def last_window(features: FeatureSet, window_size: int) -> np.ndarray:
    """Flattened (cost, revenue) pairs of the most recent `window_size` months."""
    months = features.months[-window_size:]
    return np.array(
        [v for m in months for v in month_vector(features, m)], dtype=np.float32
    )


def build_windows(features: FeatureSet, window_size: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Slide a window over the sorted months.

    returns:
      X: (N, window_size * 2) scaled (cost, revenue) pairs
      y: (N, 2) scaled (cost, revenue) of the month after each window
    """
    months = features.months
    xs, ys = [], []
    for i in range(window_size, len(months)):
        window = []
        for m in months[i - window_size:i]:
            window.extend(month_vector(features, m))
        xs.append(window)
        ys.append(month_vector(features, months[i]))

    X = np.array(xs, dtype=np.float32).reshape(len(xs), window_size * 2)
    y = np.array(ys, dtype=np.float32).reshape(len(ys), 2)
    return X, y


class WindowDataset(Dataset):
    def __init__(self, X: np.ndarray, y: np.ndarray):
        """
        X: numpy array (N, F) flattened windows
        y: numpy array (N, 2) next-month (cost, revenue)
        """
        if len(X) != len(y):
            raise ValueError(f"Inputs and targets differ in length: {len(X)} != {len(y)}")
        self.X = torch.tensor(X, dtype=torch.float32)
        self.y = torch.tensor(y, dtype=torch.float32)

    def __len__(self):
        return len(self.X)

    def __getitem__(self, i):
        return self.X[i], self.y[i]
