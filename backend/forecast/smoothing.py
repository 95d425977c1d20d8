# backend/forecast/smoothing.py
from typing import List, Sequence


def predict_with_smoothing(
    values: Sequence[float],
    periods: int = 3,
    alpha: float = 0.3,
    fallback_average: float = 0.0,
) -> List[float]:
    """
    Exponential smoothing with a damped linear trend.

    - no positive values   -> `periods` copies of fallback_average (or zeros)
    - one positive value   -> `periods` copies of it
    - otherwise smooth from the first raw value, replace a forecast that
      collapsed below 10% of the positive mean with that mean, and add the
      mean step of the last 6 values, clamped to +/-20% of the mean.
    """
    values = [float(v) for v in values]
    positive = [v for v in values if v > 0]

    if not positive:
        fill = fallback_average if fallback_average and fallback_average > 0 else 0.0
        return [float(fill)] * periods

    if len(positive) == 1:
        return [positive[0]] * periods

    # seeded from the first observation, not the mean
    forecast = values[0]
    for v in values[1:]:
        forecast = alpha * v + (1 - alpha) * forecast

    avg = sum(positive) / len(positive)
    if forecast < avg * 0.1:
        forecast = avg

    recent = values[-min(6, len(values)):]
    trend = 0.0
    if len(recent) >= 2:
        changes = [b - a for a, b in zip(recent, recent[1:])]
        trend = sum(changes) / len(changes)
        max_change = avg * 0.2
        trend = max(-max_change, min(max_change, trend))

    return [max(0.0, forecast + trend * (i + 1)) for i in range(periods)]
