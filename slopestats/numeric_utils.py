from __future__ import annotations

import math
from typing import Any


def as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    # nan and inf cannot be written as standard JSON
    if not math.isfinite(parsed):
        return None
    return parsed


def as_int(value: Any) -> int | None:
    parsed = as_float(value)
    if parsed is None:
        return None
    return int(round(parsed))


def safe_div(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def meters_to_km(value: Any, *, digits: int = 2) -> float:
    meters = as_float(value) or 0.0
    return round(meters / 1000.0, digits)


def seconds_to_hours(value: Any, *, digits: int = 1) -> float:
    seconds = as_float(value) or 0.0
    return round(seconds / 3600.0, digits)


def mps_to_kmh(value: Any, *, digits: int = 1) -> float:
    speed_mps = as_float(value) or 0.0
    return round(speed_mps * 3.6, digits)
