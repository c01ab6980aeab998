from __future__ import annotations

from typing import Any, Iterable

from .numeric_utils import as_float


def vertical_drop(samples: Iterable[Any] | None) -> float:
    """Total descent in the units of ``samples`` (meters for Strava altitude).

    Sums every downward step between consecutive samples. Missing or
    single-sample traces yield 0.0; gaps (non-numeric samples) are skipped.
    """
    if samples is None:
        return 0.0

    descent = 0.0
    previous: float | None = None
    for raw in samples:
        current = as_float(raw)
        if current is None:
            continue
        if previous is not None and current < previous:
            descent += previous - current
        previous = current
    return descent
