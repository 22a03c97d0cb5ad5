"""Shared helpers for composite 0-100 scores.

Composite scores are built from weighted components. A component whose input is
missing is excluded and the remaining weights are scaled up proportionally so
they still sum to one.
"""

import math
from typing import Dict, Iterable, Mapping, Optional


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive scores."""
    return int(math.floor(value + 0.5))


def interpolate(x: float, x0: float, x1: float, y0: float, y1: float) -> float:
    """Linear interpolation of ``x`` from [x0, x1] onto [y0, y1]."""
    if x1 == x0:
        return y0
    return y0 + (x - x0) * (y1 - y0) / (x1 - x0)


def rebalance_weights(weights: Mapping[str, float], available: Iterable[str]) -> Dict[str, float]:
    """Redistribute base weights across the available components.

    Args:
        weights: Base weight per component name
        available: Names of components whose inputs are present

    Returns:
        Weights for the available components, summing to 1.0. Empty when
        nothing is available.
    """
    present = [name for name in available if name in weights and weights[name] > 0]
    total = sum(weights[name] for name in present)
    if total <= 0:
        return {}
    return {name: weights[name] / total for name in present}


def weighted_composite(
    components: Mapping[str, Optional[float]],
    weights: Mapping[str, float],
) -> Optional[float]:
    """Combine component scores, excluding the ones that are ``None``.

    Returns ``None`` when no component is available.
    """
    available = [name for name, value in components.items() if value is not None]
    effective = rebalance_weights(weights, available)
    if not effective:
        return None
    return sum(components[name] * weight for name, weight in effective.items())
