"""
Correlation Analysis for Recovery-Performance Relationships

This module implements:
1. Pearson correlation with R², significance class and OLS trend line
2. Time-lagged correlation scan for leading indicators
3. Insight text for correlation results
4. Pairing of daily recovery with the average power of that day's workouts
"""

import numpy as np
from scipy import stats
from datetime import date
from typing import Dict, Iterable, Optional, Sequence
from dataclasses import dataclass
from enum import Enum
import logging

from ..exceptions import InsufficientDataError
from .records import DailyScore, WorkoutRecord

logger = logging.getLogger(__name__)


class Significance(Enum):
    """Strength of a correlation by |r|."""
    STRONG = "strong"      # |r| >= 0.7
    MODERATE = "moderate"  # |r| >= 0.4
    WEAK = "weak"          # |r| >= 0.2
    NONE = "none"


class Trend(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class TrendLine:
    """Ordinary least-squares fit y = slope * x + intercept."""
    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class CorrelationResult:
    """Correlation between two paired series."""
    coefficient: float
    r_squared: float
    sample_size: int
    significance: Significance
    trend: Trend
    trend_line: Optional[TrendLine] = None
    p_value: Optional[float] = None
    lag_days: int = 0

    @property
    def is_significant(self) -> bool:
        return self.p_value is not None and self.p_value < 0.05


@dataclass(frozen=True)
class LeadingIndicator:
    """A series whose earlier values track later values of another."""
    optimal_lag_days: int
    result: CorrelationResult

    @property
    def predictive_power(self) -> str:
        return self.result.significance.value


def classify_significance(r: float) -> Significance:
    abs_r = abs(r)
    if abs_r >= 0.7:
        return Significance.STRONG
    elif abs_r >= 0.4:
        return Significance.MODERATE
    elif abs_r >= 0.2:
        return Significance.WEAK
    return Significance.NONE


class CorrelationAnalyzer:
    """Pearson correlation between paired numeric series."""

    def analyze(self, xs: Sequence[float], ys: Sequence[float]) -> CorrelationResult:
        """
        Correlate two paired series.

        Args:
            xs: First variable values
            ys: Second variable values, paired by position with ``xs``

        Returns:
            CorrelationResult with coefficient, R², significance and trend line

        Pairs where either value is missing (None or NaN) are dropped first.

        Raises:
            ValueError: If the series differ in length
            InsufficientDataError: If fewer than two complete pairs remain
        """
        if len(xs) != len(ys):
            raise ValueError(f"Paired series must have equal length ({len(xs)} != {len(ys)})")

        x = np.asarray([np.nan if v is None else v for v in xs], dtype=float)
        y = np.asarray([np.nan if v is None else v for v in ys], dtype=float)
        complete = np.isfinite(x) & np.isfinite(y)
        if not complete.all():
            logger.debug(f"Dropping {int((~complete).sum())} incomplete pair(s) before correlating")
            x, y = x[complete], y[complete]

        n = len(x)
        if n < 2:
            raise InsufficientDataError(f"Correlation needs at least 2 complete pairs, got {n}")

        dev_x = x - x.mean()
        dev_y = y - y.mean()
        sum_xy = float(np.sum(dev_x * dev_y))
        sum_x2 = float(np.sum(dev_x ** 2))
        sum_y2 = float(np.sum(dev_y ** 2))

        trend_line = None
        if sum_x2 > 0:
            slope = sum_xy / sum_x2
            trend_line = TrendLine(slope=slope, intercept=float(y.mean() - slope * x.mean()))

        if sum_x2 == 0 or sum_y2 == 0:
            logger.debug("Correlation undefined for a constant series, reporting none")
            return CorrelationResult(
                coefficient=0.0,
                r_squared=0.0,
                sample_size=n,
                significance=Significance.NONE,
                trend=Trend.POSITIVE,
                trend_line=trend_line,
            )

        r = max(-1.0, min(1.0, sum_xy / np.sqrt(sum_x2 * sum_y2)))

        p_value = None
        if n >= 3:
            _, p_value = stats.pearsonr(x, y)
            p_value = float(p_value)

        return CorrelationResult(
            coefficient=float(r),
            r_squared=float(r * r),
            sample_size=n,
            significance=classify_significance(r),
            trend=Trend.POSITIVE if r >= 0 else Trend.NEGATIVE,
            trend_line=trend_line,
            p_value=p_value,
        )

    def lagged(self, xs: Sequence[float], ys: Sequence[float], max_lag: int = 7,
               min_samples: int = 5) -> Optional[LeadingIndicator]:
        """
        Find the lag at which ``xs`` best predicts later ``ys``.

        Example: does HRV two days ago track today's training stress?
        """
        if len(xs) != len(ys):
            raise ValueError(f"Paired series must have equal length ({len(xs)} != {len(ys)})")

        best = None
        for lag in range(1, max_lag + 1):
            if len(xs) - lag < max(min_samples, 2):
                break
            try:
                result = self.analyze(xs[:-lag], ys[lag:])
            except InsufficientDataError:
                continue
            if result.sample_size < max(min_samples, 2):
                continue
            if best is None or abs(result.coefficient) > abs(best.result.coefficient):
                best = LeadingIndicator(
                    optimal_lag_days=lag,
                    result=CorrelationResult(
                        coefficient=result.coefficient,
                        r_squared=result.r_squared,
                        sample_size=result.sample_size,
                        significance=result.significance,
                        trend=result.trend,
                        trend_line=result.trend_line,
                        p_value=result.p_value,
                        lag_days=lag,
                    ),
                )
        return best

    def recovery_vs_performance(self, scores: Iterable[DailyScore],
                                workouts: Iterable[WorkoutRecord],
                                min_points: int = 3) -> CorrelationResult:
        """
        Correlate recovery with the average power ridden that day.

        Each workout with power contributes one (recovery, avg power) point when its
        day has a recovery score; workouts without power are skipped.

        Raises:
            InsufficientDataError: With fewer than ``min_points`` paired workouts
        """
        recovery_by_date: Dict[date, int] = {s.date: s.recovery for s in scores if s.recovery is not None}
        points = []
        for workout in sorted(workouts, key=lambda w: w.date):
            power = workout.power_watts
            if power is None or workout.date not in recovery_by_date:
                continue
            points.append((float(recovery_by_date[workout.date]), power))

        if len(points) < min_points:
            logger.warning(f"Not enough data for recovery vs power: {len(points)} points (need {min_points}+)")
            raise InsufficientDataError(
                f"Recovery vs power needs at least {min_points} workouts with power, got {len(points)}"
            )

        result = self.analyze([p[0] for p in points], [p[1] for p in points])
        logger.debug(f"Recovery vs power: r={result.coefficient:.3f}, "
                     f"R²={result.r_squared:.3f}, n={result.sample_size}")
        return result

    @staticmethod
    def insight(result: CorrelationResult, x_name: str, y_name: str) -> str:
        """Human-readable summary of a correlation result."""
        r = result.coefficient
        percent = int(abs(r) * 100)

        if result.significance == Significance.STRONG:
            if r > 0:
                return f"Strong positive correlation ({percent}%). Higher {x_name} strongly predicts higher {y_name}."
            return f"Strong negative correlation ({percent}%). Higher {x_name} strongly predicts lower {y_name}."
        elif result.significance == Significance.MODERATE:
            effect = "positive" if r > 0 else "negative"
            return f"Moderate correlation ({percent}%). {x_name} has a noticeable {effect} effect on {y_name}."
        elif result.significance == Significance.WEAK:
            return f"Weak correlation ({percent}%). {x_name} has minimal impact on {y_name}."
        return f"No significant correlation. {x_name} and {y_name} appear independent."
