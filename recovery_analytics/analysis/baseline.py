"""
Personal Baseline Analysis

Maintains rolling personal baselines for physiological metrics:
- Trailing 30-day window that never includes the scored day itself
- 3-sigma outlier rejection around the window mean
- Median of the remaining values as the robust reference
- Short-term trend and day-to-day stability (coefficient of variation)

A baseline is only valid with at least 7 samples after filtering. Callers treat
a missing baseline as "exclude this component".
"""

import logging
import numpy as np
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
from dataclasses import dataclass
from enum import Enum

from ..config import config
from .records import DailySample, Metric

logger = logging.getLogger(__name__)


class TrendDirection(Enum):
    """Direction of the short-term average relative to the baseline"""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class Stability(Enum):
    """Day-to-day stability classified from the coefficient of variation"""
    EXCELLENT = "excellent"    # CV < 5%
    GOOD = "good"              # 5-10%
    MODERATE = "moderate"      # 10-15%
    POOR = "poor"              # > 15%


@dataclass(frozen=True)
class Baseline:
    """Rolling personal reference for one metric"""
    metric: Metric
    window_days: int
    median: float
    mean: float
    std_deviation: float
    outlier_bound_sigma: float
    sample_count: int
    last_computed_date: date

    @property
    def variance(self) -> float:
        return self.std_deviation ** 2

    def deviation_percent(self, value: float) -> Optional[float]:
        """Percentage difference of ``value`` from the baseline median."""
        if self.median <= 0:
            return None
        return (value - self.median) / self.median * 100


@dataclass(frozen=True)
class BaselineTrend:
    """Short-term average compared with the long-term baseline"""
    metric: Metric
    direction: TrendDirection
    magnitude_percent: float
    short_term_average: float
    baseline_median: float


@dataclass(frozen=True)
class BaselineSet:
    """Baselines for every metric as of one day; absent entries are None"""
    as_of: date
    hrv: Optional[Baseline] = None
    rhr: Optional[Baseline] = None
    respiratory: Optional[Baseline] = None
    sleep_duration: Optional[Baseline] = None

    def get(self, metric: Metric) -> Optional[Baseline]:
        return {
            Metric.HRV: self.hrv,
            Metric.RHR: self.rhr,
            Metric.RESPIRATORY: self.respiratory,
            Metric.SLEEP_DURATION: self.sleep_duration,
        }[metric]


class BaselineEngine:
    """
    Rolling baseline calculator.

    Stateless: the sample history is passed in on every call, so the same
    samples and ``as_of`` date always produce the same baseline.
    """

    def __init__(self, window_days: int = None, min_samples: int = None,
                 outlier_sigma: float = None):
        self.window_days = window_days or config.BASELINE_WINDOW_DAYS
        self.min_samples = min_samples or config.BASELINE_MIN_SAMPLES
        self.outlier_sigma = outlier_sigma or config.BASELINE_OUTLIER_SIGMA

    def compute_baseline(self, metric: Metric, samples: Iterable[DailySample],
                         as_of: date) -> Optional[Baseline]:
        """
        Compute the baseline for ``metric`` from samples in [as_of - window, as_of).

        Args:
            metric: Metric to compute
            samples: Daily samples in any order
            as_of: Day being scored; excluded from its own baseline

        Returns:
            Baseline, or None when fewer than ``min_samples`` valid values remain
        """
        values = self._window_values(metric, samples, as_of, self.window_days)

        if len(values) < self.min_samples:
            logger.debug(f"{metric.name} baseline unavailable for {as_of}: "
                         f"{len(values)} samples < {self.min_samples}")
            return None

        window = np.asarray(values, dtype=float)
        kept = self._reject_outliers(window)

        if len(kept) < self.min_samples:
            return None

        return Baseline(
            metric=metric,
            window_days=self.window_days,
            median=float(np.median(kept)),
            mean=float(np.mean(kept)),
            std_deviation=float(np.std(kept)),
            outlier_bound_sigma=self.outlier_sigma,
            sample_count=int(len(kept)),
            last_computed_date=as_of,
        )

    def compute_all(self, samples: Iterable[DailySample], as_of: date) -> BaselineSet:
        """Compute baselines for every metric as of one day."""
        samples = list(samples)
        return BaselineSet(
            as_of=as_of,
            hrv=self.compute_baseline(Metric.HRV, samples, as_of),
            rhr=self.compute_baseline(Metric.RHR, samples, as_of),
            respiratory=self.compute_baseline(Metric.RESPIRATORY, samples, as_of),
            sleep_duration=self.compute_baseline(Metric.SLEEP_DURATION, samples, as_of),
        )

    def detect_trend(self, metric: Metric, samples: Iterable[DailySample], as_of: date,
                     short_term_days: int = None) -> Optional[BaselineTrend]:
        """Compare the recent average (including ``as_of``) with the trailing baseline."""
        samples = list(samples)
        short_term_days = short_term_days or config.TREND_SHORT_TERM_DAYS

        baseline = self.compute_baseline(metric, samples, as_of)
        if baseline is None or baseline.median <= 0:
            return None

        recent = self._window_values(metric, samples, as_of + timedelta(days=1), short_term_days)
        if len(recent) < short_term_days // 2 + 1:
            return None

        short_term_average = float(np.mean(recent))
        change = (short_term_average - baseline.median) / baseline.median * 100

        if change > 5.0:
            direction = TrendDirection.IMPROVING
        elif change < -5.0:
            direction = TrendDirection.DECLINING
        else:
            direction = TrendDirection.STABLE

        # Rising resting HR or respiratory rate is a deterioration
        if metric in (Metric.RHR, Metric.RESPIRATORY) and direction != TrendDirection.STABLE:
            direction = (TrendDirection.DECLINING if direction == TrendDirection.IMPROVING
                         else TrendDirection.IMPROVING)

        return BaselineTrend(
            metric=metric,
            direction=direction,
            magnitude_percent=change,
            short_term_average=short_term_average,
            baseline_median=baseline.median,
        )

    def coefficient_of_variation(self, metric: Metric, samples: Iterable[DailySample],
                                 as_of: date, days: int = 7) -> Optional[float]:
        """CV in percent over the last ``days`` values up to and including ``as_of``."""
        values = self._window_values(metric, samples, as_of + timedelta(days=1), days)
        if len(values) < 3:
            return None

        mean = float(np.mean(values))
        if mean <= 0:
            return None
        return float(np.std(values)) / mean * 100

    @staticmethod
    def classify_stability(cv: float) -> Stability:
        if cv < 5.0:
            return Stability.EXCELLENT
        elif cv < 10.0:
            return Stability.GOOD
        elif cv < 15.0:
            return Stability.MODERATE
        return Stability.POOR

    def _reject_outliers(self, values: np.ndarray) -> np.ndarray:
        """Drop values farther than ``outlier_sigma`` standard deviations from the mean."""
        std = np.std(values)
        if std == 0:
            return values

        mask = np.abs(values - np.mean(values)) <= self.outlier_sigma * std
        rejected = int(len(values) - mask.sum())
        if rejected:
            logger.debug(f"Rejected {rejected} outlier(s) beyond {self.outlier_sigma} sigma")
        return values[mask]

    @staticmethod
    def _window_values(metric: Metric, samples: Iterable[DailySample], end: date,
                       days: int) -> List[float]:
        """Values of ``metric`` for dates in [end - days, end), one per date."""
        start = end - timedelta(days=days)
        by_date: Dict[date, float] = {}
        for sample in samples:
            if start <= sample.date < end:
                value = sample.value(metric)
                if value is not None:
                    by_date[sample.date] = float(value)
        return [by_date[d] for d in sorted(by_date)]
