"""
Illness and Wellness Detection

Non-diagnostic body stress signals from deviations against personal baselines.

IllnessDetector looks at one day:
- HRV drop (< -10%) or spike (> +100%), elevated resting HR (> +3%),
  respiratory change (|d| > 8%), sleep disruption and activity drop
- Severity from the weighted mean deviation and the number of signals
- Confidence from signal count and deviation size, raised when HRV or RHR has
  been moving the wrong way for several days in a row

WellnessDetector looks for sustained changes: consecutive days, counted back
from the evaluation day, where a metric stays past a conservative threshold.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import config
from .baseline import BaselineEngine, TrendDirection
from .records import DailySample, DailyScore, Metric

logger = logging.getLogger(__name__)


ANALYSIS_WINDOW_DAYS = 7
MIN_CONFIDENCE = 0.5
SUSTAINED_TREND_CONSISTENCY = 0.7


class Severity(Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class SignalType(Enum):
    HRV_DROP = "hrv_drop"
    HRV_SPIKE = "hrv_spike"
    ELEVATED_RHR = "elevated_rhr"
    RESPIRATORY_CHANGE = "respiratory_change"
    SLEEP_DISRUPTION = "sleep_disruption"
    ACTIVITY_DROP = "activity_drop"


# Contribution of each signal's |deviation| to the severity average
SIGNAL_WEIGHTS = {
    SignalType.HRV_DROP: 1.0,
    SignalType.HRV_SPIKE: 1.2,
    SignalType.ELEVATED_RHR: 1.0,
    SignalType.RESPIRATORY_CHANGE: 0.7,
    SignalType.SLEEP_DISRUPTION: 0.7,
    SignalType.ACTIVITY_DROP: 0.3,
}

SIGNAL_CONTEXT = {
    SignalType.HRV_SPIKE: "Elevated HRV detected. ",
    SignalType.HRV_DROP: "Suppressed HRV detected. ",
    SignalType.ELEVATED_RHR: "Elevated resting heart rate detected. ",
    SignalType.SLEEP_DISRUPTION: "Sleep disruption detected. ",
    SignalType.RESPIRATORY_CHANGE: "Respiratory changes detected. ",
    SignalType.ACTIVITY_DROP: "Activity levels reduced. ",
}

SEVERITY_ADVICE = {
    Severity.LOW: "Monitor your recovery metrics. Consider taking it easy if symptoms persist.",
    Severity.MODERATE: "Your body is showing stress signals. Prioritize rest and recovery today.",
    Severity.HIGH: "Rest is strongly recommended. Consult a healthcare provider if you feel unwell.",
}


@dataclass(frozen=True)
class IllnessSignal:
    type: SignalType
    deviation_percent: float
    value: float
    baseline: float


@dataclass
class IllnessIndicator:
    """Possible illness on one day."""
    date: date
    severity: Severity
    confidence: float
    signals: List[IllnessSignal]
    recommendation: str

    @property
    def is_significant(self) -> bool:
        return self.severity != Severity.LOW and self.confidence >= MIN_CONFIDENCE

    @property
    def primary_signal(self) -> Optional[IllnessSignal]:
        if not self.signals:
            return None
        return max(self.signals, key=lambda s: abs(s.deviation_percent))


def _deviation(value: Optional[float], baseline: Optional[float]) -> Optional[float]:
    if value is None or baseline is None or baseline <= 0:
        return None
    return (value - baseline) / baseline * 100


def detect_signals(hrv: Optional[float] = None, hrv_baseline: Optional[float] = None,
                   rhr: Optional[float] = None, rhr_baseline: Optional[float] = None,
                   respiratory: Optional[float] = None, respiratory_baseline: Optional[float] = None,
                   sleep_score: Optional[int] = None, sleep_baseline: Optional[float] = None,
                   activity: Optional[float] = None, activity_baseline: Optional[float] = None
                   ) -> List[IllnessSignal]:
    """Signals whose deviation from baseline crosses its threshold."""
    signals = []

    deviation = _deviation(hrv, hrv_baseline)
    if deviation is not None:
        if deviation < -10:
            signals.append(IllnessSignal(SignalType.HRV_DROP, deviation, hrv, hrv_baseline))
        elif deviation > 100:
            # Inflammation can push HRV far above normal
            signals.append(IllnessSignal(SignalType.HRV_SPIKE, deviation, hrv, hrv_baseline))

    deviation = _deviation(rhr, rhr_baseline)
    if deviation is not None and deviation > 3:
        signals.append(IllnessSignal(SignalType.ELEVATED_RHR, deviation, rhr, rhr_baseline))

    deviation = _deviation(sleep_score, sleep_baseline)
    if deviation is not None:
        # A middling score below the usual often hides a fragmented night
        if deviation < -15 or (60 <= sleep_score < 85 and deviation < 0):
            signals.append(IllnessSignal(SignalType.SLEEP_DISRUPTION, deviation, float(sleep_score),
                                         sleep_baseline))

    deviation = _deviation(respiratory, respiratory_baseline)
    if deviation is not None and abs(deviation) > 8:
        signals.append(IllnessSignal(SignalType.RESPIRATORY_CHANGE, deviation, respiratory, respiratory_baseline))

    deviation = _deviation(activity, activity_baseline)
    if deviation is not None and deviation < -25:
        signals.append(IllnessSignal(SignalType.ACTIVITY_DROP, deviation, activity, activity_baseline))

    return signals


def classify_signals(signals: Sequence[IllnessSignal]) -> Tuple[Severity, float]:
    """Severity and base confidence for a non-empty set of signals."""
    weighted = sum(abs(s.deviation_percent) * SIGNAL_WEIGHTS[s.type] for s in signals)
    average = weighted / len(signals)

    if average > 30 or len(signals) >= 4:
        severity = Severity.HIGH
    elif average > 20 or len(signals) >= 3:
        severity = Severity.MODERATE
    else:
        severity = Severity.LOW

    confidence = min(len(signals) / 5.0, 1.0) * 0.6 + min(average / 50.0, 1.0) * 0.4
    return severity, confidence


def recommendation(severity: Severity, signals: Sequence[IllnessSignal]) -> str:
    primary = max(signals, key=lambda s: abs(s.deviation_percent)) if signals else None
    context = SIGNAL_CONTEXT[primary.type] if primary else ""
    return context + SEVERITY_ADVICE[severity]


def trend_consistency(values: Sequence[float], rising: bool) -> float:
    """Share of day-to-day changes, oldest first, that move in the given direction."""
    if len(values) < 2:
        return 0.0
    changes = np.diff(np.asarray(values, dtype=float))
    moving = changes > 0 if rising else changes < 0
    return float(np.mean(moving))


class IllnessDetector:
    """Single-day illness indicator against rolling personal baselines."""

    def __init__(self, baseline_engine: Optional[BaselineEngine] = None,
                 window_days: int = ANALYSIS_WINDOW_DAYS, min_confidence: float = MIN_CONFIDENCE):
        self.baseline_engine = baseline_engine or BaselineEngine()
        self.window_days = window_days
        self.min_confidence = min_confidence

    def detect(self, samples: Sequence[DailySample], as_of: date,
               scores: Sequence[DailyScore] = ()) -> Optional[IllnessIndicator]:
        """
        Check ``as_of`` for illness signals.

        Args:
            samples: Daily samples covering the baseline window and ``as_of``
            as_of: Day to check
            scores: Daily scores, used for the sleep score and its baseline

        Returns:
            IllnessIndicator, or None without signals or below ``min_confidence``
        """
        samples = list(samples)
        today = next((s for s in samples if s.date == as_of), None)
        if today is None:
            return None

        baselines = self.baseline_engine.compute_all(samples, as_of)
        sleep_by_date = {s.date: s.sleep for s in scores if s.sleep is not None}

        signals = detect_signals(
            hrv=today.hrv_ms, hrv_baseline=self._median(baselines.hrv),
            rhr=today.rhr_bpm, rhr_baseline=self._median(baselines.rhr),
            respiratory=today.respiratory_rate, respiratory_baseline=self._median(baselines.respiratory),
            sleep_score=sleep_by_date.get(as_of),
            sleep_baseline=self._trailing_mean(sleep_by_date, as_of),
            activity=today.steps,
            activity_baseline=self._trailing_mean({s.date: s.steps for s in samples if s.steps}, as_of),
        )
        if not signals:
            return None

        severity, confidence = classify_signals(signals)

        if self._sustained_decline(samples, as_of):
            confidence += 0.1
            logger.debug(f"Sustained HRV/RHR trend up to {as_of}, confidence raised")
        if len(signals) >= 3:
            confidence += 0.05 * (len(signals) - 2)
        confidence = min(confidence, 1.0)

        if confidence < self.min_confidence:
            logger.debug(f"Illness signals on {as_of} below confidence threshold ({confidence:.2f})")
            return None

        logger.info(f"Illness indicator on {as_of}: {severity.value}, {len(signals)} signal(s), "
                    f"confidence {confidence:.2f}")
        return IllnessIndicator(
            date=as_of,
            severity=severity,
            confidence=confidence,
            signals=signals,
            recommendation=recommendation(severity, signals),
        )

    def _sustained_decline(self, samples: Sequence[DailySample], as_of: date) -> bool:
        """HRV falling or RHR rising over the window, consistently from day to day."""
        start = as_of - timedelta(days=self.window_days - 1)
        recent = sorted((s for s in samples if start <= s.date <= as_of), key=lambda s: s.date)

        for metric, rising in ((Metric.HRV, False), (Metric.RHR, True)):
            trend = self.baseline_engine.detect_trend(metric, samples, as_of, self.window_days)
            if trend is None or trend.direction != TrendDirection.DECLINING:
                continue
            values = [s.value(metric) for s in recent if s.value(metric) is not None]
            if trend_consistency(values, rising) > SUSTAINED_TREND_CONSISTENCY:
                return True
        return False

    @staticmethod
    def _median(baseline) -> Optional[float]:
        return baseline.median if baseline is not None else None

    @staticmethod
    def _trailing_mean(values_by_date: Mapping[date, float], as_of: date) -> Optional[float]:
        start = as_of - timedelta(days=config.BASELINE_WINDOW_DAYS)
        values = [v for d, v in values_by_date.items() if start <= d < as_of]
        if len(values) < config.BASELINE_MIN_SAMPLES:
            return None
        return float(np.mean(values))


# Sustained-change thresholds, relative to baseline
WELLNESS_THRESHOLDS = {
    Metric.RHR: 0.15,
    Metric.HRV: -0.20,
    Metric.RESPIRATORY: 0.20,
}
MIN_CONSECUTIVE_DAYS = 2
MIN_AFFECTED_METRICS = 3
GOOD_RECOVERY = 75


class AlertSeverity(Enum):
    YELLOW = "yellow"
    AMBER = "amber"
    RED = "red"


class AlertType(Enum):
    UNUSUAL_METRICS = "unusual_metrics"
    SUSTAINED_ELEVATION = "sustained_elevation"
    MULTIPLE_INDICATORS = "multiple_indicators"


@dataclass(frozen=True)
class MetricTrend:
    """Consecutive days, counted back from the evaluation day, past the threshold."""
    metric: Metric
    consecutive_days: int

    @property
    def is_abnormal(self) -> bool:
        return self.consecutive_days >= MIN_CONSECUTIVE_DAYS


@dataclass
class WellnessAlert:
    date: date
    severity: AlertSeverity
    type: AlertType
    trends: Dict[Metric, MetricTrend] = field(default_factory=dict)

    @property
    def affected_metrics(self) -> List[Metric]:
        return [metric for metric, trend in self.trends.items() if trend.is_abnormal]

    @property
    def trend_days(self) -> int:
        return max((t.consecutive_days for t in self.trends.values()), default=0)


class WellnessDetector:
    """Sustained multi-day deviations across several metrics."""

    def __init__(self, baseline_engine: Optional[BaselineEngine] = None, min_affected: int = MIN_AFFECTED_METRICS):
        self.baseline_engine = baseline_engine or BaselineEngine()
        self.min_affected = min_affected

    def analyze_trend(self, metric: Metric, samples: Sequence[DailySample], as_of: date,
                      days: int = ANALYSIS_WINDOW_DAYS) -> MetricTrend:
        """Count days back from ``as_of`` while the metric stays past its threshold.

        Days without a value or a baseline are skipped; the first normal day ends the run.
        """
        samples = list(samples)
        by_date = {s.date: s.value(metric) for s in samples}
        threshold = WELLNESS_THRESHOLDS[metric]

        consecutive = 0
        for offset in range(days):
            day = as_of - timedelta(days=offset)
            value = by_date.get(day)
            baseline = self.baseline_engine.compute_baseline(metric, samples, day)
            if value is None or baseline is None or baseline.median <= 0:
                continue

            change = (value - baseline.median) / baseline.median
            if (change < threshold) if threshold < 0 else (change > threshold):
                consecutive += 1
            else:
                break

        return MetricTrend(metric=metric, consecutive_days=consecutive)

    def detect(self, samples: Sequence[DailySample], as_of: date,
               recovery: Optional[int] = None) -> Optional[WellnessAlert]:
        """
        Alert when enough metrics show sustained changes.

        With good recovery (above 75) one more affected metric is required.
        """
        trends = {metric: self.analyze_trend(metric, samples, as_of) for metric in WELLNESS_THRESHOLDS}
        affected = sum(1 for t in trends.values() if t.is_abnormal)
        max_days = max(t.consecutive_days for t in trends.values())
        logger.debug(f"Wellness on {as_of}: {affected} affected metric(s), longest run {max_days} days")

        required = self.min_affected + 1 if recovery is not None and recovery > GOOD_RECOVERY else self.min_affected
        if affected < required:
            return None

        if affected >= 5 or max_days >= 4:
            severity, alert_type = AlertSeverity.RED, AlertType.MULTIPLE_INDICATORS
        elif affected >= 4 or max_days >= 3:
            severity, alert_type = AlertSeverity.AMBER, AlertType.SUSTAINED_ELEVATION
        else:
            severity, alert_type = AlertSeverity.YELLOW, AlertType.UNUSUAL_METRICS

        logger.warning(f"Wellness alert on {as_of}: {severity.value} ({alert_type.value})")
        return WellnessAlert(date=as_of, severity=severity, type=alert_type, trends=trends)
