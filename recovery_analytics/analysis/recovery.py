"""
Daily Recovery Score

Converts the day's deviation from personal baselines into a 0-100 readiness score.

Components and base weights:
- HRV (30%): drop below the HRV baseline, non-linear penalty
- Resting HR (20%): elevation above the RHR baseline
- Sleep (30%): sleep score, or duration vs. sleep baseline as fallback
- Respiratory rate (10%): deviation in either direction
- Form (10%): training stress balance from the load model

Components whose input is missing are excluded and the remaining weights are
rebalanced proportionally. With nothing available the score is neutral (50).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .baseline import BaselineSet
from .records import DailySample, TrainingLoadState
from .scoring import clamp, interpolate, round_half_up, weighted_composite

logger = logging.getLogger(__name__)


RECOVERY_WEIGHTS = {
    "hrv": 0.30,
    "rhr": 0.20,
    "sleep": 0.30,
    "respiratory": 0.10,
    "form": 0.10,
}

NEUTRAL_SCORE = 50


class RecoveryBand(Enum):
    """Recovery classification"""
    OPTIMAL = "optimal"          # 80-100
    GOOD = "good"                # 60-79
    FAIR = "fair"                # 40-59
    POOR = "poor"                # 0-39
    LIMITED_DATA = "limited_data"


@dataclass
class RecoveryScore:
    """Recovery score with its component breakdown"""
    score: int
    band: RecoveryBand
    components: Dict[str, float] = field(default_factory=dict)
    weights: Dict[str, float] = field(default_factory=dict)
    tss_penalty: float = 0.0

    @property
    def limited_data(self) -> bool:
        return self.band == RecoveryBand.LIMITED_DATA


def hrv_component(current: float, baseline: float) -> float:
    """HRV sub-score from the percentage drop below baseline."""
    if baseline <= 0:
        return 100.0
    drop = (baseline - current) / baseline * 100
    if drop <= 0:
        return 100.0
    elif drop <= 10:
        return interpolate(drop, 0, 10, 100, 85)
    elif drop <= 20:
        return interpolate(drop, 10, 20, 85, 60)
    elif drop <= 35:
        return interpolate(drop, 20, 35, 60, 30)
    return clamp(interpolate(drop, 35, 85, 30, 0))


def rhr_component(current: float, baseline: float) -> float:
    """Resting HR sub-score from the percentage rise above baseline."""
    if baseline <= 0:
        return 100.0
    rise = (current - baseline) / baseline * 100
    if rise <= 0:
        return 100.0
    elif rise <= 8:
        return interpolate(rise, 0, 8, 100, 88)
    elif rise <= 15:
        return interpolate(rise, 8, 15, 88, 67)
    elif rise <= 25:
        return interpolate(rise, 15, 25, 67, 37)
    return clamp(interpolate(rise, 25, 62, 37, 0))


def respiratory_component(current: float, baseline: float) -> float:
    """Respiratory sub-score; deviation in either direction is penalized."""
    if baseline <= 0:
        return 100.0
    deviation = abs(current - baseline) / baseline * 100
    if deviation <= 10:
        return 100.0
    elif deviation <= 20:
        return interpolate(deviation, 10, 20, 100, 50)
    return clamp(interpolate(deviation, 20, 60, 50, 0))


def form_component(tsb: float) -> float:
    """Form sub-score from training stress balance.

    Fresh or neutral form scores high; deep fatigue drives the score toward zero.
    """
    if tsb >= 10:
        return 100.0
    elif tsb >= 0:
        return interpolate(tsb, 0, 10, 85, 100)
    elif tsb >= -10:
        return interpolate(tsb, -10, 0, 70, 85)
    elif tsb >= -30:
        return interpolate(tsb, -30, -10, 30, 70)
    return clamp(interpolate(tsb, -50, -30, 0, 30))


def tss_penalty(yesterday_tss: Optional[float]) -> float:
    """Points removed for a hard training day yesterday."""
    if yesterday_tss is None or yesterday_tss < 50:
        return 0.0
    elif yesterday_tss < 100:
        return 5.0
    elif yesterday_tss < 150:
        return 10.0
    elif yesterday_tss < 200:
        return 15.0
    elif yesterday_tss < 250:
        return 20.0
    return 30.0


def classify_recovery(score: int) -> RecoveryBand:
    if score >= 80:
        return RecoveryBand.OPTIMAL
    elif score >= 60:
        return RecoveryBand.GOOD
    elif score >= 40:
        return RecoveryBand.FAIR
    return RecoveryBand.POOR


class RecoveryScorer:
    """Composite recovery scorer. Holds no history; baselines are passed in."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = dict(weights or RECOVERY_WEIGHTS)

    def score(self, today: DailySample, baselines: BaselineSet,
              sleep_score: Optional[float] = None,
              training_load: Optional[TrainingLoadState] = None,
              yesterday_tss: Optional[float] = None) -> int:
        """Recovery score in [0, 100] for ``today``."""
        return self.score_detailed(today, baselines, sleep_score, training_load, yesterday_tss).score

    def score_detailed(self, today: DailySample, baselines: BaselineSet,
                       sleep_score: Optional[float] = None,
                       training_load: Optional[TrainingLoadState] = None,
                       yesterday_tss: Optional[float] = None) -> RecoveryScore:
        components = self.components(today, baselines, sleep_score, training_load)
        composite = weighted_composite(components, self.weights)

        if composite is None:
            logger.debug(f"No recovery components available for {today.date}, using neutral score")
            return RecoveryScore(score=NEUTRAL_SCORE, band=RecoveryBand.LIMITED_DATA)

        available = {name: value for name, value in components.items() if value is not None}
        total = sum(self.weights[name] for name in available)
        weights = {name: self.weights[name] / total for name in available}

        penalty = tss_penalty(yesterday_tss)
        value = int(clamp(round_half_up(composite - penalty)))

        logger.debug(f"Recovery {today.date}: {value} from {available} (penalty {penalty})")

        # Scores built from a single signal are flagged rather than trusted
        band = classify_recovery(value) if len(available) > 1 else RecoveryBand.LIMITED_DATA

        return RecoveryScore(
            score=value,
            band=band,
            components=available,
            weights=weights,
            tss_penalty=penalty,
        )

    def components(self, today: DailySample, baselines: BaselineSet,
                   sleep_score: Optional[float] = None,
                   training_load: Optional[TrainingLoadState] = None) -> Dict[str, Optional[float]]:
        """Individual sub-scores; ``None`` marks an excluded component."""
        hrv = baselines.hrv
        rhr = baselines.rhr
        respiratory = baselines.respiratory
        sleep_baseline = baselines.sleep_duration

        components: Dict[str, Optional[float]] = {
            "hrv": None,
            "rhr": None,
            "sleep": None,
            "respiratory": None,
            "form": None,
        }

        if today.hrv_ms is not None and hrv is not None:
            components["hrv"] = hrv_component(today.hrv_ms, hrv.median)

        if today.rhr_bpm is not None and rhr is not None:
            components["rhr"] = rhr_component(today.rhr_bpm, rhr.median)

        if sleep_score is not None:
            components["sleep"] = clamp(float(sleep_score))
        elif today.sleep_duration_sec is not None and sleep_baseline is not None and sleep_baseline.median > 0:
            components["sleep"] = clamp(today.sleep_duration_sec / sleep_baseline.median * 100)

        if today.respiratory_rate is not None and respiratory is not None:
            components["respiratory"] = respiratory_component(today.respiratory_rate, respiratory.median)

        if training_load is not None:
            components["form"] = form_component(training_load.tsb)

        return components
