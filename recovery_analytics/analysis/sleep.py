"""
Nightly Sleep Score

Scores a night's sleep architecture on 0-100:
- Performance (30%): time asleep vs. personal sleep need
- Stage quality (32%): combined deep + REM share of the night
- Efficiency (22%): time asleep vs. time in bed
- Disturbances (14%): number of wake events
- Timing (2%): consistency with habitual bed and wake times

Components without data are excluded and the remaining weights rebalanced.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, Iterable, Optional

from ..config import config
from .records import DailySample
from .scoring import clamp, interpolate, round_half_up, weighted_composite

logger = logging.getLogger(__name__)


SLEEP_WEIGHTS = {
    "performance": 0.30,
    "stage_quality": 0.32,
    "efficiency": 0.22,
    "disturbances": 0.14,
    "timing": 0.02,
}

MINUTES_PER_DAY = 24 * 60


class SleepBand(Enum):
    OPTIMAL = "optimal"              # 80-100
    GOOD = "good"                    # 60-79
    FAIR = "fair"                    # 40-59
    PAY_ATTENTION = "pay_attention"  # 0-39


@dataclass
class SleepScore:
    score: int
    band: SleepBand
    components: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class HabitualTiming:
    """Typical bed and wake clock times"""
    bedtime: time
    wake_time: time


def performance_component(duration_sec: float, target_sec: float) -> float:
    if target_sec <= 0:
        return 100.0
    return clamp(duration_sec / target_sec * 100)


def stage_quality_component(deep_rem_percent: float) -> float:
    """Deep + REM share mapped to 0-100; 40% or more is ideal."""
    if deep_rem_percent >= 40:
        return 100.0
    elif deep_rem_percent >= 30:
        return interpolate(deep_rem_percent, 30, 40, 50, 100)
    return clamp(interpolate(deep_rem_percent, 0, 30, 0, 50))


def efficiency_component(asleep_sec: float, in_bed_sec: float) -> float:
    if in_bed_sec <= 0:
        return 0.0
    return clamp(asleep_sec / in_bed_sec * 100)


def disturbances_component(wake_events: int) -> float:
    """Bracketed so that small changes in a noisy count do not move the score."""
    if wake_events <= 2:
        return 100.0
    elif wake_events <= 5:
        return 75.0
    elif wake_events <= 8:
        return 50.0
    return 25.0


def clock_difference_minutes(a: time, b: time) -> float:
    """Shortest distance between two clock times, wrapping across midnight."""
    minutes_a = a.hour * 60 + a.minute + a.second / 60
    minutes_b = b.hour * 60 + b.minute + b.second / 60
    diff = abs(minutes_a - minutes_b) % MINUTES_PER_DAY
    return min(diff, MINUTES_PER_DAY - diff)


def timing_component(bedtime: time, wake_time: time, habitual: HabitualTiming) -> float:
    deviation = (clock_difference_minutes(bedtime, habitual.bedtime)
                 + clock_difference_minutes(wake_time, habitual.wake_time)) / 2
    if deviation <= 30:
        return 100.0
    elif deviation <= 60:
        return 75.0
    elif deviation <= 90:
        return 50.0
    return 25.0


def classify_sleep(score: int) -> SleepBand:
    if score >= 80:
        return SleepBand.OPTIMAL
    elif score >= 60:
        return SleepBand.GOOD
    elif score >= 40:
        return SleepBand.FAIR
    return SleepBand.PAY_ATTENTION


def _as_time(value) -> Optional[time]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.time()
    return value


def habitual_timing(nights: Iterable[DailySample], as_of: date,
                    window_days: int = 14) -> Optional[HabitualTiming]:
    """Median bed and wake times over the nights before ``as_of``.

    Bedtimes are measured from noon so that 23:30 and 00:30 average sensibly.
    """
    start = as_of - timedelta(days=window_days)
    bed_offsets = []
    wake_minutes = []
    for night in nights:
        if not (start <= night.date < as_of):
            continue
        bed = _as_time(night.bedtime)
        wake = _as_time(night.wake_time)
        if bed is None or wake is None:
            continue
        bed_offsets.append((bed.hour * 60 + bed.minute - 12 * 60) % MINUTES_PER_DAY)
        wake_minutes.append(wake.hour * 60 + wake.minute)

    if len(bed_offsets) < 3:
        return None

    bed = int(round(float(np.median(bed_offsets)) + 12 * 60)) % MINUTES_PER_DAY
    wake = int(round(float(np.median(wake_minutes)))) % MINUTES_PER_DAY
    return HabitualTiming(bedtime=time(bed // 60, bed % 60), wake_time=time(wake // 60, wake % 60))


def sleep_debt_hours(nights: Iterable[DailySample], target_sec: Optional[float] = None) -> float:
    """Accumulated shortfall against the sleep target, in hours.

    Nights without a recorded duration add nothing.
    """
    target_sec = target_sec or config.sleep_target_seconds()
    debt = 0.0
    for night in nights:
        if night.sleep_duration_sec is not None:
            debt += max(0.0, target_sec - night.sleep_duration_sec)
    return debt / 3600


class SleepScorer:
    """Composite sleep scorer."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = dict(weights or SLEEP_WEIGHTS)

    def score(self, night: DailySample, personal_target: Optional[float] = None,
              habitual: Optional[HabitualTiming] = None) -> Optional[int]:
        """Sleep score for one night.

        Args:
            night: Sample holding the night's sleep data
            personal_target: Sleep need in seconds (defaults to the configured target)
            habitual: Typical bed/wake times for the timing component

        Returns:
            Score in [0, 100], or None when the night has no sleep data at all
        """
        result = self.score_detailed(night, personal_target, habitual)
        return result.score if result else None

    def score_detailed(self, night: DailySample, personal_target: Optional[float] = None,
                       habitual: Optional[HabitualTiming] = None) -> Optional[SleepScore]:
        if not night.has_sleep:
            return None

        components = self.components(night, personal_target, habitual)
        composite = weighted_composite(components, self.weights)
        if composite is None:
            return None

        value = int(clamp(round_half_up(composite)))
        available = {name: v for name, v in components.items() if v is not None}
        logger.debug(f"Sleep {night.date}: {value} from {available}")

        return SleepScore(score=value, band=classify_sleep(value), components=available)

    def components(self, night: DailySample, personal_target: Optional[float] = None,
                   habitual: Optional[HabitualTiming] = None) -> Dict[str, Optional[float]]:
        target = personal_target if personal_target is not None else config.sleep_target_seconds()
        duration = night.sleep_duration_sec
        stages = night.sleep_stages

        components: Dict[str, Optional[float]] = {name: None for name in SLEEP_WEIGHTS}

        if duration is not None:
            components["performance"] = performance_component(duration, target)

        if stages is not None:
            components["stage_quality"] = stage_quality_component(stages.deep_rem_percent)

        if duration is not None and night.time_in_bed_sec:
            components["efficiency"] = efficiency_component(duration, night.time_in_bed_sec)
        elif stages is not None:
            components["efficiency"] = clamp(100.0 - stages.awake)

        if night.wake_events is not None:
            components["disturbances"] = disturbances_component(night.wake_events)

        bedtime = _as_time(night.bedtime)
        wake_time = _as_time(night.wake_time)
        if bedtime is not None and wake_time is not None and habitual is not None:
            components["timing"] = timing_component(bedtime, wake_time, habitual)

        return components
