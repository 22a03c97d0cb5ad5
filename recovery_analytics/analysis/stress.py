"""
Daily Stress Score

Acute stress (0-100) is the sum of five capped parts:
1. HRV suppression below baseline      (0-15)
2. Resting HR elevation above baseline (0-15)
3. Training load from the ATL/CTL ratio (0-30)
4. Recovery deficit                    (0-30)
5. Sleep disruption                    (0-20)

Chronic stress is the rolling mean of acute stress. The alert threshold is
personal: history mean + 1.5 sigma, shifted by fitness (CTL) and clamped to 40-70.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .records import DailyScore

logger = logging.getLogger(__name__)


CHRONIC_WINDOW_DAYS = 7
THRESHOLD_HISTORY_DAYS = 30
THRESHOLD_MIN_HISTORY = 7
DEFAULT_THRESHOLD = 50


class ContributorType(Enum):
    HRV = "hrv"
    RHR = "rhr"
    RECOVERY = "recovery"
    SLEEP_QUALITY = "sleep_quality"
    TRAINING_LOAD = "training_load"


class ContributorStatus(Enum):
    OPTIMAL = "optimal"
    GOOD = "good"
    ELEVATED = "elevated"


@dataclass(frozen=True)
class StressContributor:
    """One input's share of the day's stress."""
    type: ContributorType
    value: int          # 0-100, higher is healthier
    points: int         # Stress points added
    description: str
    status: ContributorStatus


@dataclass
class StressScore:
    date: Optional[date]
    acute_stress: int
    chronic_stress: int
    physiological_stress: float
    recovery_deficit: float
    sleep_disruption: float
    threshold: int = DEFAULT_THRESHOLD
    contributors: List[StressContributor] = field(default_factory=list)

    @property
    def is_elevated(self) -> bool:
        return self.chronic_stress >= self.threshold


def _status(score: int) -> ContributorStatus:
    if score >= 80:
        return ContributorStatus.OPTIMAL
    elif score >= 60:
        return ContributorStatus.GOOD
    return ContributorStatus.ELEVATED


def training_load_stress(atl: Optional[float], ctl: Optional[float]) -> Tuple[float, int, str]:
    """Stress points, load score and description from the ATL/CTL ratio."""
    if atl is None or ctl is None or ctl <= 0:
        return 0.0, 70, "Training load normal"

    ratio = atl / ctl
    if ratio < 0.8:
        return 0.0, 100, f"ATL/CTL: {ratio:.2f} - Well recovered"
    elif ratio < 1.0:
        stress = (ratio - 0.8) * 75
        return stress, int(100 - stress), f"ATL/CTL: {ratio:.2f} - Moderate load"
    elif ratio < 1.3:
        stress = 15 + (ratio - 1.0) * 50
        return stress, int(100 - stress), f"ATL/CTL: {ratio:.2f} - High load"
    return 30.0, 40, f"ATL/CTL: {ratio:.2f} - Overreaching"


def chronic_stress(history: Sequence[float], today: int) -> int:
    """Mean of recent acute stress values including today."""
    values = list(history) + [today]
    return int(sum(values) / len(values))


def smart_threshold(history: Sequence[float], ctl: float) -> int:
    """
    Personal stress threshold.

    Mean + 1.5 standard deviations of past acute stress, plus a fitness
    adjustment of -10 (CTL 10) to +10 (CTL 130) around CTL 70. Falls back to
    50 with less than a week of history.
    """
    if len(history) < THRESHOLD_MIN_HISTORY:
        return DEFAULT_THRESHOLD

    values = np.asarray(history, dtype=float)
    personal = float(np.mean(values) + 1.5 * np.std(values))
    fitness_adjustment = (ctl - 70) / 60 * 10
    return int(max(40.0, min(70.0, personal + fitness_adjustment)))


class StressCalculator:
    """Acute and chronic stress from daily scores."""

    def acute(self, hrv_deviation_pct: Optional[float], rhr_elevation_pct: Optional[float],
              recovery: Optional[int], sleep: Optional[int],
              atl: Optional[float] = None, ctl: Optional[float] = None) -> StressScore:
        """
        Acute stress for one day.

        Args:
            hrv_deviation_pct: HRV change from baseline in percent (negative is suppressed)
            rhr_elevation_pct: Resting HR change from baseline in percent
            recovery: Recovery score, or None to skip the deficit
            sleep: Sleep score, or None to skip the disruption
            atl: Acute training load
            ctl: Chronic training load
        """
        physiological = 0.0
        contributors = []

        if hrv_deviation_pct is not None:
            suppression = -hrv_deviation_pct
            points = max(0.0, min(15.0, suppression * 0.3))
            physiological += points
            score = max(0, min(100, int(100 - suppression * 2)))
            contributors.append(StressContributor(
                ContributorType.HRV, score, int(points),
                f"HRV {abs(hrv_deviation_pct):.1f}% {'below' if suppression > 0 else 'above'} baseline",
                _status(score),
            ))

        if rhr_elevation_pct is not None:
            points = max(0.0, min(15.0, rhr_elevation_pct * 0.5))
            physiological += points
            score = max(0, min(100, int(100 - rhr_elevation_pct * 2)))
            contributors.append(StressContributor(
                ContributorType.RHR, score, int(points),
                f"RHR {abs(rhr_elevation_pct):.1f}% {'above' if rhr_elevation_pct > 0 else 'below'} baseline",
                _status(score),
            ))

        recovery_deficit = 0.0
        if recovery is not None:
            recovery_deficit = max(0.0, (100 - recovery) * 0.3)
            if recovery < 80:
                contributors.append(StressContributor(
                    ContributorType.RECOVERY, recovery, int(recovery_deficit),
                    f"Recovery score: {recovery}%", _status(recovery),
                ))

        sleep_disruption = 0.0
        if sleep is not None:
            sleep_disruption = max(0.0, (100 - sleep) * 0.2)
            if sleep < 80:
                contributors.append(StressContributor(
                    ContributorType.SLEEP_QUALITY, sleep, int(sleep_disruption),
                    f"Sleep score: {sleep}%", _status(sleep),
                ))

        load_stress, load_score, load_description = training_load_stress(atl, ctl)
        if load_score < 80:
            contributors.append(StressContributor(
                ContributorType.TRAINING_LOAD, load_score, int(load_stress), load_description,
                ContributorStatus.GOOD if load_score >= 70 else ContributorStatus.ELEVATED,
            ))
        physiological += load_stress

        acute = int(min(100.0, physiological + recovery_deficit + sleep_disruption))

        return StressScore(
            date=None,
            acute_stress=acute,
            chronic_stress=acute,
            physiological_stress=physiological,
            recovery_deficit=recovery_deficit,
            sleep_disruption=sleep_disruption,
            contributors=contributors,
        )

    def score_day(self, score: DailyScore) -> StressScore:
        result = self.acute(score.hrv_deviation_pct, score.rhr_elevation_pct, score.recovery, score.sleep,
                            atl=score.atl, ctl=score.ctl)
        result.date = score.date
        return result

    def timeline(self, scores: Sequence[DailyScore]) -> List[StressScore]:
        """Stress for each day with rolling chronic stress and a personal threshold."""
        results = []
        history: List[int] = []
        for score in sorted(scores, key=lambda s: s.date):
            result = self.score_day(score)
            result.chronic_stress = chronic_stress(history[-(CHRONIC_WINDOW_DAYS - 1):], result.acute_stress)
            result.threshold = smart_threshold(history[-THRESHOLD_HISTORY_DAYS:], score.ctl)
            if result.is_elevated:
                logger.info(f"Chronic stress {result.chronic_stress} above threshold {result.threshold} "
                            f"on {score.date}")
            history.append(result.acute_stress)
            results.append(result)
        return results
