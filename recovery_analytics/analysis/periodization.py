"""Training phase detection from weekly volume and intensity distribution."""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import config
from .model import TrainingLoadTracker
from .records import TrainingLoadState, WorkoutRecord
from .zones import IntensityClass, ZoneModel, hr_zones, power_zones

logger = logging.getLogger(__name__)


INTENSITY_WINDOW_DAYS = 28

# Confidence multiplier by number of intensity classes with meaningful time
VARIETY_CONFIDENCE = {0: 0.25, 1: 0.4, 2: 0.8, 3: 1.0}


class TrainingPhase(Enum):
    """Macro training phases."""

    BASE = "base"              # High volume, mostly easy
    BUILD = "build"            # Balanced intensity at solid volume
    PEAK = "peak"              # Intensity-dominated
    RECOVERY = "recovery"      # Reduced volume
    TRANSITION = "transition"  # No clear pattern


PHASE_RECOMMENDATIONS = {
    TrainingPhase.BASE: "Keep most sessions easy and extend volume gradually. Add one quality session per week at most.",
    TrainingPhase.BUILD: "Maintain two to three quality sessions per week and protect recovery days between them.",
    TrainingPhase.PEAK: "Keep intensity sharp but trim volume. Plan a taper or recovery week soon.",
    TrainingPhase.RECOVERY: "Let fatigue clear. Resume structured training once recovery scores are back to baseline.",
    TrainingPhase.TRANSITION: "Training pattern is mixed. Choose a focus for the next block.",
}


@dataclass
class PhaseResult:
    """Detected training phase."""

    phase: TrainingPhase
    confidence: float
    weekly_tss: float
    low_intensity_percent: float
    high_intensity_percent: float
    recommendation: str
    mid_intensity_percent: float = 0.0
    ctl_ramp_per_week: Optional[float] = None
    history_days: int = 0
    notes: List[str] = field(default_factory=list)


def classify_phase(weekly_tss: float, low_percent: float, high_percent: float,
                   prior_weekly_mean: Optional[float] = None) -> Tuple[TrainingPhase, float]:
    """Rule-based phase and its base confidence, checked in priority order."""
    if low_percent > 70 and weekly_tss > 300:
        return TrainingPhase.BASE, min(low_percent / 100, 0.95)

    reduced = prior_weekly_mean is not None and prior_weekly_mean > 0 and weekly_tss < 0.6 * prior_weekly_mean
    if weekly_tss < 200 or reduced:
        return TrainingPhase.RECOVERY, 0.8

    if high_percent > 25:
        return TrainingPhase.PEAK, min(high_percent / 40, 0.9)

    if 15 <= high_percent <= 25 and weekly_tss >= 300:
        return TrainingPhase.BUILD, 0.75

    return TrainingPhase.TRANSITION, 0.5


def rpe_intensity(rpe: float) -> IntensityClass:
    if rpe <= 4:
        return IntensityClass.LOW
    elif rpe <= 6:
        return IntensityClass.MID
    return IntensityClass.HIGH


class TrainingPhaseDetector:
    """Polarization-based phase classifier."""

    def __init__(self, hr_model: Optional[ZoneModel] = None, power_model: Optional[ZoneModel] = None,
                 min_weeks: int = None):
        self.hr_model = hr_model or hr_zones(config.ATHLETE_MAX_HR)
        self.power_model = power_model or power_zones(config.ATHLETE_FTP)
        self.min_weeks = min_weeks or config.PHASE_MIN_WEEKS
        self.tracker = TrainingLoadTracker()

    def detect(self, recent_workouts: Sequence[WorkoutRecord],
               load_history: Sequence[TrainingLoadState] = (),
               as_of: Optional[date] = None) -> Optional[PhaseResult]:
        """
        Detect the current training phase.

        Args:
            recent_workouts: Workouts covering at least the last few weeks
            load_history: Daily load states, used for history span and CTL ramp
            as_of: Evaluation day (defaults to the latest date in the inputs)

        Returns:
            PhaseResult, or None with less than ``min_weeks`` of history
        """
        dates = [w.date for w in recent_workouts] + [s.date for s in load_history if s.date is not None]
        if not dates:
            return None

        as_of = as_of or max(dates)
        earliest = min(dates)
        history_days = (as_of - earliest).days + 1

        if history_days < self.min_weeks * 7:
            logger.info(f"Phase detection needs {self.min_weeks} weeks of history, have {history_days} days")
            return None

        empty_weeks = self.empty_weeks(dates, as_of)
        if empty_weeks:
            logger.info(f"Phase detection needs data in each of the last {self.min_weeks} weeks, "
                        f"{len(empty_weeks)} week(s) have none")
            return None

        week_start = as_of - timedelta(days=6)
        weekly_tss = sum(w.training_stress_score for w in recent_workouts if week_start <= w.date <= as_of)

        prior_weekly_mean = None
        prior_days = (week_start - earliest).days
        if prior_days >= 7:
            prior_tss = sum(w.training_stress_score for w in recent_workouts if earliest <= w.date < week_start)
            prior_weekly_mean = prior_tss / (prior_days / 7)

        window_start = as_of - timedelta(days=INTENSITY_WINDOW_DAYS - 1)
        split = self.intensity_distribution([w for w in recent_workouts if window_start <= w.date <= as_of])
        total = sum(split.values())
        if total > 0:
            low = split[IntensityClass.LOW] / total * 100
            mid = split[IntensityClass.MID] / total * 100
            high = split[IntensityClass.HIGH] / total * 100
        else:
            low = mid = high = 0.0

        phase, confidence = classify_phase(weekly_tss, low, high, prior_weekly_mean)

        notes = []
        sufficiency = 0.5 + 0.5 * min(1.0, history_days / (self.min_weeks * 14))
        variety_classes = sum(1 for pct in (low, mid, high) if pct >= 5.0)
        variety = VARIETY_CONFIDENCE[variety_classes]
        if variety_classes == 0:
            notes.append("no intensity data")
        elif variety_classes == 1:
            notes.append("low intensity variety")

        confidence = max(0.0, min(1.0, confidence * sufficiency * variety))

        return PhaseResult(
            phase=phase,
            confidence=confidence,
            weekly_tss=weekly_tss,
            low_intensity_percent=low,
            high_intensity_percent=high,
            recommendation=PHASE_RECOMMENDATIONS[phase],
            mid_intensity_percent=mid,
            ctl_ramp_per_week=self.tracker.ctl_ramp(list(load_history)),
            history_days=history_days,
            notes=notes,
        )

    def empty_weeks(self, dates: Sequence[date], as_of: date) -> List[int]:
        """Indices (0 = the week ending ``as_of``) of recent 7-day buckets without data."""
        covered = {(as_of - d).days // 7 for d in dates if d <= as_of}
        return [week for week in range(self.min_weeks) if week not in covered]

    def intensity_distribution(self, workouts: Sequence[WorkoutRecord]) -> Dict[IntensityClass, float]:
        """Seconds per intensity class across workouts with usable intensity data."""
        totals = {cls: 0.0 for cls in IntensityClass}
        for workout in workouts:
            if workout.duration_sec <= 0:
                continue
            if workout.heart_rate_samples:
                self._add_stream(totals, self.hr_model, workout.heart_rate_samples, workout.duration_sec)
            elif workout.power_samples:
                self._add_stream(totals, self.power_model, workout.power_samples, workout.duration_sec)
            elif workout.avg_hr is not None:
                totals[self.hr_model.intensity_of(workout.avg_hr)] += workout.duration_sec
            elif workout.rpe is not None:
                totals[rpe_intensity(workout.rpe)] += workout.duration_sec
        return totals

    @staticmethod
    def _add_stream(totals: Dict[IntensityClass, float], model: ZoneModel,
                    samples: Sequence[float], duration_sec: float):
        seconds_per_sample = duration_sec / len(samples)
        for value in samples:
            totals[model.intensity_of(value)] += seconds_per_sample
