"""
Daily Strain Score

Converts the day's workouts and non-exercise activity into strain on a 0-21 scale.

Pipeline:
1. Training impulse (TRIMP) per workout from the best available data source
2. +15% interference when cardio and strength sessions share a day
3. Non-exercise activity (steps / active energy) added as capped TRIMP
4. EPOC = 0.25 * TRIMP^1.1, then logarithmic compression:
   load = 18 * ln(EPOC + 1) / ln(EPOC_max + 1), linear below TRIMP 0.87
5. Recovery modulation of +/-15%

Estimated inputs (average HR, session RPE, TSS) lower the reported confidence.
"""

import logging
import math
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from ..config import config
from .records import DailySample, WorkoutRecord
from .scoring import clamp

logger = logging.getLogger(__name__)

# EPOC (0.25 * TRIMP^1.1) outgrows the log compression below EPOC ~0.214, which is
# TRIMP ~0.867; cardio load is proportional to TRIMP under this point.
LINEAR_TRIMP_BELOW = 0.87


class StrainBand(Enum):
    LIGHT = "light"            # < 6
    MODERATE = "moderate"      # 6-11
    HARD = "hard"              # 11-16
    VERY_HARD = "very_hard"    # 16-18
    ALL_OUT = "all_out"        # 18+


class StrainConfidence(Enum):
    FULL = "full"
    REDUCED = "reduced"


class LoadSource(Enum):
    """Where a workout's training impulse came from, best first"""
    HR_STREAM = "hr_stream"
    POWER_STREAM = "power_stream"
    AVG_HR = "avg_hr"
    SESSION_RPE = "session_rpe"
    TSS_ESTIMATE = "tss_estimate"

    @property
    def estimated(self) -> bool:
        return self not in (LoadSource.HR_STREAM, LoadSource.POWER_STREAM)


@dataclass(frozen=True)
class NonExerciseActivity:
    steps: Optional[int] = None
    active_energy_kcal: Optional[float] = None

    @classmethod
    def from_sample(cls, sample: Optional[DailySample]) -> "NonExerciseActivity":
        if sample is None:
            return cls()
        return cls(steps=sample.steps, active_energy_kcal=sample.active_energy_kcal)


@dataclass
class WorkoutLoad:
    trimp: float
    source: LoadSource
    strength: bool = False


@dataclass
class StrainScore:
    score: float
    band: StrainBand
    cardio_load: float
    workout_trimp: float
    neat_trimp: float
    epoc: float
    recovery_factor: float
    confidence: StrainConfidence
    reasons: List[str] = field(default_factory=list)
    workout_loads: List[WorkoutLoad] = field(default_factory=list)


def heart_rate_reserve(hr: float, max_hr: float, resting_hr: float) -> float:
    """Fraction of heart rate reserve, clamped to [0, 1]."""
    if max_hr <= resting_hr:
        return 0.0
    return clamp((hr - resting_hr) / (max_hr - resting_hr), 0.0, 1.0)


def trimp(duration_min: float, hrr: float, exponent: float = None) -> float:
    """Banister TRIMP for a stretch of time at a constant HR reserve."""
    exponent = exponent if exponent is not None else config.TRIMP_EXPONENT
    return duration_min * hrr * math.exp(exponent * hrr)


def epoc_from_trimp(total_trimp: float) -> float:
    if total_trimp <= 0:
        return 0.0
    return 0.25 * total_trimp ** 1.1


def cardio_load(total_trimp: float, epoc_max: float = None) -> float:
    """Log-compressed load on the 0-21 strain scale (18 at EPOC_max).

    Load per unit of TRIMP never increases, so doubling a session's TRIMP at most
    doubles its cardio load. Below ``LINEAR_TRIMP_BELOW`` the curve is a straight line
    through the origin.
    """
    epoc_max = epoc_max or config.EPOC_MAX
    if total_trimp < LINEAR_TRIMP_BELOW:
        return max(0.0, total_trimp) / LINEAR_TRIMP_BELOW * cardio_load(LINEAR_TRIMP_BELOW, epoc_max)
    epoc = epoc_from_trimp(total_trimp)
    return 18.0 * math.log(epoc + 1) / math.log(epoc_max + 1)


def neat_trimp(steps: Optional[int], active_energy_kcal: Optional[float]) -> float:
    """TRIMP-equivalent of non-exercise activity, capped."""
    step_based = steps / 1000.0 * 0.5 if steps and steps > 0 else 0.0
    # ~7.5 kcal per minute of mixed moderate activity
    energy_based = active_energy_kcal / 7.5 * 0.06 if active_energy_kcal and active_energy_kcal > 0 else 0.0

    load = max(step_based, energy_based)

    if steps and steps > 0 and active_energy_kcal and active_energy_kcal > 0:
        # Energy well above what walking explains means non-walking effort
        intensity_ratio = active_energy_kcal / (steps * 0.04)
        if intensity_ratio > 1.5:
            load += min(2.0, (intensity_ratio - 1.0) * 1.5)

    return min(config.NEAT_TRIMP_CAP, load)


def recovery_factor(recovery: Optional[float]) -> float:
    """Low recovery amplifies strain up to +15%, high recovery dampens it up to -15%."""
    if recovery is None:
        return 1.0
    recovery = clamp(float(recovery))
    return 1.0 + 0.15 * (50.0 - recovery) / 50.0


def classify_strain(score: float) -> StrainBand:
    if score < 6:
        return StrainBand.LIGHT
    elif score < 11:
        return StrainBand.MODERATE
    elif score < 16:
        return StrainBand.HARD
    elif score < 18:
        return StrainBand.VERY_HARD
    return StrainBand.ALL_OUT


class StrainScorer:
    """Strain scorer for one athlete's physiological parameters."""

    def __init__(self, max_hr: Optional[float] = None, resting_hr: Optional[float] = None,
                 ftp: Optional[float] = None):
        self.max_hr = max_hr or config.ATHLETE_MAX_HR
        self.resting_hr = resting_hr or config.ATHLETE_RESTING_HR
        self.ftp = ftp or config.ATHLETE_FTP

    def score(self, workouts: Iterable[WorkoutRecord], non_exercise: Optional[NonExerciseActivity] = None,
              recovery: Optional[float] = None) -> float:
        """Strain in [0, 21] for one day."""
        return self.score_detailed(workouts, non_exercise, recovery).score

    def score_detailed(self, workouts: Iterable[WorkoutRecord],
                       non_exercise: Optional[NonExerciseActivity] = None,
                       recovery: Optional[float] = None) -> StrainScore:
        non_exercise = non_exercise or NonExerciseActivity()
        loads = [self.workout_load(workout) for workout in workouts]
        reasons = []

        workout_trimp = sum(load.trimp for load in loads)

        has_strength = any(load.strength for load in loads)
        has_cardio = any(not load.strength for load in loads)
        if has_strength and has_cardio:
            workout_trimp *= config.CONCURRENT_TRAINING_PENALTY
            logger.debug(f"Concurrent training: +{(config.CONCURRENT_TRAINING_PENALTY - 1) * 100:.0f}% interference")

        estimated = [load for load in loads if load.source.estimated]
        if estimated:
            sources = sorted({load.source.value for load in estimated})
            reasons.append(f"{len(estimated)} workout(s) estimated from {', '.join(sources)}")
            if len(loads) > 1:
                reasons.append("concurrent activities without full HR or power streams")

        neat = neat_trimp(non_exercise.steps, non_exercise.active_energy_kcal)
        total = workout_trimp + neat

        load = cardio_load(total)
        factor = recovery_factor(recovery)
        if recovery is None and loads:
            reasons.append("recovery unavailable, no modulation applied")

        value = round(clamp(load * factor, 0.0, config.STRAIN_MAX), 1)

        confidence = StrainConfidence.REDUCED if estimated else StrainConfidence.FULL

        return StrainScore(
            score=value,
            band=classify_strain(value),
            cardio_load=load,
            workout_trimp=workout_trimp,
            neat_trimp=neat,
            epoc=epoc_from_trimp(total),
            recovery_factor=factor,
            confidence=confidence,
            reasons=reasons,
            workout_loads=loads,
        )

    def workout_load(self, workout: WorkoutRecord) -> WorkoutLoad:
        """TRIMP for one workout from the best available source."""
        minutes = max(0.0, workout.duration_minutes)

        if workout.heart_rate_samples:
            return WorkoutLoad(self._stream_trimp(workout.heart_rate_samples, minutes, self._hrr_from_hr),
                               LoadSource.HR_STREAM)

        if workout.power_samples:
            return WorkoutLoad(self._stream_trimp(workout.power_samples, minutes, self._hrr_from_power),
                               LoadSource.POWER_STREAM)

        if workout.avg_hr is not None:
            return WorkoutLoad(trimp(minutes, self._hrr_from_hr(workout.avg_hr)), LoadSource.AVG_HR)

        if workout.rpe is not None:
            # Session RPE (Foster) scaled into TRIMP units
            return WorkoutLoad(workout.rpe * minutes * config.SRPE_TRIMP_FACTOR, LoadSource.SESSION_RPE,
                               strength=workout.is_strength)

        return WorkoutLoad(max(0.0, workout.training_stress_score) * config.TSS_TRIMP_FACTOR,
                           LoadSource.TSS_ESTIMATE)

    def _hrr_from_hr(self, hr: float) -> float:
        return heart_rate_reserve(hr, self.max_hr, self.resting_hr)

    def _hrr_from_power(self, watts: float) -> float:
        if self.ftp <= 0:
            return 0.0
        return clamp(watts / self.ftp * config.HRR_AT_FTP, 0.0, 1.0)

    @staticmethod
    def _stream_trimp(samples: Sequence[float], minutes: float, to_hrr) -> float:
        values = np.asarray(samples, dtype=float)
        values = values[np.isfinite(values)]
        if len(values) == 0:
            return 0.0
        minutes_per_sample = minutes / len(values)
        hrr = np.array([to_hrr(v) for v in values])
        return float(np.sum(minutes_per_sample * hrr * np.exp(config.TRIMP_EXPONENT * hrr)))
