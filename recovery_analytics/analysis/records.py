"""Value types shared by the scoring and analytics components."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


class Metric(Enum):
    """Physiological metrics that carry a personal baseline."""

    HRV = "hrv_ms"
    RHR = "rhr_bpm"
    RESPIRATORY = "respiratory_rate"
    SLEEP_DURATION = "sleep_duration_sec"


# Sport names that count as resistance training for the concurrent-training penalty
STRENGTH_SPORTS = frozenset({
    "WeightTraining",
    "Weight Training",
    "Strength",
    "StrengthTraining",
    "TraditionalStrengthTraining",
    "FunctionalStrengthTraining",
    "Crossfit",
})


@dataclass(frozen=True)
class SleepStages:
    """Share of the night spent in each stage, in percent."""

    deep: float
    rem: float
    core: float = 0.0
    awake: float = 0.0

    @property
    def deep_rem_percent(self) -> float:
        return self.deep + self.rem


@dataclass(frozen=True)
class DailySample:
    """Aggregated physiological data for one calendar day.

    Every field besides ``date`` is optional; devices and permissions leave gaps.
    """

    date: date
    hrv_ms: Optional[float] = None
    rhr_bpm: Optional[float] = None
    respiratory_rate: Optional[float] = None
    sleep_duration_sec: Optional[float] = None
    sleep_stages: Optional[SleepStages] = None
    steps: Optional[int] = None
    active_energy_kcal: Optional[float] = None
    time_in_bed_sec: Optional[float] = None
    wake_events: Optional[int] = None
    bedtime: Optional[datetime] = None
    wake_time: Optional[datetime] = None

    def value(self, metric: Metric) -> Optional[float]:
        """Return the value recorded for a baseline metric."""
        return getattr(self, metric.value)

    @property
    def has_sleep(self) -> bool:
        return self.sleep_duration_sec is not None or self.sleep_stages is not None


@dataclass(frozen=True)
class WorkoutRecord:
    """A single workout with its precomputed training stress."""

    date: date
    duration_sec: float
    training_stress_score: float
    sport: str = "Ride"
    avg_hr: Optional[float] = None
    heart_rate_samples: Optional[Tuple[float, ...]] = None
    power_samples: Optional[Tuple[float, ...]] = None
    avg_power: Optional[float] = None
    rpe: Optional[float] = None

    @property
    def duration_minutes(self) -> float:
        return self.duration_sec / 60.0

    @property
    def power_watts(self) -> Optional[float]:
        """Average power, from ``avg_power`` or the mean of the power stream."""
        if self.avg_power is not None and self.avg_power > 0:
            return float(self.avg_power)
        if self.power_samples:
            mean = sum(self.power_samples) / len(self.power_samples)
            if mean > 0:
                return mean
        return None

    @property
    def is_strength(self) -> bool:
        """Resistance session logged by RPE, without HR or power data."""
        return (
            self.sport in STRENGTH_SPORTS
            and not self.heart_rate_samples
            and not self.power_samples
            and self.avg_hr is None
            and self.avg_power is None
            and self.rpe is not None
        )


@dataclass(frozen=True)
class TrainingLoadState:
    """Chronic and acute training load at the end of a day.

    TSB is always derived from CTL and ATL so the three values cannot drift apart.
    """

    date: Optional[date]
    ctl: float
    atl: float

    @property
    def tsb(self) -> float:
        return self.ctl - self.atl


@dataclass(frozen=True)
class DailyScore:
    """Scores and load state computed for one day."""

    date: date
    recovery: Optional[int]
    sleep: Optional[int]
    strain: Optional[float]
    ctl: float
    atl: float
    daily_tss: float = 0.0
    hrv_deviation_pct: Optional[float] = None
    rhr_elevation_pct: Optional[float] = None
    sleep_debt_hours: Optional[float] = None
    strain_confidence: Optional[str] = None
    notes: Tuple[str, ...] = field(default_factory=tuple)
    fingerprint: Optional[str] = None

    @property
    def tsb(self) -> float:
        return self.ctl - self.atl

    @property
    def load_state(self) -> TrainingLoadState:
        return TrainingLoadState(date=self.date, ctl=self.ctl, atl=self.atl)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "recovery": self.recovery,
            "sleep": self.sleep,
            "strain": self.strain,
            "ctl": self.ctl,
            "atl": self.atl,
            "tsb": self.tsb,
            "daily_tss": self.daily_tss,
            "hrv_deviation_pct": self.hrv_deviation_pct,
            "rhr_elevation_pct": self.rhr_elevation_pct,
            "sleep_debt_hours": self.sleep_debt_hours,
            "strain_confidence": self.strain_confidence,
        }
