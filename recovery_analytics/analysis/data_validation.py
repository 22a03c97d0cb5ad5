"""Ingestion validation for physiological samples and workouts.

Implausible values are removed here, before they reach baselines or scores.
A sample keeps its valid fields; only the offending field is dropped. A workout
with an impossible duration or load is rejected as a whole.
"""

import logging
import numpy as np
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from .records import DailySample, SleepStages, WorkoutRecord

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of data validation check."""
    is_valid: bool
    reason: Optional[str] = None
    suggested_value: Optional[float] = None


@dataclass
class ValidationReport:
    """Outcome of validating a batch of records."""
    accepted: int = 0
    dropped_fields: List[str] = field(default_factory=list)
    rejected_workouts: List[str] = field(default_factory=list)
    replaced_dates: int = 0

    @property
    def clean(self) -> bool:
        return not self.dropped_fields and not self.rejected_workouts


class SampleValidator:
    """Physiological plausibility checks at the ingestion boundary."""

    PHYSIOLOGICAL_BOUNDS = {
        # Daily sample fields
        'hrv_ms': {'min': 1, 'max': 300},
        'rhr_bpm': {'min': 25, 'max': 220},
        'respiratory_rate': {'min': 4, 'max': 40},
        'sleep_duration_sec': {'min': 0, 'max': 16 * 3600},
        'time_in_bed_sec': {'min': 0, 'max': 20 * 3600},
        'wake_events': {'min': 0, 'max': 100},
        'steps': {'min': 0, 'max': 100000},
        'active_energy_kcal': {'min': 0, 'max': 10000},

        # Workout fields
        'duration_sec': {'min': 1, 'max': 24 * 3600},
        'training_stress_score': {'min': 0, 'max': 1000},
        'rpe': {'min': 1, 'max': 10},
        'avg_hr': {'min': 30, 'max': 230},
        'avg_power': {'min': 0, 'max': 2500},
    }

    STAGE_TOTAL_TOLERANCE = 100.5

    def validate_metric(self, metric_name: str, value: Optional[float]) -> ValidationResult:
        """Validate a single value against its physiological range."""
        if value is None:
            return ValidationResult(True)

        if np.isnan(value) or np.isinf(value):
            return ValidationResult(False, "Invalid numeric value")

        bounds = self.PHYSIOLOGICAL_BOUNDS.get(metric_name)
        if bounds is None:
            return ValidationResult(True)

        if value < bounds['min'] or value > bounds['max']:
            return ValidationResult(
                False,
                f"Value {value} outside physiological range [{bounds['min']}, {bounds['max']}]",
                suggested_value=float(np.clip(value, bounds['min'], bounds['max'])),
            )

        return ValidationResult(True)

    def validate_stages(self, stages: Optional[SleepStages]) -> ValidationResult:
        if stages is None:
            return ValidationResult(True)
        parts = (stages.deep, stages.rem, stages.core, stages.awake)
        if any(p < 0 or p > 100 for p in parts):
            return ValidationResult(False, f"Stage percentage outside [0, 100]: {parts}")
        if sum(parts) > self.STAGE_TOTAL_TOLERANCE:
            return ValidationResult(False, f"Stage percentages sum to {sum(parts):.1f}")
        return ValidationResult(True)

    def clean_sample(self, sample: DailySample) -> Tuple[DailySample, List[str]]:
        """Return the sample with implausible fields set to None, and the dropped field names."""
        changes: Dict[str, None] = {}
        for name in ('hrv_ms', 'rhr_bpm', 'respiratory_rate', 'sleep_duration_sec',
                     'time_in_bed_sec', 'wake_events', 'steps', 'active_energy_kcal'):
            result = self.validate_metric(name, getattr(sample, name))
            if not result.is_valid:
                logger.warning(f"Dropping {name} for {sample.date}: {result.reason}")
                changes[name] = None

        stages_result = self.validate_stages(sample.sleep_stages)
        if not stages_result.is_valid:
            logger.warning(f"Dropping sleep stages for {sample.date}: {stages_result.reason}")
            changes['sleep_stages'] = None

        if not changes:
            return sample, []
        return replace(sample, **changes), list(changes)

    def validate_workout(self, workout: WorkoutRecord) -> ValidationResult:
        for name in ('duration_sec', 'training_stress_score', 'rpe', 'avg_hr', 'avg_power'):
            result = self.validate_metric(name, getattr(workout, name))
            if not result.is_valid:
                return ValidationResult(False, f"{name}: {result.reason}")
        return ValidationResult(True)

    def validate_samples(self, samples: Iterable[DailySample]) -> Tuple[List[DailySample], ValidationReport]:
        """Clean a batch of samples and keep one per date.

        A later sample for the same date replaces the earlier one (re-synced data).
        """
        report = ValidationReport()
        by_date: Dict = {}
        for sample in samples:
            cleaned, dropped = self.clean_sample(sample)
            report.dropped_fields.extend(f"{sample.date}:{name}" for name in dropped)
            if sample.date in by_date:
                report.replaced_dates += 1
            by_date[sample.date] = cleaned

        report.accepted = len(by_date)
        return [by_date[d] for d in sorted(by_date)], report

    def validate_workouts(self, workouts: Iterable[WorkoutRecord]) -> Tuple[List[WorkoutRecord], ValidationReport]:
        report = ValidationReport()
        accepted = []
        for workout in workouts:
            result = self.validate_workout(workout)
            if result.is_valid:
                accepted.append(workout)
            else:
                logger.warning(f"Rejecting workout on {workout.date}: {result.reason}")
                report.rejected_workouts.append(f"{workout.date}:{result.reason}")

        report.accepted = len(accepted)
        return sorted(accepted, key=lambda w: w.date), report
