"""
Daily scoring pipeline.

Runs the scorers over an ordered range of days for one athlete:
baselines as of the day -> sleep -> recovery (with yesterday's load state) ->
strain -> training load update. The load chain makes this a fold, so a
timeline is always processed in date order. Independent timelines can be
scored in parallel.
"""

import hashlib
import logging
import pandas as pd
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..config import config
from .baseline import BaselineEngine, BaselineSet
from .data_validation import SampleValidator
from .model import TrainingLoadTracker
from .recovery import RecoveryScorer
from .records import DailySample, DailyScore, TrainingLoadState, WorkoutRecord
from .sleep import SleepScorer, habitual_timing, sleep_debt_hours
from .strain import NonExerciseActivity, StrainScorer

logger = logging.getLogger(__name__)


SLEEP_DEBT_WINDOW_DAYS = 7


@dataclass
class Timeline:
    """Raw inputs for one athlete."""
    samples: List[DailySample] = field(default_factory=list)
    workouts: List[WorkoutRecord] = field(default_factory=list)
    initial: Optional[TrainingLoadState] = None


def day_fingerprint(sample: Optional[DailySample], workouts: Sequence[WorkoutRecord]) -> str:
    """Stable digest of one day's raw inputs."""
    payload = repr(sample) + "|" + "|".join(sorted(repr(w) for w in workouts))
    return hashlib.sha256(payload.encode()).hexdigest()[:16]


class DailyScoreEngine:
    """Scores every day of a timeline in order."""

    def __init__(
        self,
        baseline_engine: Optional[BaselineEngine] = None,
        recovery_scorer: Optional[RecoveryScorer] = None,
        sleep_scorer: Optional[SleepScorer] = None,
        strain_scorer: Optional[StrainScorer] = None,
        load_tracker: Optional[TrainingLoadTracker] = None,
        validator: Optional[SampleValidator] = None,
        sleep_target_sec: Optional[float] = None,
        apply_load_penalty: bool = False,
    ):
        self.baseline_engine = baseline_engine or BaselineEngine()
        self.recovery_scorer = recovery_scorer or RecoveryScorer()
        self.sleep_scorer = sleep_scorer or SleepScorer()
        self.strain_scorer = strain_scorer or StrainScorer()
        self.load_tracker = load_tracker or TrainingLoadTracker()
        self.validator = validator or SampleValidator()
        self.sleep_target_sec = sleep_target_sec or config.sleep_target_seconds()
        self.apply_load_penalty = apply_load_penalty

    def run(self, samples: Iterable[DailySample], workouts: Iterable[WorkoutRecord],
            start: Optional[date] = None, end: Optional[date] = None,
            initial: Optional[TrainingLoadState] = None) -> List[DailyScore]:
        """
        Score every calendar day from ``start`` to ``end``.

        Args:
            samples: Daily samples (validated here; re-synced dates replace older ones)
            workouts: Workout records
            start: First day to score (defaults to the earliest input date)
            end: Last day to score (defaults to the latest input date)
            initial: Load state at the end of the day before ``start``

        Returns:
            One DailyScore per day, in date order
        """
        samples, _ = self.validator.validate_samples(samples)
        workouts, _ = self.validator.validate_workouts(workouts)

        dates = [s.date for s in samples] + [w.date for w in workouts]
        if not dates:
            return []
        start = start or min(dates)
        end = end or max(dates)
        if end < start:
            return []

        samples_by_date = {s.date: s for s in samples}
        workouts_by_date: Dict[date, List[WorkoutRecord]] = {}
        for workout in workouts:
            workouts_by_date.setdefault(workout.date, []).append(workout)

        scores = []
        state = initial
        previous_tss = None
        for timestamp in pd.date_range(start=start, end=end, freq="D"):
            day = timestamp.date()
            score = self.score_day(day, samples, samples_by_date, workouts_by_date.get(day, []),
                                   state, previous_tss)
            scores.append(score)
            state = score.load_state
            previous_tss = score.daily_tss

        logger.info(f"Scored {len(scores)} days from {start} to {end}")
        return scores

    def replay_from(self, existing: Sequence[DailyScore], from_date: date,
                    samples: Iterable[DailySample], workouts: Iterable[WorkoutRecord],
                    end: Optional[date] = None) -> List[DailyScore]:
        """Keep scores before ``from_date`` and recompute everything after it."""
        kept = sorted((s for s in existing if s.date < from_date), key=lambda s: s.date)
        initial = kept[-1].load_state if kept else None
        start = kept[-1].date + timedelta(days=1) if kept else from_date

        logger.info(f"Replaying daily scores from {start}")
        return kept + self.run(samples, workouts, start=start, end=end, initial=initial)

    def score_day(self, day: date, samples: Sequence[DailySample],
                  samples_by_date: Mapping[date, DailySample],
                  day_workouts: Sequence[WorkoutRecord],
                  previous_state: Optional[TrainingLoadState],
                  previous_tss: Optional[float] = None) -> DailyScore:
        sample = samples_by_date.get(day)
        today = sample or DailySample(date=day)
        baselines = self.baseline_engine.compute_all(samples, day)

        sleep = self.sleep_scorer.score(today, self.sleep_target_sec, habitual_timing(samples, day))

        recovery = None
        if sample is not None:
            recovery = self.recovery_scorer.score(
                today, baselines, sleep_score=sleep, training_load=previous_state,
                yesterday_tss=previous_tss if self.apply_load_penalty else None,
            )

        non_exercise = NonExerciseActivity.from_sample(sample)
        strain = None
        strain_confidence = None
        notes = ()
        if day_workouts or non_exercise.steps or non_exercise.active_energy_kcal:
            detail = self.strain_scorer.score_detailed(day_workouts, non_exercise, recovery)
            strain = detail.score
            strain_confidence = detail.confidence.value
            notes = tuple(detail.reasons)

        tss = sum(w.training_stress_score for w in day_workouts)
        state = self.load_tracker.update(day, tss, previous_state)

        return DailyScore(
            date=day,
            recovery=recovery,
            sleep=sleep,
            strain=strain,
            ctl=state.ctl,
            atl=state.atl,
            daily_tss=tss,
            hrv_deviation_pct=self._deviation(baselines, today.hrv_ms, "hrv"),
            rhr_elevation_pct=self._deviation(baselines, today.rhr_bpm, "rhr"),
            sleep_debt_hours=self._sleep_debt(day, samples_by_date),
            strain_confidence=strain_confidence,
            notes=notes,
            fingerprint=day_fingerprint(sample, day_workouts),
        )

    def find_invalidated(self, stored: Mapping[date, str], samples: Iterable[DailySample],
                         workouts: Iterable[WorkoutRecord]) -> Optional[date]:
        """Earliest date whose inputs differ from the stored fingerprints.

        Returns None when every stored day still matches and no new days exist.
        """
        samples, _ = self.validator.validate_samples(samples)
        workouts, _ = self.validator.validate_workouts(workouts)

        samples_by_date = {s.date: s for s in samples}
        workouts_by_date: Dict[date, List[WorkoutRecord]] = {}
        for workout in workouts:
            workouts_by_date.setdefault(workout.date, []).append(workout)

        current = {}
        for day in set(samples_by_date) | set(workouts_by_date):
            current[day] = day_fingerprint(samples_by_date.get(day), workouts_by_date.get(day, []))

        changed = [day for day, digest in current.items() if stored.get(day) != digest]
        if stored:
            empty = day_fingerprint(None, [])
            changed.extend(day for day, digest in stored.items() if day not in current and digest != empty)

        return min(changed) if changed else None

    @staticmethod
    def _deviation(baselines: BaselineSet, value: Optional[float], name: str) -> Optional[float]:
        baseline = getattr(baselines, name)
        if value is None or baseline is None:
            return None
        return baseline.deviation_percent(value)

    def _sleep_debt(self, day: date, samples_by_date: Mapping[date, DailySample]) -> Optional[float]:
        nights = [samples_by_date[d] for d in
                  (day - timedelta(days=offset) for offset in range(SLEEP_DEBT_WINDOW_DAYS))
                  if d in samples_by_date]
        if not any(n.sleep_duration_sec is not None for n in nights):
            return None
        return sleep_debt_hours(nights, self.sleep_target_sec)

    @staticmethod
    def to_dataframe(scores: Sequence[DailyScore]) -> pd.DataFrame:
        """Tabular view indexed by date."""
        df = pd.DataFrame([s.to_dict() for s in scores])
        if df.empty:
            return df
        df['date'] = pd.to_datetime(df['date'])
        return df.set_index('date')


def score_timelines(timelines: Mapping[str, Timeline], max_workers: Optional[int] = None,
                    engine: Optional[DailyScoreEngine] = None) -> Dict[str, List[DailyScore]]:
    """Score independent athletes' timelines in parallel.

    Each timeline is folded by a single worker, so one athlete's load chain is
    never split across threads.
    """
    engine = engine or DailyScoreEngine()
    max_workers = max_workers or config.BACKFILL_WORKERS
    results: Dict[str, List[DailyScore]] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(engine.run, timeline.samples, timeline.workouts, None, None, timeline.initial): user_id
            for user_id, timeline in timelines.items()
        }
        for future in as_completed(futures):
            user_id = futures[future]
            results[user_id] = future.result()
            logger.debug(f"Backfilled {len(results[user_id])} days for {user_id}")

    return results
