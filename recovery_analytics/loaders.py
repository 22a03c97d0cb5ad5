"""
CSV import of daily samples and workouts.

Daily sample columns (all optional except ``date``):
    date, hrv_ms, rhr_bpm, respiratory_rate, sleep_duration_sec | sleep_hours,
    deep_pct, rem_pct, core_pct, awake_pct, steps, active_energy_kcal,
    time_in_bed_sec, wake_events, bedtime, wake_time

Workout columns:
    date, duration_sec | duration_min, tss, sport, avg_hr, avg_power, rpe,
    hr_samples, power_samples (semicolon separated streams)
"""

import logging
import pandas as pd
from datetime import datetime
from typing import List, Optional, Tuple

from .analysis.records import DailySample, SleepStages, WorkoutRecord

logger = logging.getLogger(__name__)


STAGE_COLUMNS = ("deep_pct", "rem_pct", "core_pct", "awake_pct")


def _value(row, column: str) -> Optional[float]:
    if column not in row or pd.isna(row[column]) or row[column] == "--":
        return None
    return float(row[column])


def _int_value(row, column: str) -> Optional[int]:
    value = _value(row, column)
    return int(value) if value is not None else None


def _datetime_value(row, column: str) -> Optional[datetime]:
    if column not in row or pd.isna(row[column]):
        return None
    return pd.to_datetime(row[column]).to_pydatetime()


def _stream(row, column: str) -> Optional[Tuple[float, ...]]:
    if column not in row or pd.isna(row[column]):
        return None
    values = [part.strip() for part in str(row[column]).split(";")]
    stream = tuple(float(v) for v in values if v)
    return stream or None


def _read(path: str) -> pd.DataFrame:
    df = pd.read_csv(path, encoding="utf-8")
    df.columns = df.columns.str.strip().str.lower()
    if "date" not in df.columns:
        raise ValueError(f"{path} has no 'date' column")
    df["date"] = pd.to_datetime(df["date"]).dt.date
    return df


def sample_from_row(row) -> DailySample:
    sleep_duration = _value(row, "sleep_duration_sec")
    if sleep_duration is None and _value(row, "sleep_hours") is not None:
        sleep_duration = _value(row, "sleep_hours") * 3600

    stages = None
    if _value(row, "deep_pct") is not None and _value(row, "rem_pct") is not None:
        stages = SleepStages(
            deep=_value(row, "deep_pct"),
            rem=_value(row, "rem_pct"),
            core=_value(row, "core_pct") or 0.0,
            awake=_value(row, "awake_pct") or 0.0,
        )

    return DailySample(
        date=row["date"],
        hrv_ms=_value(row, "hrv_ms"),
        rhr_bpm=_value(row, "rhr_bpm"),
        respiratory_rate=_value(row, "respiratory_rate"),
        sleep_duration_sec=sleep_duration,
        sleep_stages=stages,
        steps=_int_value(row, "steps"),
        active_energy_kcal=_value(row, "active_energy_kcal"),
        time_in_bed_sec=_value(row, "time_in_bed_sec"),
        wake_events=_int_value(row, "wake_events"),
        bedtime=_datetime_value(row, "bedtime"),
        wake_time=_datetime_value(row, "wake_time"),
    )


def workout_from_row(row) -> WorkoutRecord:
    duration = _value(row, "duration_sec")
    if duration is None and _value(row, "duration_min") is not None:
        duration = _value(row, "duration_min") * 60
    if duration is None:
        raise ValueError(f"Workout on {row['date']} has no duration")

    sport = row["sport"] if "sport" in row and not pd.isna(row["sport"]) else "Ride"

    return WorkoutRecord(
        date=row["date"],
        duration_sec=duration,
        training_stress_score=_value(row, "tss") or 0.0,
        sport=str(sport),
        avg_hr=_value(row, "avg_hr"),
        heart_rate_samples=_stream(row, "hr_samples"),
        power_samples=_stream(row, "power_samples"),
        avg_power=_value(row, "avg_power"),
        rpe=_value(row, "rpe"),
    )


def load_samples(path: str) -> List[DailySample]:
    """Read daily samples from a CSV file."""
    df = _read(path)
    samples = [sample_from_row(row) for _, row in df.iterrows()]
    logger.info(f"Loaded {len(samples)} daily samples from {path}")
    return samples


def load_workouts(path: str) -> List[WorkoutRecord]:
    """Read workouts from a CSV file. Rows without a duration are skipped."""
    df = _read(path)
    workouts = []
    for _, row in df.iterrows():
        try:
            workouts.append(workout_from_row(row))
        except ValueError as e:
            logger.warning(f"Skipping workout row: {e}")
    logger.info(f"Loaded {len(workouts)} workouts from {path}")
    return workouts
